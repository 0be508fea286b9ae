"""SecretDecrypter ABC for sealed configuration values."""

from __future__ import annotations

from abc import ABC, abstractmethod


class SecretDecrypter(ABC):
    """Decrypts ciphertext sealed with the project's public key.

    Used by the HTTP probe to unseal header values written as
    ``sealed:<base64 ciphertext>``.
    """

    @abstractmethod
    def decrypt(self, ciphertext: bytes) -> str:
        """Decrypt a sealed value.

        Args:
            ciphertext: Raw encrypted bytes.

        Returns:
            The plaintext.

        Raises:
            ValueError: If the ciphertext cannot be decrypted.
        """
        ...


__all__ = ["SecretDecrypter"]
