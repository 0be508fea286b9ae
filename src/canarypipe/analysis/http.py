"""HTTP probe: an AnalysisProvider for ``https`` analysis checks.

Sends the configured request and passes when the response status matches
``expectedStatus`` (default any 2xx) and, if ``expectedResponse`` is set,
the body contains it.

Header values written as ``sealed:<base64 ciphertext>`` are decrypted with
the configured SecretDecrypter right before sending; the plaintext is
never logged.

Example:
    >>> probe = HTTPProbe(decrypter=decrypter)
    >>> check = AnalysisHTTP(url="https://web.internal/healthz", expected_status="2xx")
    >>> await probe.query_http(check)
    True
"""

from __future__ import annotations

import base64
import binascii

import httpx
import structlog

from canarypipe.analysis.expected import parse_status_expectation
from canarypipe.errors import AdapterError
from canarypipe.plugins.analysis import AnalysisProvider
from canarypipe.plugins.secrets import SecretDecrypter
from canarypipe.schemas.options import AnalysisHTTP
from canarypipe.telemetry.tracing import traced

SEALED_PREFIX = "sealed:"
"""Marks a header value as ciphertext for the SecretDecrypter."""

DEFAULT_TIMEOUT_SECONDS = 30.0

DEFAULT_PROVIDER_NAME = "http"
"""Provider name HTTP checks use when they name none."""

logger = structlog.get_logger(__name__)


class HTTPProbe(AnalysisProvider):
    """Analysis provider that evaluates HTTP checks with httpx.

    Args:
        name: Provider name checks reference (default "http").
        decrypter: Decrypter for sealed header values; required only when
            a check uses one.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        name: str = DEFAULT_PROVIDER_NAME,
        *,
        decrypter: SecretDecrypter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._name = name
        self._decrypter = decrypter
        self._transport = transport

    @property
    def name(self) -> str:
        """Provider name referenced by analysis checks."""
        return self._name

    def build_headers(self, raw_headers: list[str]) -> list[tuple[str, str]]:
        """Parse "Name: value" strings into header pairs, unsealing values.

        Args:
            raw_headers: Headers as configured on the check.

        Returns:
            Header pairs in configured order; repeated names are kept.

        Raises:
            AdapterError: If a header is malformed or a sealed value cannot
                be decrypted.
        """
        headers: list[tuple[str, str]] = []
        for raw in raw_headers:
            header_name, sep, value = raw.partition(":")
            header_name = header_name.strip()
            if not sep or not header_name:
                raise AdapterError(
                    "query_http", f"malformed header {raw!r}: expected 'Name: value'"
                )
            value = value.strip()
            if value.startswith(SEALED_PREFIX):
                value = self._unseal(header_name, value[len(SEALED_PREFIX) :])
            headers.append((header_name, value))
        return headers

    def _unseal(self, header_name: str, encoded: str) -> str:
        if self._decrypter is None:
            raise AdapterError(
                "query_http",
                f"header {header_name} is sealed but no secret decrypter is configured",
            )
        try:
            ciphertext = base64.b64decode(encoded, validate=True)
            return self._decrypter.decrypt(ciphertext)
        except (binascii.Error, ValueError) as e:
            # The plaintext or ciphertext must not reach the message.
            raise AdapterError(
                "query_http", f"failed to unseal header {header_name}: {type(e).__name__}"
            ) from None

    @traced(name="canarypipe.analysis.http")
    async def query_http(self, check: AnalysisHTTP) -> bool:
        """Send the check's request and compare the response.

        Args:
            check: HTTP check description.

        Returns:
            True if status and body match the expectations.

        Raises:
            AdapterError: If the request cannot be sent or the check is
                misconfigured.
        """
        try:
            status_expectation = parse_status_expectation(check.expected_status)
        except ValueError as e:
            raise AdapterError("query_http", str(e)) from e

        headers = self.build_headers(check.headers)
        timeout = check.timeout.total_seconds() or DEFAULT_TIMEOUT_SECONDS

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.request(check.method.upper(), check.url, headers=headers)
        except httpx.TimeoutException:
            raise AdapterError("query_http", f"request to {check.url} timed out") from None
        except httpx.HTTPError as e:
            raise AdapterError("query_http", f"request to {check.url} failed: {e}") from e

        if not status_expectation.matches(response.status_code):
            logger.info(
                "http_check_unexpected_status",
                url=check.url,
                status_code=response.status_code,
                expected_status=check.expected_status or "2xx",
            )
            return False

        if check.expected_response and check.expected_response not in response.text:
            logger.info(
                "http_check_unexpected_body",
                url=check.url,
                status_code=response.status_code,
            )
            return False

        logger.debug("http_check_passed", url=check.url, status_code=response.status_code)
        return True


__all__ = ["DEFAULT_PROVIDER_NAME", "HTTPProbe", "SEALED_PREFIX"]
