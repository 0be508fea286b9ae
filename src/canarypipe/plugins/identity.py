"""ApprovalAuthorizer ABC for identity checks on approval events."""

from __future__ import annotations

from abc import ABC, abstractmethod


class ApprovalAuthorizer(ABC):
    """Decides whether an actor is an authenticated, allowed identity.

    WAIT_APPROVAL stages count an approval only when the actor is a listed
    approver and the authorizer (if configured) allows it.

    Example:
        >>> class StaticAuthorizer(ApprovalAuthorizer):
        ...     def authorize(self, actor: str) -> bool:
        ...         return actor.endswith("@example.com")
    """

    @abstractmethod
    def authorize(self, actor: str) -> bool:
        """Check an actor's identity.

        Args:
            actor: Identity attached to an approval event.

        Returns:
            True if the actor is allowed, False if denied.
        """
        ...


__all__ = ["ApprovalAuthorizer"]
