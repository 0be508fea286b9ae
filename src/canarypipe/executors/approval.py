"""WAIT_APPROVAL stage executor and the approval event broker.

Approval transport (chat, UI, API) is outside the engine. Whatever carries
approvals hands them to ``ApprovalBroker.submit()``; the broker resolves
the pending WAIT_APPROVAL stage with the first event that counts:

- the actor is one of the stage's approvers, and
- the ApprovalAuthorizer (if configured) allows the actor.

Other events are ignored. Once resolved, further events have no effect.
An explicit rejection from a listed approver fails the stage.

Example:
    >>> broker = ApprovalBroker()
    >>> runner = PipelineRunner(pipeline, plugins, approvals=broker)
    >>> task = asyncio.create_task(runner.run())
    >>> broker.submit(ApprovalEvent(actor="alice"))
    True
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

import structlog
from pydantic import BaseModel, ConfigDict

from canarypipe.executors.base import StageExecutor
from canarypipe.plugins.identity import ApprovalAuthorizer
from canarypipe.schemas.results import StageVerdict

logger = structlog.get_logger(__name__)


class ApprovalEvent(BaseModel):
    """An approval or rejection submitted by an actor.

    Attributes:
        actor: Identity of the submitter.
        approved: True to approve, False to reject.
        comment: Optional free-form comment.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    actor: str
    approved: bool = True
    comment: str = ""


class ApprovalBroker:
    """Delivers approval events to the pending WAIT_APPROVAL stage of a run.

    At most one approval is pending at a time since stages run
    sequentially. ``submit()`` must be called from the event loop running
    the pipeline.
    """

    def __init__(self) -> None:
        self._future: asyncio.Future[ApprovalEvent] | None = None
        self._approvers: frozenset[str] = frozenset()
        self._authorizer: ApprovalAuthorizer | None = None

    @property
    def pending(self) -> bool:
        """Whether a stage is waiting for approval."""
        return self._future is not None and not self._future.done()

    @property
    def approvers(self) -> frozenset[str]:
        """Approvers of the pending stage (empty when none is pending)."""
        return self._approvers if self.pending else frozenset()

    def open(
        self,
        approvers: Iterable[str],
        authorizer: ApprovalAuthorizer | None = None,
    ) -> asyncio.Future[ApprovalEvent]:
        """Start waiting for an approval.

        Args:
            approvers: Identities whose events count.
            authorizer: Optional identity check applied to every event.

        Returns:
            Future resolved with the first counting event.

        Raises:
            RuntimeError: If an approval is already pending.
        """
        if self.pending:
            raise RuntimeError("an approval is already pending")
        self._future = asyncio.get_running_loop().create_future()
        self._approvers = frozenset(approvers)
        self._authorizer = authorizer
        return self._future

    def close(self) -> None:
        """Stop waiting; later events are ignored."""
        if self._future is not None and not self._future.done():
            self._future.cancel()
        self._future = None
        self._approvers = frozenset()
        self._authorizer = None

    def submit(self, event: ApprovalEvent) -> bool:
        """Offer an event to the pending approval.

        Args:
            event: The approval or rejection.

        Returns:
            True if the event resolved the pending approval, False if it
            was ignored.
        """
        if not self.pending:
            logger.info("approval_ignored", actor=event.actor, reason="no pending approval")
            return False
        if event.actor not in self._approvers:
            logger.info("approval_ignored", actor=event.actor, reason="not an approver")
            return False
        if self._authorizer is not None and not self._authorizer.authorize(event.actor):
            logger.warning("approval_ignored", actor=event.actor, reason="not authorized")
            return False

        future = self._future
        if future is None or future.done():
            return False
        future.set_result(event)
        logger.info("approval_received", actor=event.actor, approved=event.approved)
        return True


class WaitApprovalExecutor(StageExecutor):
    """Blocks until a listed approver approves or rejects the stage."""

    async def execute(self) -> StageVerdict:
        approvers = sorted(self.options.approvers)
        broker = self.ctx.approvals
        waiting = broker.open(approvers, self.ctx.plugins.authorizer)
        self._logger.info("approval_waiting", approvers=approvers)
        try:
            event = await waiting
        finally:
            broker.close()

        if event.approved:
            return self.succeeded(approver=event.actor, comment=event.comment)
        return self.failed(
            f"rejected by {event.actor}",
            approver=event.actor,
            comment=event.comment,
        )


__all__ = ["ApprovalBroker", "ApprovalEvent", "WaitApprovalExecutor"]
