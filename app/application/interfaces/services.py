"""Service interfaces (ports) for the application layer.

Protocols define contracts for external collaborators (DIP): notification
transport and the identity directory.
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from app.application.dtos.notification import NotificationEvent
    from app.application.dtos.organization import ApproverProfile, DocumentInfo
    from app.domain.value_objects.core import AssignmentRule, RecipientRule


# Notification dispatcher interface
class INotificationDispatcher(Protocol):
    """Protocol for handing notification events to a transport (email, chat, etc.)."""

    async def dispatch(self, event: NotificationEvent) -> None:
        """Deliver or enqueue one notification. Must not raise on transport failure."""

    async def run_action(
        self, action_type: str, config: dict[str, Any], context: dict[str, Any]
    ) -> None:
        """Hand an action step's configured action to its executor."""


# Identity directory interface
class IIdentityDirectory(Protocol):
    """Protocol for resolving assignment/recipient rules to user ids."""

    async def resolve_assignees(
        self,
        rule: AssignmentRule,
        document: DocumentInfo,
        initiated_by: str | None = None,
    ) -> list[str]:
        """Return active user ids for an assignment rule, in a stable order without duplicates.

        Dynamic rules look up their key in document metadata ('initiator'
        resolves to initiated_by).
        """

    async def resolve_recipients(self, rule: RecipientRule) -> list[str]:
        """Return active user ids for a notification recipient rule."""

    async def get_profile(self, user_id: str) -> ApproverProfile | None:
        """Return role and department of a user, or None if unknown."""


# Transaction scope interface (per-item isolation in sweeps)
class ITransactionScope(Protocol):
    """Protocol for isolating one unit of work inside the current transaction."""

    def savepoint(self) -> AbstractAsyncContextManager[Any]:
        """Return a context manager; leaving it with an exception rolls back only that unit."""
