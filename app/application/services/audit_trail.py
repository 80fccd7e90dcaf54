"""Audit trail: one audit log entry per state change, written by a decorator.

Transition methods decorated with @audited return an AuditedChange holding
the entity before and after. The decorator snapshots both, reads the actor
from request context, and appends exactly one entry:

- SUCCESS when the snapshots differ (a no-op change writes nothing);
- FAILURE when the transition raised. Domain errors keep their error code;
  anything else is recorded as INTERNAL_ERROR and re-raised unchanged.
  Failure entries go through a separate writer so they survive the rollback
  of the failed transaction.
"""

from __future__ import annotations

import dataclasses
import inspect
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime
from enum import Enum
from functools import wraps
from typing import TYPE_CHECKING, Any

from app.application.dtos.audit_log import AuditLogEntryCreate
from app.domain.exceptions import DocflowException
from app.shared.context import get_actor_context
from app.shared.enums import AuditAction, AuditEntityType, AuditStatus
from app.shared.telemetry.logging import get_logger

if TYPE_CHECKING:
    from app.application.interfaces.repositories import IAuditLogRepository

logger = get_logger(__name__)

ActionSpec = AuditAction | Callable[[Mapping[str, Any]], AuditAction]

INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclasses.dataclass(frozen=True)
class AuditedChange:
    """What a decorated transition returns: entity snapshots plus the caller's result."""

    entity_id: str
    before: Any
    after: Any
    result: Any = None
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)


def to_audit_values(value: Any) -> Any:
    """Convert an entity, DTO or plain value to JSON-safe audit values."""
    if value is None:
        return None
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_audit_values(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): to_audit_values(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_audit_values(v) for v in value]
    return value


class AuditTrail:
    """Appends audit log entries for the current actor."""

    def __init__(
        self,
        repo: IAuditLogRepository,
        failure_writer: IAuditLogRepository | None = None,
    ) -> None:
        self._repo = repo
        self._failure_writer = failure_writer or repo

    def _entry(
        self,
        action: AuditAction,
        entity_type: AuditEntityType,
        entity_id: str | None,
        old_values: dict[str, Any] | None,
        new_values: dict[str, Any] | None,
        status: AuditStatus,
        error_message: str | None,
        metadata: dict[str, Any] | None,
    ) -> AuditLogEntryCreate:
        actor = get_actor_context()
        return AuditLogEntryCreate(
            user_id=actor.user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            old_values=old_values,
            new_values=new_values,
            status=status,
            error_message=error_message,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
            request_id=actor.request_id,
            metadata={"actor_type": actor.actor_type.value, **(metadata or {})},
        )

    async def record(
        self,
        action: AuditAction,
        entity_type: AuditEntityType,
        entity_id: str | None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        status: AuditStatus = AuditStatus.SUCCESS,
        error_message: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Append one entry in the caller's transaction."""
        entry = self._entry(
            action, entity_type, entity_id, old_values, new_values, status, error_message, metadata
        )
        await self._repo.create(entry)

    async def record_failure(
        self,
        action: AuditAction,
        entity_type: AuditEntityType,
        entity_id: str | None,
        exc: Exception,
    ) -> None:
        """Append a FAILURE entry through the failure writer; never raises."""
        if isinstance(exc, DocflowException):
            message = exc.message
            metadata = {"error_code": exc.error_code, **to_audit_values(exc.details)}
        else:
            message = str(exc) or type(exc).__name__
            metadata = {"error_code": INTERNAL_ERROR}
        entry = self._entry(
            action,
            entity_type,
            entity_id,
            None,
            None,
            AuditStatus.FAILURE,
            message,
            metadata,
        )
        try:
            await self._failure_writer.create(entry)
        except Exception as e:
            logger.warning("Failed to write failure audit entry: %s", e, exc_info=True)


def audited(
    entity_type: AuditEntityType,
    action: ActionSpec,
    id_param: str | None = None,
) -> Callable[[Callable[..., Awaitable[AuditedChange]]], Callable[..., Awaitable[Any]]]:
    """Decorate an async transition method of a class holding an AuditTrail as self._audit.

    Args:
        entity_type: Audited entity type.
        action: Audit action, or a callable mapping the bound call arguments to one.
        id_param: Name of the parameter carrying the entity id, used for failure
            entries (None when the entity does not exist yet).

    Returns:
        Decorator. The wrapped method returns AuditedChange.result, or
        AuditedChange.after when result is None.
    """

    def decorator(
        func: Callable[..., Awaitable[AuditedChange]],
    ) -> Callable[..., Awaitable[Any]]:
        signature = inspect.signature(func)

        @wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            bound = signature.bind(self, *args, **kwargs)
            bound.apply_defaults()
            resolved = action if isinstance(action, AuditAction) else action(bound.arguments)
            trail: AuditTrail = self._audit
            try:
                change = await func(self, *args, **kwargs)
            except Exception as exc:
                await trail.record_failure(
                    resolved,
                    entity_type,
                    bound.arguments.get(id_param) if id_param else None,
                    exc,
                )
                raise
            old_values = to_audit_values(change.before)
            new_values = to_audit_values(change.after)
            if old_values != new_values:
                await trail.record(
                    resolved,
                    entity_type,
                    change.entity_id,
                    old_values,
                    new_values,
                    metadata=change.metadata,
                )
            return change.after if change.result is None else change.result

        return wrapper

    return decorator
