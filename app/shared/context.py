"""Acting-user context for the current request or sweep, held in a contextvar.

ActorContextMiddleware sets it from the gateway's user header. Anything
that runs without a user (sweeps, anonymous requests) acts as SYSTEM,
which is what the audit log records as a null user_id.
"""

from contextvars import ContextVar
from dataclasses import dataclass

from app.shared.enums import ActorType


@dataclass(frozen=True)
class ActorContext:
    """Who is acting, plus the request details copied into audit entries."""

    user_id: str | None
    actor_type: ActorType
    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None

    @property
    def is_system(self) -> bool:
        return self.actor_type is ActorType.SYSTEM


SYSTEM_ACTOR = ActorContext(user_id=None, actor_type=ActorType.SYSTEM)

_actor: ContextVar[ActorContext] = ContextVar("docflow_actor", default=SYSTEM_ACTOR)


def set_current_user(
    user_id: str | None,
    actor_type: ActorType = ActorType.USER,
    ip_address: str | None = None,
    user_agent: str | None = None,
    request_id: str | None = None,
) -> None:
    """Make user_id the actor for the current task.

    Raises:
        ValueError: If actor_type is USER and user_id is empty.
    """
    if actor_type is ActorType.USER and not user_id:
        raise ValueError("user_id is required when actor_type is USER")
    _actor.set(ActorContext(user_id, actor_type, ip_address, user_agent, request_id))


def clear_current_user() -> None:
    """Fall back to the SYSTEM actor."""
    _actor.set(SYSTEM_ACTOR)


def get_current_actor_id() -> str | None:
    return _actor.get().user_id


def get_actor_context() -> ActorContext:
    return _actor.get()
