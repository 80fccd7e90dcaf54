"""Cross-cutting helpers shared by every layer: actor context, audit enums, ids and time."""

from app.shared.context import (
    SYSTEM_ACTOR,
    ActorContext,
    clear_current_user,
    get_actor_context,
    get_current_actor_id,
    set_current_user,
)
from app.shared.enums import ActorType, AuditAction, AuditEntityType, AuditStatus
from app.shared.utils import duration, ensure_utc, generate_cuid, utc_now

__all__ = [
    "SYSTEM_ACTOR",
    "ActorContext",
    "ActorType",
    "AuditAction",
    "AuditEntityType",
    "AuditStatus",
    "clear_current_user",
    "duration",
    "ensure_utc",
    "generate_cuid",
    "get_actor_context",
    "get_current_actor_id",
    "set_current_user",
    "utc_now",
]
