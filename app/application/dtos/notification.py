"""DTOs for the notification boundary."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class NotificationEvent:
    """One notification handed to the dispatcher (transport is not our concern)."""

    event: str
    template: str
    recipients: tuple[str, ...]
    context: dict[str, Any] = field(default_factory=dict)
