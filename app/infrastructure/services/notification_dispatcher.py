"""Notification dispatch: log-only transport for workflow notification events and actions."""

from __future__ import annotations

import logging
from typing import Any

from app.application.dtos.notification import NotificationEvent
from app.shared.telemetry.logging import get_logger
from app.shared.utils.datetime import utc_now

logger = get_logger(__name__)


class LogOnlyNotificationDispatcher:
    """INotificationDispatcher implementation that logs instead of delivering.

    Use when no transport is configured. Production can swap in an email or
    queue-based implementation behind the same protocol.
    """

    async def dispatch(self, event: NotificationEvent) -> None:
        """Log the notification event; nothing is delivered."""
        recipients = list(event.recipients or ())
        if not recipients:
            logger.info(
                "Workflow notify: no recipients for %s, skipping (template=%r)",
                event.event,
                event.template,
            )
            return
        logger.info(
            "Workflow notify: %s to %d recipient(s) (template=%r)",
            event.event,
            len(recipients),
            event.template,
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Workflow notify recipients: %s context: %s (at %s)",
                recipients,
                event.context,
                utc_now().isoformat(),
            )

    async def run_action(
        self, action_type: str, config: dict[str, Any], context: dict[str, Any]
    ) -> None:
        """Log the action step's configured action; no executor is attached."""
        logger.info(
            "Workflow action: %s for document %s (step %s)",
            action_type,
            context.get("documentId"),
            context.get("stepId"),
        )
        logger.debug("Workflow action config: %s", config)
