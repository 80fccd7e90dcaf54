"""Logging setup for the API and the sweep runner.

Every record carries the acting user and request id from the actor
context, so a decision, its audit entry and its log lines can be matched.
"""

import logging
import sys

from app.core.config import get_settings
from app.shared.context import get_actor_context

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(actor)s %(request_id)s] %(message)s"


class ActorContextFilter(logging.Filter):
    """Copy the acting user ("system" when none) and request id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        actor = get_actor_context()
        record.actor = actor.user_id or "system"
        record.request_id = actor.request_id or "-"
        return True


def setup_logging() -> None:
    """Log to stdout at DEBUG (DEBUG=true) or INFO; SQL echo follows DATABASE_ECHO."""
    settings = get_settings()
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ActorContextFilter())
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format=LOG_FORMAT,
        handlers=[handler],
    )
    if not settings.database_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
