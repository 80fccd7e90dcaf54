"""Infrastructure services: identity directory, notification dispatch, audit writer."""

from app.infrastructure.services.audit_log_writer import DetachedAuditLogWriter
from app.infrastructure.services.identity_directory import SqlIdentityDirectory
from app.infrastructure.services.notification_dispatcher import (
    LogOnlyNotificationDispatcher,
)
from app.infrastructure.services.transaction_scope import SqlTransactionScope

__all__ = [
    "DetachedAuditLogWriter",
    "LogOnlyNotificationDispatcher",
    "SqlIdentityDirectory",
    "SqlTransactionScope",
]
