"""HTTP middleware: timeout, request ID, correlation ID, acting user.

Applied in main app; order matters (last added = outermost).
Import and use from app.main.
"""

from app.middleware.request_context import (
    ActorContextMiddleware,
    CorrelationIDMiddleware,
    RequestIDMiddleware,
)
from app.middleware.timeout import TimeoutMiddleware

__all__ = [
    "ActorContextMiddleware",
    "CorrelationIDMiddleware",
    "RequestIDMiddleware",
    "TimeoutMiddleware",
]
