"""Shared utilities: datetime and generators."""

from app.shared.utils.datetime import duration, ensure_utc, utc_now
from app.shared.utils.generators import generate_cuid

__all__ = [
    "generate_cuid",
    "utc_now",
    "ensure_utc",
    "duration",
]
