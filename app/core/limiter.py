"""SlowAPI limiter shared by app.main and the endpoint modules.

Requests are counted per acting user when the gateway supplies one, and
per client address otherwise.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from app.shared.context import get_current_actor_id

WRITE_ENDPOINT_LIMIT = "120/minute"
VALIDATE_ENDPOINT_LIMIT = "300/minute"


def actor_or_address(request: Request) -> str:
    user_id = get_current_actor_id()
    return f"user:{user_id}" if user_id else get_remote_address(request)


limiter = Limiter(key_func=actor_or_address)

limit_writes = limiter.limit(WRITE_ENDPOINT_LIMIT)
limit_validate = limiter.limit(VALIDATE_ENDPOINT_LIMIT)
