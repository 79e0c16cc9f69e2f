from fastapi import Request
from fastapi_limiter.depends import RateLimiter

from .config import settings


def get_ledger(request: Request):
    """The LedgerSource built in the app lifespan."""
    return request.app.state.ledger


async def get_client_key(request: Request) -> str:
    """
    Rate-limit key: the first X-Forwarded-For hop if present (the service runs
    behind a proxy), otherwise the client's IP.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


read_limiter = RateLimiter(
    times=settings.RATE_LIMIT_TIMES,
    seconds=settings.RATE_LIMIT_SECONDS,
    identifier=get_client_key,
)
