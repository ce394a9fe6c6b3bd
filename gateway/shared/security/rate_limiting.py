"""
Rate limiting configuration and setup.

Uses slowapi's limiter (counters in its `limits` storage) to enforce a
per-client request budget. The budget is checked by a router dependency
rather than by route lookup in a middleware, so every HTTP route of a
router that declares it is counted. Exceeding it raises a 429, which
the shared error handlers render as a normalized `rate-limit-exceeded`
envelope.
"""

from fastapi import HTTPException, Request
from limits import parse_many
from slowapi import Limiter
from slowapi.util import get_remote_address

DEFAULT_RATE_LIMIT = "100/minute"

_SCOPE = "global"


class ClientRateLimiter:
    """Per-client budget shared by every rate-limited route."""

    def __init__(self, rate_limit: str = DEFAULT_RATE_LIMIT, enabled: bool = True) -> None:
        self.rate_limit = rate_limit
        self.limiter = Limiter(
            key_func=get_remote_address,
            default_limits=[rate_limit],
            enabled=enabled,
        )
        self._items = parse_many(rate_limit)

    @property
    def enabled(self) -> bool:
        return self.limiter.enabled

    def check(self, request: Request) -> None:
        """Count one request for its client.

        Raises:
            HTTPException: 429 once any configured window is exhausted.
        """
        if not self.enabled:
            return
        key = get_remote_address(request)
        for item in self._items:
            if not self.limiter.limiter.hit(item, key, _SCOPE):
                raise HTTPException(status_code=429, detail=f"Rate limit exceeded: {item}")


def build_limiter(rate_limit: str = DEFAULT_RATE_LIMIT, enabled: bool = True) -> ClientRateLimiter:
    """Build the limiter stored on `app.state.limiter`.

    Args:
        rate_limit: Limit string, e.g. "100/minute" or "10/second;100/minute".
        enabled: Disable to turn every check into a no-op.
    """
    return ClientRateLimiter(rate_limit, enabled=enabled)


async def enforce_rate_limit(request: Request) -> None:
    """Router dependency: count the request against the client's budget."""
    request.app.state.limiter.check(request)
