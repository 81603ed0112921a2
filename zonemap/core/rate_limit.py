"""
rate_limit.py — Global rate limiter instance.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address. Only write routes opt in; the
snapshot reads and the realtime feed are never limited.

Usage in routes:
    from fastapi import Request
    from zonemap.core.config import settings
    from zonemap.core.rate_limit import limiter

    @router.post("")
    @limiter.limit(settings.write_rate_limit)
    async def create_row(request: Request, payload: RowCreate):
        ...
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
