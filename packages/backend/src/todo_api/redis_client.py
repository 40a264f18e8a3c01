"""Redis connection used by the rate limiter.

Learn: Redis is optional. connect_redis() is attempted at startup; if it
fails the app runs without rate limiting (app.state.redis stays None).
The client lives for the process lifetime and is closed on shutdown.
"""

import redis.asyncio as aioredis


async def connect_redis(url: str) -> aioredis.Redis:
    """Open a Redis connection pool and verify it answers."""
    client = aioredis.from_url(url, encoding="utf-8", decode_responses=True)
    try:
        await client.ping()
    except Exception:
        await client.aclose()
        raise
    return client
