from redis import Redis
from app.settings import settings


def get_redis() -> Redis:
    # Only metrics use Redis; attempts and entitlement are in-process.
    # Both timeouts bound how long a metrics call can hold the event loop.
    return Redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_timeout=1.0,
        socket_connect_timeout=1.0,
    )
