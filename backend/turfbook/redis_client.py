# backend/turfbook/redis_client.py

from redis import Redis

from .config import settings

redis_client: Redis = Redis.from_url(
    settings.redis_url,
    decode_responses=True,
    socket_timeout=settings.redis_socket_timeout,
    socket_connect_timeout=settings.redis_socket_timeout,
)


# Dependency for FastAPI
def get_redis() -> Redis:
    return redis_client
