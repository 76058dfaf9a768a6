from redis.asyncio import Redis
from .config import settings


redis_client = Redis.from_url(settings.REDIS_URL, decode_responses=True)

LIVE_DRIVERS_KEY = "drivers_live"


def driver_key(driver_id: str) -> str:
    return f"driver:{driver_id}"


def session_key(token: str) -> str:
    return f"session:{token}"


async def ping() -> bool:
    try:
        return await redis_client.ping()
    except Exception:
        return False
