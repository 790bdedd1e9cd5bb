import json

from loguru import logger
from redis.asyncio import Redis

from app.settings import REDIS_URL

_redis: Redis | None = None
LOOKUP_TTL = 300  # 5 minutes


def get_redis() -> Redis:
    global _redis
    if _redis is None:
        _redis = Redis.from_url(REDIS_URL, decode_responses=True)
    return _redis


def _studio_owner_key(studio_id: str) -> str:
    return f"studio-owner:{studio_id}"


def _profile_key(user_id: str) -> str:
    return f"profile:{user_id}"


async def get_studio_owner_cache(studio_id: str) -> str | None:
    try:
        return await get_redis().get(_studio_owner_key(studio_id))
    except Exception:
        logger.warning("Redis get failed; skipping studio owner cache", exc_info=True)
        return None


async def set_studio_owner_cache(studio_id: str, owner_id: str) -> None:
    try:
        await get_redis().setex(_studio_owner_key(studio_id), LOOKUP_TTL, owner_id)
    except Exception:
        logger.warning("Redis set failed; skipping studio owner cache", exc_info=True)


async def invalidate_studio_owner_cache(studio_id: str) -> None:
    try:
        await get_redis().delete(_studio_owner_key(studio_id))
    except Exception:
        logger.warning("Redis invalidate failed for studio owner cache", exc_info=True)


async def get_profile_cache(user_id: str) -> dict | None:
    try:
        data = await get_redis().get(_profile_key(user_id))
        return json.loads(data) if data else None
    except Exception:
        logger.warning("Redis get failed; skipping profile cache", exc_info=True)
        return None


async def set_profile_cache(user_id: str, profile: dict) -> None:
    try:
        await get_redis().setex(_profile_key(user_id), LOOKUP_TTL, json.dumps(profile))
    except Exception:
        logger.warning("Redis set failed; skipping profile cache", exc_info=True)


async def invalidate_profile_cache(user_id: str) -> None:
    try:
        await get_redis().delete(_profile_key(user_id))
    except Exception:
        logger.warning("Redis invalidate failed for profile cache", exc_info=True)
