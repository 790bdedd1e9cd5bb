"""Reference-data reads shared by the triggers, fronted by the redis cache."""

from loguru import logger

from app import paths
from app.cache import (
    get_profile_cache,
    get_studio_owner_cache,
    set_profile_cache,
    set_studio_owner_cache,
)
from app.crud import document_crud
from app.schemas import UserProfile


async def resolve_studio_owner_id(studio_id: str | None) -> str | None:
    if not studio_id:
        return None

    cached = await get_studio_owner_cache(studio_id)
    if cached:
        logger.debug("Cache hit for studio owner: studio_id={}", studio_id)
        return cached

    logger.debug("Cache miss for studio owner: studio_id={}", studio_id)
    studio = await document_crud.get(paths.studio(studio_id))
    owner_id = (studio or {}).get("ownerId") or None
    if owner_id:
        await set_studio_owner_cache(studio_id, owner_id)
    return owner_id


async def get_user_profile(user_id: str) -> UserProfile:
    """Display fields of a user. Unknown users yield an empty profile."""
    cached = await get_profile_cache(user_id)
    if cached is not None:
        logger.debug("Cache hit for profile: user_id={}", user_id)
        return UserProfile.model_validate(cached)

    logger.debug("Cache miss for profile: user_id={}", user_id)
    data = await document_crud.get(paths.user(user_id))
    profile = UserProfile.model_validate(data or {})
    if data is not None:
        await set_profile_cache(user_id, profile.model_dump(by_alias=True))
    return profile
