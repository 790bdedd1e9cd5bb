from __future__ import annotations

from collections.abc import Callable

from loguru import logger

from app import paths
from app.cache import invalidate_profile_cache, invalidate_studio_owner_cache
from app.crud import document_crud
from app.schemas import ChangeEvent, TriggerResult


def tokenize(*values: str | None) -> list[str]:
    """Whitespace-split, lowercased, de-duplicated tokens in first-seen order."""
    tokens = (
        token.strip().lower()
        for value in values
        if value
        for token in str(value).split()
    )
    return list(dict.fromkeys(t for t in tokens if t))


def profile_tokens(data: dict) -> list[str]:
    details = data.get("profileDetails") or {}
    return tokenize(
        data.get("displayName"),
        data.get("username"),
        details.get("bio"),
        details.get("fieldOne"),
        details.get("fieldTwo"),
    )


def studio_tokens(data: dict) -> list[str]:
    return tokenize(
        data.get("name"),
        data.get("city"),
        data.get("address"),
        *(data.get("amenities") or []),
    )


async def _sync_tokens(
    trigger: str,
    path: str,
    data: dict | None,
    build: Callable[[dict], list[str]],
) -> TriggerResult:
    result = TriggerResult(trigger=trigger, document=path)
    if data is None:
        result.skipped = True
        return result

    tokens = build(data)
    # Our own write re-fires this trigger; stop once the tokens are current
    if data.get("searchTokens") == tokens:
        result.skipped = True
        return result

    if not await document_crud.update(path, {"searchTokens": tokens}):
        logger.info("{} vanished before its search tokens were written", path)
        result.skipped = True
        return result

    logger.info("Search tokens for {} set to {} token(s)", path, len(tokens))
    result.actions.append("search_tokens:write")
    return result


async def handle_user_write(user_id: str, event: ChangeEvent) -> TriggerResult:
    await invalidate_profile_cache(user_id)
    return await _sync_tokens(
        "profile_search_tokens", paths.user(user_id), event.after, profile_tokens
    )


async def handle_studio_write(studio_id: str, event: ChangeEvent) -> TriggerResult:
    await invalidate_studio_owner_cache(studio_id)
    return await _sync_tokens(
        "studio_search_tokens", paths.studio(studio_id), event.after, studio_tokens
    )
