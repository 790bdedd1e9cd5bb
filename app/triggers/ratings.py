"""
Rating aggregator trigger.

Folds per-reviewer rating documents into the ``ratings`` map of the parent
media item. The map always mirrors the set of existing rating documents;
``ratingCount`` and ``averageRating`` are recomputed from it on every patch.
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from tortoise.transactions import in_transaction

from app import paths
from app.crud import DELETE_FIELD, SERVER_TIMESTAMP, document_crud
from app.lookups import get_user_profile
from app.notifications import deeplink, dispatch
from app.schemas import (
    AlertCategory,
    AlertPayload,
    ChangeEvent,
    MediaItem,
    TriggerResult,
    UserProfile,
)

TRIGGER = "media_rating"
MIN_RATING = 1
MAX_RATING = 5


def valid_rating(value: Any) -> int | None:
    """Return the rating as an int when it is a whole number in 1..5."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    value = int(value)
    if not MIN_RATING <= value <= MAX_RATING:
        return None
    return value


def summarize_ratings(ratings: dict[str, Any]) -> tuple[float | None, int]:
    """(average, count) over the valid entries of the aggregate map."""
    values = [v for v in map(valid_rating, ratings.values()) if v is not None]
    if not values:
        return None, 0
    return sum(values) / len(values), len(values)


async def patch_aggregate(media_path: str, reviewer_id: str, rating: Any) -> bool:
    """
    Upsert (or, with ``DELETE_FIELD``, remove) one reviewer's entry.
    Returns False when the media item no longer exists.
    """
    async with in_transaction():
        media = await document_crud.get(media_path)
        if media is None:
            return False
        ratings = dict(media.get("ratings") or {})
        if rating is DELETE_FIELD:
            ratings.pop(reviewer_id, None)
        else:
            ratings[reviewer_id] = rating
        average, count = summarize_ratings(ratings)
        return await document_crud.update(
            media_path,
            {
                "ratings": ratings,
                "ratingCount": count,
                "averageRating": average,
                "updatedAt": SERVER_TIMESTAMP,
            },
        )


async def _reviewer_profile(reviewer_id: str) -> UserProfile:
    try:
        return await get_user_profile(reviewer_id)
    except Exception:
        logger.warning(
            "Profile lookup failed for reviewer {}", reviewer_id, exc_info=True
        )
        return UserProfile()


async def handle_rating_change(
    owner_id: str,
    media_id: str,
    reviewer_id: str,
    event: ChangeEvent,
) -> TriggerResult:
    media_path = paths.media(owner_id, media_id)
    result = TriggerResult(
        trigger=TRIGGER,
        document=paths.media_rating(owner_id, media_id, reviewer_id),
    )

    if event.is_delete:
        if not await patch_aggregate(media_path, reviewer_id, DELETE_FIELD):
            logger.info("Media {} is gone; rating removal ignored", media_path)
            result.skipped = True
            return result
        logger.info("Removed rating of {} from {}", reviewer_id, media_path)
        result.actions.append("aggregate:remove")
        return result

    raw = (event.after or {}).get("rating")
    rating = valid_rating(raw)
    if rating is None:
        logger.warning(
            "Ignoring invalid rating {!r} by {} on {}",
            raw,
            reviewer_id,
            media_path,
        )
        result.skipped = True
        return result

    if not await patch_aggregate(media_path, reviewer_id, rating):
        logger.info("Media {} is gone; rating ignored", media_path)
        result.skipped = True
        return result
    logger.info("Rating {} by {} folded into {}", rating, reviewer_id, media_path)
    result.actions.append("aggregate:upsert")

    if reviewer_id == owner_id:
        return result

    media = MediaItem.model_validate(await document_crud.get(media_path) or {})
    reviewer = await _reviewer_profile(reviewer_id)
    title = media.title or media.display_category_title or "Your media"
    await dispatch(
        [owner_id],
        AlertPayload(
            title="New rating received",
            message=f'{reviewer.label} rated "{title}"',
            category=AlertCategory.MEDIA,
            deeplink=deeplink("media", media_id),
        ),
        event_id=event.event_id,
        reason="rating",
    )
    result.actions.append("alert:rating:1")
    return result
