"""One-off data jobs over the ``users`` collection, run by an admin."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from loguru import logger
from tortoise.transactions import in_transaction

from app import paths
from app.crud import document_crud, utcnow
from app.schemas import MaintenanceReport

BATCH_SIZE = 500
EVENT_GRACE = timedelta(days=1)
RETENTION = timedelta(days=365)


def to_datetime(value: Any) -> datetime | None:
    """Best-effort parse of the timestamp shapes found in profile data."""
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, bool):
        return None
    elif isinstance(value, (int, float)):
        dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value)
        except ValueError:
            return None
    elif isinstance(value, dict) and "_seconds" in value:
        seconds = value["_seconds"] + value.get("_nanoseconds", 0) / 1_000_000_000
        dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _sanitize_call_to_action(item: dict) -> dict:
    copy = dict(item)
    title = copy.get("callToActionTitle")
    if isinstance(title, str) and not title.strip() and copy.get("callToActionURL"):
        copy["callToActionTitle"] = "Learn more"
    return copy


def _keep_spotlight(item: dict, now: datetime) -> bool:
    title = item.get("title")
    if not isinstance(title, str) or not title.strip():
        return False

    scheduled = to_datetime(item.get("scheduledAt"))
    if scheduled is None:
        return True
    if (item.get("category") or "project") == "event" and scheduled + EVENT_GRACE < now:
        return False
    return scheduled >= now - RETENTION


def prune_spotlights(items: Any, now: datetime) -> list[dict]:
    if not isinstance(items, list):
        return []
    return [
        entry
        for entry in (
            _sanitize_call_to_action(item) for item in items if isinstance(item, dict)
        )
        if _keep_spotlight(entry, now)
    ]


async def prune_expired_spotlights(now: datetime | None = None) -> MaintenanceReport:
    now = now or utcnow()
    report = MaintenanceReport(job="prune_spotlights")
    users = await document_crud.list_collection(paths.USERS)
    logger.info("Scanning {} user profiles for expired spotlight entries", len(users))

    for user_id, data in users:
        report.scanned += 1
        details = data.get("profileDetails") or {}
        projects = details.get("upcomingProjects") or []
        events = details.get("upcomingEvents") or []
        pruned_projects = prune_spotlights(projects, now)
        pruned_events = prune_spotlights(events, now)
        if pruned_projects == projects and pruned_events == events:
            continue

        await document_crud.update(
            paths.user(user_id),
            {
                "profileDetails.upcomingProjects": pruned_projects,
                "profileDetails.upcomingEvents": pruned_events,
            },
        )
        report.updated += 1
        logger.info("Pruned expired spotlight entries for user {}", user_id)

    logger.info("Pruning done: {} profile(s) updated", report.updated)
    return report


async def backfill_lowercase_names() -> MaintenanceReport:
    """Store lowercase copies of username and displayName for prefix search."""
    report = MaintenanceReport(job="backfill_lowercase")
    users = await document_crud.list_collection(paths.USERS)
    logger.info("Backfilling lowercase names for {} user(s)", len(users))

    for offset in range(0, len(users), BATCH_SIZE):
        batch = users[offset : offset + BATCH_SIZE]
        async with in_transaction():
            for user_id, data in batch:
                await document_crud.update(
                    paths.user(user_id),
                    {
                        "usernameLowercase": str(data.get("username") or "").lower(),
                        "displayNameLowercase": str(
                            data.get("displayName") or ""
                        ).lower(),
                    },
                )
        report.scanned += len(batch)
        report.updated += len(batch)
        logger.info("Committed {} update(s)", len(batch))

    return report
