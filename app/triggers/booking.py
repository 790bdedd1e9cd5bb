"""
Booking sync trigger.

Keeps the studio-side and engineer-side availability holds in step with a
booking's lifecycle and tells every participant when the booking changes.
Holds are keyed by the booking id, so every hold write is an upsert and
every hold delete tolerates a missing record.
"""

from __future__ import annotations

from datetime import datetime

from loguru import logger
from pydantic import ValidationError
from tortoise.transactions import in_transaction

from app import paths
from app.crud import document_crud, utcnow
from app.lookups import resolve_studio_owner_id
from app.notifications import deeplink, dispatch
from app.schemas import (
    AlertCategory,
    AlertPayload,
    AvailabilityHold,
    Booking,
    BookingStatus,
    ChangeEvent,
    TriggerResult,
)
from app.transitions import HoldAction, classify

TRIGGER = "booking_sync"
MIN_HOLD_MINUTES = 30

_ALERT_TITLES = {
    "created": "New booking request",
    "updated": "Booking updated",
    "cancelled": "Booking cancelled",
}

# A change to any of these counts as an "updated" booking for participants
_WATCHED_FIELDS = (
    "status",
    "requested_start",
    "requested_end",
    "confirmed_start",
    "confirmed_end",
)


def format_session_time(start: datetime | None) -> str:
    """``Jun 1, 10:00 AM UTC`` style label for alert copy."""
    if start is None:
        return "upcoming session"
    hour = start.hour % 12 or 12
    return f"{start:%b} {start.day}, {hour}:{start:%M} {start:%p} UTC"


def hold_duration_minutes(booking: Booking) -> int:
    if booking.duration_minutes is not None:
        return booking.duration_minutes
    start, end = booking.resolved_window
    return max(MIN_HOLD_MINUTES, round((end - start).total_seconds() / 60))


def build_hold(booking: Booking, booking_id: str, owner_id: str) -> AvailabilityHold:
    now = utcnow()
    start, end = booking.resolved_window
    return AvailabilityHold(
        owner_id=owner_id,
        studio_id=booking.studio_id,
        room_id=booking.room_id,
        engineer_id=booking.engineer_id,
        duration_minutes=hold_duration_minutes(booking),
        start_date=start,
        end_date=end,
        source_booking_id=booking_id,
        created_by=booking.artist_id,
        created_at=booking.created_at or now,
        updated_at=now,
    )


def _hold_paths(booking: Booking, booking_id: str) -> list[tuple[str, str]]:
    """(owner id, hold path) for each calendar the booking occupies."""
    targets = []
    if booking.studio_id:
        targets.append(
            (booking.studio_id, paths.studio_hold(booking.studio_id, booking_id))
        )
    if booking.engineer_id:
        targets.append(
            (booking.engineer_id, paths.engineer_hold(booking.engineer_id, booking_id))
        )
    return targets


async def write_holds(booking: Booking, booking_id: str) -> None:
    for owner_id, path in _hold_paths(booking, booking_id):
        hold = build_hold(booking, booking_id, owner_id)
        await document_crud.set(path, hold.model_dump(by_alias=True), merge=True)


async def remove_holds(
    booking: Booking, booking_id: str, keep: set[str] | None = None
) -> None:
    for _, path in _hold_paths(booking, booking_id):
        if keep and path in keep:
            continue
        await document_crud.delete(path)


async def _claim_sequence(booking_id: str, timestamp: datetime | None) -> bool:
    """
    Record ``timestamp`` as the latest hold-affecting event for the booking.
    Returns False when a newer event has already been applied.
    Must run inside a transaction together with the hold write it guards.
    """
    if timestamp is None:
        return True
    path = paths.booking_sync_state(booking_id)
    state = await document_crud.get(path) or {}
    last = state.get("lastEventTime")
    if last and datetime.fromisoformat(last) > timestamp:
        return False
    await document_crud.set(path, {"lastEventTime": timestamp}, merge=True)
    return True


def alert_reason(before: Booking | None, after: Booking | None) -> str | None:
    if after is None:
        return "cancelled" if before is not None else None
    if before is None:
        return "created"
    if (
        after.status == BookingStatus.CANCELLED
        and before.status != BookingStatus.CANCELLED
    ):
        return "cancelled"
    changed = any(
        getattr(before, field) != getattr(after, field) for field in _WATCHED_FIELDS
    )
    return "updated" if changed else None


async def _recipients(booking: Booking, booking_id: str) -> list[str | None]:
    try:
        owner_id = await resolve_studio_owner_id(booking.studio_id)
    except Exception:
        logger.warning(
            "Studio owner lookup failed for booking {}; owner not notified",
            booking_id,
            exc_info=True,
        )
        owner_id = None
    return [booking.artist_id, booking.engineer_id, owner_id]


async def send_booking_alert(
    booking: Booking,
    booking_id: str,
    reason: str,
    event_id: str | None = None,
) -> list[str]:
    payload = AlertPayload(
        title=_ALERT_TITLES.get(reason, "Booking update"),
        message=(
            f"Session {booking.status.value} for "
            f"{format_session_time(booking.resolved_start)}"
        ),
        category=AlertCategory.BOOKING,
        deeplink=deeplink("bookings", booking_id),
    )
    recipients = await _recipients(booking, booking_id)
    return await dispatch(recipients, payload, event_id=event_id, reason=reason)


async def handle_booking_change(booking_id: str, event: ChangeEvent) -> TriggerResult:
    result = TriggerResult(trigger=TRIGGER, document=paths.booking(booking_id))

    try:
        before = (
            Booking.model_validate(event.before) if event.before is not None else None
        )
        after = Booking.model_validate(event.after) if event.after is not None else None
    except ValidationError:
        logger.warning("Malformed booking {}; event ignored", booking_id, exc_info=True)
        result.skipped = True
        return result

    if before is None and after is None:
        result.skipped = True
        return result

    transition = classify(before, after)
    if not transition.allowed:
        logger.warning(
            "Booking {} went {} -> {}, which is not an allowed transition",
            booking_id,
            transition.before,
            transition.after,
        )

    action = transition.hold_action
    if action != HoldAction.NONE:
        async with in_transaction():
            if not await _claim_sequence(booking_id, event.timestamp):
                logger.warning(
                    "Stale {} event for booking {}; holds left unchanged",
                    transition.edge,
                    booking_id,
                )
                result.actions.append("holds:stale")
            elif action == HoldAction.WRITE:
                await write_holds(after, booking_id)
                if before is not None:
                    # Studio or engineer reassigned: drop holds under the old owner
                    current = {path for _, path in _hold_paths(after, booking_id)}
                    await remove_holds(before, booking_id, keep=current)
                result.actions.append("holds:write")
            else:
                for snapshot in (before, after):
                    if snapshot is not None:
                        await remove_holds(snapshot, booking_id)
                result.actions.append("holds:remove")

    reason = alert_reason(before, after)
    if reason:
        notified = await send_booking_alert(
            after or before, booking_id, reason, event.event_id
        )
        result.actions.append(f"alert:{reason}:{len(notified)}")

    logger.info(
        "Booking {} synced: edge={} actions={}",
        booking_id,
        transition.edge,
        result.actions,
    )
    return result

