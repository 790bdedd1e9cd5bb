"""
Booking lifecycle as an explicit state machine.

Side effects of the sync trigger hang off the *edge* a write represents,
never off raw before/after diffing, so this module can be tested on its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from app.schemas import Booking, BookingStatus

OCCUPYING_STATUSES = frozenset({BookingStatus.CONFIRMED})
TERMINAL_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED})

VALID_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
        BookingStatus.RESCHEDULED,
    },
    BookingStatus.RESCHEDULED: {
        BookingStatus.PENDING,
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
    },
    BookingStatus.CONFIRMED: {
        BookingStatus.COMPLETED,
        BookingStatus.CANCELLED,
        BookingStatus.RESCHEDULED,
    },
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}


class BookingEdge(StrEnum):
    CREATED = "created"
    DELETED = "deleted"
    ENTERED_OCCUPYING = "entered_occupying"  # e.g. pending -> confirmed
    LEFT_OCCUPYING = "left_occupying"  # e.g. confirmed -> cancelled
    MOVED_WHILE_OCCUPYING = "moved_while_occupying"  # confirmed, hold changed
    STATUS_CHANGED = "status_changed"  # neither side occupying
    UNCHANGED = "unchanged"


class HoldAction(StrEnum):
    WRITE = "write"
    REMOVE = "remove"
    NONE = "none"


def is_valid_transition(old: BookingStatus, new: BookingStatus) -> bool:
    return old == new or new in VALID_TRANSITIONS.get(old, set())


@dataclass(frozen=True)
class BookingTransition:
    edge: BookingEdge
    before: BookingStatus | None
    after: BookingStatus | None

    @property
    def allowed(self) -> bool:
        if self.before is None or self.after is None:
            return True
        return is_valid_transition(self.before, self.after)

    @property
    def hold_action(self) -> HoldAction:
        if self.edge in (BookingEdge.DELETED, BookingEdge.LEFT_OCCUPYING):
            return HoldAction.REMOVE
        if self.edge in (
            BookingEdge.ENTERED_OCCUPYING,
            BookingEdge.MOVED_WHILE_OCCUPYING,
        ):
            return HoldAction.WRITE
        if self.edge == BookingEdge.CREATED and self.after in OCCUPYING_STATUSES:
            return HoldAction.WRITE
        # Entering a terminal state clears any hold left behind by a lost write
        if self.edge == BookingEdge.STATUS_CHANGED and self.after in TERMINAL_STATUSES:
            return HoldAction.REMOVE
        return HoldAction.NONE


def _hold_changed(before: Booking, after: Booking) -> bool:
    """Whether a confirmed booking now blocks a different window or calendar."""
    return (
        before.resolved_window != after.resolved_window
        or before.duration_minutes != after.duration_minutes
        or before.studio_id != after.studio_id
        or before.room_id != after.room_id
        or before.engineer_id != after.engineer_id
    )


def classify(before: Booking | None, after: Booking | None) -> BookingTransition:
    """Map a before/after pair of booking snapshots onto a lifecycle edge."""
    if before is None and after is None:
        raise ValueError("A booking change needs a before or an after snapshot")

    if after is None:
        return BookingTransition(BookingEdge.DELETED, before.status, None)
    if before is None:
        return BookingTransition(BookingEdge.CREATED, None, after.status)

    was_occupying = before.status in OCCUPYING_STATUSES
    is_occupying = after.status in OCCUPYING_STATUSES

    if is_occupying and not was_occupying:
        edge = BookingEdge.ENTERED_OCCUPYING
    elif was_occupying and not is_occupying:
        edge = BookingEdge.LEFT_OCCUPYING
    elif is_occupying and _hold_changed(before, after):
        edge = BookingEdge.MOVED_WHILE_OCCUPYING
    elif before.status != after.status:
        edge = BookingEdge.STATUS_CHANGED
    else:
        edge = BookingEdge.UNCHANGED

    return BookingTransition(edge, before.status, after.status)
