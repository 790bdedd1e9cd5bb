from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _utc(v: datetime | None) -> datetime | None:
    if v is None:
        return None
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


class DocumentModel(BaseModel):
    """Base for store documents: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------


class BookingStatus(StrEnum):
    PENDING = "pending"  # requested by the artist, awaiting the studio
    CONFIRMED = "confirmed"  # accepted, occupies studio and engineer time
    COMPLETED = "completed"  # session happened
    CANCELLED = "cancelled"  # called off by any participant
    RESCHEDULED = "rescheduled"  # new time proposed, awaiting agreement


class Booking(DocumentModel):
    artist_id: str | None = None
    studio_id: str | None = None
    room_id: str | None = None
    engineer_id: str | None = None

    status: BookingStatus = BookingStatus.PENDING

    requested_start: datetime
    requested_end: datetime
    confirmed_start: datetime | None = None
    confirmed_end: datetime | None = None
    duration_minutes: int | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator(
        "requested_start",
        "requested_end",
        "confirmed_start",
        "confirmed_end",
        "created_at",
        "updated_at",
        mode="after",
    )
    @classmethod
    def normalize_timezone(cls, v: datetime | None) -> datetime | None:
        return _utc(v)

    @property
    def resolved_start(self) -> datetime:
        return self.confirmed_start or self.requested_start

    @property
    def resolved_end(self) -> datetime:
        return self.confirmed_end or self.requested_end

    @property
    def resolved_window(self) -> tuple[datetime, datetime]:
        return self.resolved_start, self.resolved_end


class AvailabilityHold(DocumentModel):
    """Calendar-blocking mirror of a confirmed booking."""

    kind: str = "bookingHold"
    owner_id: str
    studio_id: str | None
    room_id: str | None
    engineer_id: str | None
    duration_minutes: int
    start_date: datetime
    end_date: datetime
    source_booking_id: str
    created_by: str | None
    notes: str = "Synced from booking"
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------


class AlertCategory(StrEnum):
    BOOKING = "booking"
    CHAT = "chat"
    MEDIA = "media"


class AlertPayload(BaseModel):
    title: str
    message: str
    category: AlertCategory
    deeplink: str | None = None


class Alert(DocumentModel):
    id: str
    title: str
    message: str
    category: str
    deeplink: str | None = None
    is_read: bool = False
    created_at: datetime | None = None


# ---------------------------------------------------------------------------
# Media, beats and download requests
# ---------------------------------------------------------------------------


class MediaItem(DocumentModel):
    title: str | None = None
    display_category_title: str | None = None
    ratings: dict[str, int | float] = Field(default_factory=dict)


class UserProfile(DocumentModel):
    display_name: str | None = None
    username: str | None = None

    @property
    def label(self) -> str:
        return self.display_name or self.username or "Someone"


class DownloadRequestStatus(StrEnum):
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


class DownloadRequest(DocumentModel):
    producer_id: str | None = None
    requester_id: str | None = None
    beat_id: str | None = None
    beat_title: str | None = None
    # Unknown statuses are tolerated and treated as no-ops
    status: str | None = None
    download_url: str | None = Field(default=None, alias="downloadURL")
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class MessageContent(DocumentModel):
    text: str | None = None


class ChatMessage(DocumentModel):
    sender_id: str | None = None
    content: MessageContent | None = None
    last_message_preview: str | None = None


# ---------------------------------------------------------------------------
# Trigger I/O
# ---------------------------------------------------------------------------


class ChangeEvent(BaseModel):
    """A document write as delivered by the backend: before/after snapshots."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    event_id: str | None = None
    timestamp: datetime | None = None
    before: dict | None = None
    after: dict | None = None

    @field_validator("timestamp", mode="after")
    @classmethod
    def normalize_timezone(cls, v: datetime | None) -> datetime | None:
        return _utc(v)

    @property
    def is_create(self) -> bool:
        return self.before is None and self.after is not None

    @property
    def is_delete(self) -> bool:
        return self.before is not None and self.after is None

    @property
    def is_update(self) -> bool:
        return self.before is not None and self.after is not None


class TriggerResult(BaseModel):
    trigger: str
    document: str
    actions: list[str] = Field(default_factory=list)
    skipped: bool = False


class MaintenanceReport(BaseModel):
    job: str
    scanned: int = 0
    updated: int = 0
