"""Well-known document paths. Every derived record is keyed off its source id."""

BOOKINGS = "bookings"
STUDIOS = "studios"
USERS = "users"
CONVERSATIONS = "conversations"
BEAT_DOWNLOAD_REQUESTS = "beatDownloadRequests"
BOOKING_SYNC_STATE = "bookingSyncState"

ALERTS = "alerts"
AVAILABILITY = "availability"
MEDIA = "media"
RATINGS = "ratings"
BEAT_CATALOG = "beatCatalog"
DRIVE_DOWNLOAD_REQUESTS = "driveDownloadRequests"


def join(*parts: str) -> str:
    return "/".join(parts)


def split(path: str) -> tuple[str, str]:
    """Return (collection path, document id) for a document path."""
    parent, _, doc_id = path.rpartition("/")
    if not parent or not doc_id:
        raise ValueError(f"Not a document path: {path!r}")
    return parent, doc_id


def booking(booking_id: str) -> str:
    return join(BOOKINGS, booking_id)


def studio(studio_id: str) -> str:
    return join(STUDIOS, studio_id)


def user(user_id: str) -> str:
    return join(USERS, user_id)


def studio_hold(studio_id: str, booking_id: str) -> str:
    return join(STUDIOS, studio_id, AVAILABILITY, booking_id)


def engineer_hold(engineer_id: str, booking_id: str) -> str:
    return join(USERS, engineer_id, AVAILABILITY, booking_id)


def alerts(user_id: str) -> str:
    return join(USERS, user_id, ALERTS)


def alert(user_id: str, alert_id: str) -> str:
    return join(alerts(user_id), alert_id)


def media(owner_id: str, media_id: str) -> str:
    return join(USERS, owner_id, MEDIA, media_id)


def media_rating(owner_id: str, media_id: str, reviewer_id: str) -> str:
    return join(media(owner_id, media_id), RATINGS, reviewer_id)


def beat(producer_id: str, beat_id: str) -> str:
    return join(USERS, producer_id, BEAT_CATALOG, beat_id)


def download_request(request_id: str) -> str:
    return join(BEAT_DOWNLOAD_REQUESTS, request_id)


def drive_download_request(requester_id: str, request_id: str) -> str:
    return join(USERS, requester_id, DRIVE_DOWNLOAD_REQUESTS, request_id)


def conversation(thread_id: str) -> str:
    return join(CONVERSATIONS, thread_id)


def conversation_message(thread_id: str, message_id: str) -> str:
    return join(CONVERSATIONS, thread_id, "messages", message_id)


def booking_sync_state(booking_id: str) -> str:
    return join(BOOKING_SYNC_STATE, booking_id)
