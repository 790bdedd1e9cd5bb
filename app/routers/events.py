"""
Document-change webhooks.

The backend posts one ChangeEvent per document write. A 2xx response
acknowledges the event; any error response makes the platform redeliver it,
so every handler must be safe to run again with the same event.
"""

from fastapi import APIRouter, Depends

from app.deps import verify_trigger_token
from app.schemas import ChangeEvent, TriggerResult
from app.triggers.booking import handle_booking_change
from app.triggers.chat import handle_chat_message
from app.triggers.download_requests import handle_download_request_change
from app.triggers.ratings import handle_rating_change
from app.triggers.search_tokens import handle_studio_write, handle_user_write

router = APIRouter(
    prefix="/triggers",
    tags=["triggers"],
    dependencies=[Depends(verify_trigger_token)],
)


@router.post("/bookings/{booking_id}", response_model=TriggerResult)
async def booking_written(booking_id: str, event: ChangeEvent) -> TriggerResult:
    return await handle_booking_change(booking_id, event)


@router.post(
    "/users/{owner_id}/media/{media_id}/ratings/{reviewer_id}",
    response_model=TriggerResult,
)
async def media_rating_written(
    owner_id: str,
    media_id: str,
    reviewer_id: str,
    event: ChangeEvent,
) -> TriggerResult:
    return await handle_rating_change(owner_id, media_id, reviewer_id, event)


@router.post("/beat-download-requests/{request_id}", response_model=TriggerResult)
async def download_request_written(
    request_id: str, event: ChangeEvent
) -> TriggerResult:
    return await handle_download_request_change(request_id, event)


@router.post(
    "/conversations/{thread_id}/messages/{message_id}",
    response_model=TriggerResult,
)
async def chat_message_written(
    thread_id: str, message_id: str, event: ChangeEvent
) -> TriggerResult:
    return await handle_chat_message(thread_id, message_id, event)


@router.post("/users/{user_id}", response_model=TriggerResult)
async def user_written(user_id: str, event: ChangeEvent) -> TriggerResult:
    return await handle_user_write(user_id, event)


@router.post("/studios/{studio_id}", response_model=TriggerResult)
async def studio_written(studio_id: str, event: ChangeEvent) -> TriggerResult:
    return await handle_studio_write(studio_id, event)
