"""
Beat download-request lifecycle.

A new request notifies the producer. The producer's decision is mirrored
into ``users/{requester}/driveDownloadRequests/{requestId}`` so the
requester can read it, and the requester is told about it.
"""

from __future__ import annotations

from loguru import logger
from pydantic import ValidationError

from app import paths
from app.crud import DELETE_FIELD, SERVER_TIMESTAMP, document_crud
from app.lookups import get_user_profile
from app.notifications import dispatch
from app.schemas import (
    AlertCategory,
    AlertPayload,
    ChangeEvent,
    DownloadRequest,
    DownloadRequestStatus,
    TriggerResult,
    UserProfile,
)

TRIGGER = "beat_download_request"
REQUESTED_BEAT_PLACEHOLDER = "your requested beat"
CATALOG_BEAT_PLACEHOLDER = "one of your beats"


async def _catalog_title(request: DownloadRequest) -> str | None:
    if not request.producer_id or not request.beat_id:
        return None
    try:
        beat = await document_crud.get(paths.beat(request.producer_id, request.beat_id))
    except Exception:
        logger.warning(
            "Beat lookup failed for {}/{}",
            request.producer_id,
            request.beat_id,
            exc_info=True,
        )
        return None
    return (beat or {}).get("title") or None


async def resolve_beat_title(request: DownloadRequest) -> str:
    """Cached title on the request, then the catalog entry, then a placeholder."""
    if request.beat_title:
        return request.beat_title
    return await _catalog_title(request) or REQUESTED_BEAT_PLACEHOLDER


def build_mirror_payload(request: DownloadRequest, beat_title: str | None) -> dict:
    payload = {
        "status": request.status,
        "updatedAt": request.updated_at or SERVER_TIMESTAMP,
        "producerId": request.producer_id,
        "requesterId": request.requester_id,
        "beatId": request.beat_id,
    }
    if request.created_at:
        payload["createdAt"] = request.created_at
    if beat_title:
        payload["beatTitle"] = beat_title

    if request.status == DownloadRequestStatus.FULFILLED and request.download_url:
        payload["downloadURL"] = request.download_url
    else:
        payload["downloadURL"] = DELETE_FIELD
    return payload


_DECISION_ALERTS = {
    DownloadRequestStatus.FULFILLED: (
        "Download ready",
        'Files for "{title}" are ready to download.',
    ),
    DownloadRequestStatus.REJECTED: (
        "Download request declined",
        'The producer declined your request for "{title}".',
    ),
}


async def _requester_profile(requester_id: str | None) -> UserProfile:
    if not requester_id:
        return UserProfile()
    try:
        return await get_user_profile(requester_id)
    except Exception:
        logger.warning(
            "Profile lookup failed for requester {}", requester_id, exc_info=True
        )
        return UserProfile()


async def _on_created(
    request_id: str, request: DownloadRequest, event: ChangeEvent, result: TriggerResult
) -> TriggerResult:
    if not request.producer_id or request.producer_id == request.requester_id:
        result.skipped = True
        return result

    requester = await _requester_profile(request.requester_id)
    beat_title = (
        await _catalog_title(request) or request.beat_title or CATALOG_BEAT_PLACEHOLDER
    )
    await dispatch(
        [request.producer_id],
        AlertPayload(
            title="Download request received",
            message=f'{requester.label} requested files for "{beat_title}".',
            category=AlertCategory.MEDIA,
        ),
        event_id=event.event_id,
        reason="download_requested",
    )
    logger.info("Producer {} told about request {}", request.producer_id, request_id)
    result.actions.append("alert:download_requested:1")
    return result


async def _on_decided(
    request_id: str,
    before: DownloadRequest,
    after: DownloadRequest,
    event: ChangeEvent,
    result: TriggerResult,
) -> TriggerResult:
    if before.status == after.status:
        result.skipped = True
        return result
    if not after.requester_id or after.requester_id == after.producer_id:
        result.skipped = True
        return result
    if after.status not in _DECISION_ALERTS:
        result.skipped = True
        return result

    status = DownloadRequestStatus(after.status)
    beat_title = await resolve_beat_title(after)
    await document_crud.set(
        paths.drive_download_request(after.requester_id, request_id),
        build_mirror_payload(after, beat_title),
        merge=True,
    )
    result.actions.append(f"mirror:{status.value}")

    title, message = _DECISION_ALERTS[status]
    await dispatch(
        [after.requester_id],
        AlertPayload(
            title=title,
            message=message.format(title=beat_title),
            category=AlertCategory.MEDIA,
        ),
        event_id=event.event_id,
        reason=f"download_{status.value}",
    )
    result.actions.append(f"alert:download_{status.value}:1")
    logger.info(
        "Request {} {} mirrored to requester {}",
        request_id,
        status.value,
        after.requester_id,
    )
    return result


async def handle_download_request_change(
    request_id: str, event: ChangeEvent
) -> TriggerResult:
    result = TriggerResult(trigger=TRIGGER, document=paths.download_request(request_id))

    try:
        before = (
            DownloadRequest.model_validate(event.before)
            if event.before is not None
            else None
        )
        after = (
            DownloadRequest.model_validate(event.after)
            if event.after is not None
            else None
        )
    except ValidationError:
        logger.warning(
            "Malformed download request {}; event ignored", request_id, exc_info=True
        )
        result.skipped = True
        return result

    if event.is_create:
        return await _on_created(request_id, after, event, result)
    if event.is_update:
        return await _on_decided(request_id, before, after, event, result)

    result.skipped = True
    return result
