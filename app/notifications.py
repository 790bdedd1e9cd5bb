"""
Notification dispatcher and the per-user alert sink.

An alert is written once by the dispatcher and afterwards only ever flipped
to read by its recipient.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from uuid import UUID, uuid4, uuid5

from loguru import logger

from app import paths
from app.crud import SERVER_TIMESTAMP, document_crud
from app.schemas import Alert, AlertPayload
from app.settings import APP_SCHEME

ALERT_NAMESPACE = UUID("5d0f7c2e-8a4b-4c1e-9f3a-2b6d7e8f9a10")


def deeplink(*parts: str) -> str:
    return f"{APP_SCHEME}://" + "/".join(parts)


def alert_id_for(event_id: str | None, reason: str, recipient_id: str) -> str:
    """
    Deterministic alert id for a redelivered event, random otherwise.
    The same (event, reason, recipient) always maps to the same alert.
    """
    if not event_id:
        return uuid4().hex
    return uuid5(ALERT_NAMESPACE, f"{event_id}:{reason}:{recipient_id}").hex


def unique_recipients(*user_ids: str | None) -> list[str]:
    """Drop empty ids and duplicates, keeping first-seen order."""
    return list(dict.fromkeys(uid for uid in user_ids if uid))


async def create_alert(
    user_id: str | None,
    payload: AlertPayload,
    alert_id: str | None = None,
) -> str | None:
    """Append one unread alert for ``user_id``. A missing recipient is a no-op."""
    if not user_id:
        return None

    alert_id = alert_id or uuid4().hex
    created = await document_crud.create(
        paths.alert(user_id, alert_id),
        {
            "title": payload.title,
            "message": payload.message,
            "category": payload.category.value,
            "deeplink": payload.deeplink,
            "isRead": False,
            "createdAt": SERVER_TIMESTAMP,
        },
    )
    if created:
        logger.info("Alert {} created for user {}", alert_id, user_id)
    else:
        logger.debug("Alert {} already delivered to user {}", alert_id, user_id)
    return alert_id


async def dispatch(
    recipients: Iterable[str | None],
    payload: AlertPayload,
    event_id: str | None = None,
    reason: str = "",
) -> list[str]:
    """Fan one payload out to every distinct recipient. Returns who was notified."""
    targets = unique_recipients(*recipients)
    await asyncio.gather(
        *(
            create_alert(uid, payload, alert_id_for(event_id, reason, uid))
            for uid in targets
        )
    )
    return targets


async def list_alerts(user_id: str) -> list[Alert]:
    """All alerts of a user, newest first."""
    docs = await document_crud.list_collection(paths.alerts(user_id))
    alerts = [Alert.model_validate({**data, "id": doc_id}) for doc_id, data in docs]
    return sorted(
        alerts,
        key=lambda a: a.created_at.isoformat() if a.created_at else "",
        reverse=True,
    )


async def mark_alert_read(user_id: str, alert_id: str) -> Alert | None:
    path = paths.alert(user_id, alert_id)
    if not await document_crud.update(path, {"isRead": True}):
        return None
    data = await document_crud.get(path)
    return Alert.model_validate({**(data or {}), "id": alert_id})
