from __future__ import annotations

from loguru import logger
from pydantic import ValidationError

from app import paths
from app.crud import document_crud
from app.notifications import deeplink, dispatch
from app.schemas import (
    AlertCategory,
    AlertPayload,
    ChangeEvent,
    ChatMessage,
    TriggerResult,
)

TRIGGER = "chat_message"
DEFAULT_PREVIEW = "You have a new message"


def resolve_participant_ids(conversation: dict) -> list[str]:
    """Participants may be stored as an id list, a list of objects or a map."""
    if isinstance(conversation.get("participantIds"), list):
        return [pid for pid in conversation["participantIds"] if pid]

    participants = conversation.get("participants")
    if isinstance(participants, list):
        return [
            p["id"] for p in participants if isinstance(p, dict) and p.get("id")
        ]
    if isinstance(participants, dict):
        return list(participants.keys())
    return []


def message_preview(message: ChatMessage, conversation: dict) -> str:
    return (
        (message.content.text if message.content else None)
        or message.last_message_preview
        or conversation.get("displayName")
        or DEFAULT_PREVIEW
    )


async def handle_chat_message(
    thread_id: str, message_id: str, event: ChangeEvent
) -> TriggerResult:
    result = TriggerResult(
        trigger=TRIGGER, document=paths.conversation_message(thread_id, message_id)
    )
    if not event.is_create:
        result.skipped = True
        return result

    try:
        message = ChatMessage.model_validate(event.after)
    except ValidationError:
        logger.warning("Malformed message {}; event ignored", message_id, exc_info=True)
        result.skipped = True
        return result

    conversation = await document_crud.get(paths.conversation(thread_id))
    if conversation is None:
        logger.info("Conversation {} not found; no fan-out", thread_id)
        result.skipped = True
        return result

    recipients = [
        pid
        for pid in resolve_participant_ids(conversation)
        if pid != message.sender_id
    ]
    if not recipients:
        result.skipped = True
        return result

    notified = await dispatch(
        recipients,
        AlertPayload(
            title="New message",
            message=message_preview(message, conversation),
            category=AlertCategory.CHAT,
            deeplink=deeplink("chat", thread_id),
        ),
        # The message path identifies the delivery even without an event id
        event_id=event.event_id or paths.conversation_message(thread_id, message_id),
        reason="chat",
    )
    logger.info("Message {} fanned out to {} participant(s)", message_id, len(notified))
    result.actions.append(f"alert:chat:{len(notified)}")
    return result
