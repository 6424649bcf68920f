from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import ChatMessage, SenderType
from services.feed import ChangeFeed
from services.relay import MessageRelay, extract_session_id, format_chat

logger = logging.getLogger(__name__)

CHAT_HISTORY_LIMIT = 200


def message_to_event(msg: ChatMessage) -> dict[str, Any]:
    return {
        "id": msg.id,
        "sessionId": msg.session_id,
        "senderType": msg.sender_type,
        "senderName": msg.sender_name,
        "message": msg.message,
        "createdAt": msg.created_at.isoformat() if msg.created_at else None,
    }


async def store_message(
    session: AsyncSession,
    *,
    session_id: str,
    sender_type: SenderType,
    message: str,
    sender_name: str | None = None,
    sender_email: str | None = None,
) -> ChatMessage:
    msg = ChatMessage(
        session_id=session_id,
        sender_type=sender_type.value,
        sender_name=sender_name,
        sender_email=sender_email,
        message=message,
        created_at=datetime.now(timezone.utc),
    )
    session.add(msg)
    await session.flush()
    return msg


async def post_user_message(
    session: AsyncSession,
    relay: MessageRelay,
    feed: ChangeFeed,
    *,
    session_id: str,
    name: str,
    email: str,
    message: str,
    timestamp: str | None = None,
) -> ChatMessage:
    """
    Persist the visitor's message, publish it to live subscribers, then relay it.
    The row is kept and published even if the relay fails.
    """
    msg = await store_message(
        session,
        session_id=session_id,
        sender_type=SenderType.USER,
        message=message,
        sender_name=name,
        sender_email=email,
    )
    await session.commit()
    feed.publish(session_id, message_to_event(msg))
    await relay.send(format_chat(
        name=name,
        email=email,
        message=message,
        session_id=session_id,
        timestamp=timestamp,
    ))
    logger.info("Chat message relayed for session %s", session_id)
    return msg


async def list_messages(session: AsyncSession, session_id: str, after: int | None = None) -> list[ChatMessage]:
    stmt = select(ChatMessage).where(ChatMessage.session_id == session_id)
    if after is not None:
        stmt = stmt.where(ChatMessage.id > after)
    stmt = stmt.order_by(ChatMessage.id.asc()).limit(CHAT_HISTORY_LIMIT)
    result = await session.execute(stmt)
    return list(result.scalars().all())


def parse_webhook_reply(update: dict[str, Any]) -> tuple[str, str, str | None] | None:
    """
    Pull (session_id, reply text, sender name) out of a Telegram update.
    The session comes from the message being replied to, falling back to the
    reply's own text. Returns None for updates that are not routable replies.
    """
    message = update.get("message") or update.get("edited_message") or {}
    text = (message.get("text") or "").strip()
    if not text:
        return None
    replied = message.get("reply_to_message") or {}
    session_id = extract_session_id(replied.get("text")) or extract_session_id(text)
    if not session_id:
        return None
    sender = message.get("from") or {}
    sender_name = " ".join(p for p in (sender.get("first_name"), sender.get("last_name")) if p) or None
    return session_id, text, sender_name


async def record_admin_reply(session: AsyncSession, update: dict[str, Any]) -> ChatMessage | None:
    parsed = parse_webhook_reply(update)
    if parsed is None:
        logger.info("Ignoring webhook update without a chat session marker")
        return None
    session_id, text, sender_name = parsed
    return await store_message(
        session,
        session_id=session_id,
        sender_type=SenderType.ADMIN,
        message=text,
        sender_name=sender_name or "Support",
    )
