import asyncio
import hmac
import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Header, Path, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_chat_feed, get_relay
from config import settings
from database import get_db
from schemas.chat import SESSION_ID_PATTERN, ChatMessageIn
from services import chat as chat_service
from services.errors import AccessDeniedError
from services.feed import ChangeFeed
from services.relay import MessageRelay

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("/messages")
async def post_message(
    body: ChatMessageIn,
    db: AsyncSession = Depends(get_db),
    relay: MessageRelay = Depends(get_relay),
    feed: ChangeFeed = Depends(get_chat_feed),
):
    msg = await chat_service.post_user_message(
        db,
        relay,
        feed,
        session_id=body.session_id,
        name=body.name,
        email=body.email,
        message=body.message,
        timestamp=body.timestamp,
    )
    return {"success": True, "message": "Message sent successfully", "id": msg.id}


@router.get("/{session_id}/messages")
async def poll_messages(
    session_id: str = Path(..., pattern=SESSION_ID_PATTERN),
    after: Optional[int] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
):
    messages = await chat_service.list_messages(db, session_id, after=after)
    return [chat_service.message_to_event(m) for m in messages]


@router.post("/webhook")
async def telegram_webhook(
    update: dict[str, Any] = Body(...),
    secret: Optional[str] = Header(None, alias="X-Telegram-Bot-Api-Secret-Token"),
    db: AsyncSession = Depends(get_db),
    feed: ChangeFeed = Depends(get_chat_feed),
):
    """Route a Telegram reply back to the chat session named in the replied-to message."""
    expected = settings.telegram_webhook_secret
    if expected and not hmac.compare_digest(secret or "", expected):
        raise AccessDeniedError("Invalid webhook secret")
    msg = await chat_service.record_admin_reply(db, update)
    if msg is None:
        return {"success": True, "routed": False}
    await db.commit()
    feed.publish(msg.session_id, chat_service.message_to_event(msg))
    return {"success": True, "routed": True, "sessionId": msg.session_id}


async def _wait_for_close(websocket: WebSocket) -> None:
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return


@router.websocket("/{session_id}/ws")
async def chat_socket(
    websocket: WebSocket,
    session_id: str,
    feed: ChangeFeed = Depends(get_chat_feed),
):
    """Push new messages for one session as they are committed."""
    await websocket.accept()
    async with feed.subscribe(session_id) as queue:
        closed = asyncio.create_task(_wait_for_close(websocket))
        try:
            while not closed.done():
                next_event = asyncio.create_task(queue.get())
                done, _ = await asyncio.wait({next_event, closed}, return_when=asyncio.FIRST_COMPLETED)
                if next_event in done:
                    await websocket.send_json(next_event.result())
                else:
                    next_event.cancel()
        finally:
            closed.cancel()
    logger.debug("Chat socket for %s closed", session_id)
