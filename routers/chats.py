# routers/chats.py
import logging
from typing import Dict, List, Set

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlmodel import Session, select

from auth import get_current_user, user_from_token
from db import get_session
from errors import MarketError
from messaging import append_message, chat_for_listing, post_message
from models import Chat, Message, User
from schemas import (
    ChatListItem,
    ChatPublic,
    ListingSummary,
    MessageCreate,
    UserSummary,
    chat_public,
    message_public,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chats", tags=["chats"])
ws_router = APIRouter(tags=["chats"])


@router.get("/my", response_model=List[ChatListItem])
def get_my_chats(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """
    Every chat the current user takes part in, as provider or claimant,
    with the listing, both participants and the last message.
    """
    chats = session.exec(
        select(Chat)
        .where((Chat.claimant_id == current_user.id) | (Chat.provider_id == current_user.id))
        .order_by(Chat.created_at.desc())
    ).all()

    result: List[ChatListItem] = []
    for chat in chats:
        last_msg = session.exec(
            select(Message).where(Message.chat_id == chat.id).order_by(Message.id.desc())
        ).first()

        result.append(
            ChatListItem(
                id=chat.id,
                listing=ListingSummary(id=chat.listing.id, title=chat.listing.title, image=chat.listing.image),
                provider=UserSummary(id=chat.provider.id, name=chat.provider.name),
                claimant=UserSummary(id=chat.claimant.id, name=chat.claimant.name),
                last_message=last_msg.text if last_msg else None,
            )
        )

    return result


@router.get("/{listing_id}", response_model=ChatPublic)
def get_chat(
    listing_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    chat = chat_for_listing(session, listing_id, current_user)
    if not chat:
        return ChatPublic(listing_id=listing_id)
    return chat_public(chat)


@router.post("/{listing_id}/message", response_model=ChatPublic)
def send_message(
    listing_id: int,
    body: MessageCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return chat_public(post_message(session, listing_id, current_user, body.text))


# -------------------------
# WEBSOCKETS
# -------------------------
class ConnectionManager:
    def __init__(self):
        self.rooms: Dict[int, Set[WebSocket]] = {}

    async def connect(self, chat_id: int, ws: WebSocket):
        await ws.accept()
        self.rooms.setdefault(chat_id, set()).add(ws)

    def disconnect(self, chat_id: int, ws: WebSocket):
        self.rooms.get(chat_id, set()).discard(ws)

    async def broadcast(self, chat_id: int, message: dict):
        for ws in list(self.rooms.get(chat_id, set())):
            try:
                await ws.send_json(message)
            except (WebSocketDisconnect, RuntimeError):
                self.disconnect(chat_id, ws)


manager = ConnectionManager()


@ws_router.websocket("/ws/chats/{chat_id}")
async def chat_ws(
    chat_id: int,
    ws: WebSocket,
    token: str = Query(...),
    session: Session = Depends(get_session),
):
    user = user_from_token(token, session)
    chat = session.get(Chat, chat_id)

    if not user or not chat or user.id not in chat.participants:
        await ws.close(code=1008)
        return

    await manager.connect(chat_id, ws)
    logger.info("user %s joined chat %s", user.id, chat_id)
    try:
        while True:
            try:
                data = await ws.receive_json()
            except (ValueError, KeyError):
                await ws.send_json({"error": "Message must be JSON"})
                continue

            try:
                text = data.get("text", "") if isinstance(data, dict) else ""
                msg = append_message(session, chat, user, text)
            except MarketError as e:
                await ws.send_json({"error": e.detail})
                continue

            await manager.broadcast(chat_id, message_public(msg).model_dump(mode="json", by_alias=True))
    except WebSocketDisconnect:
        logger.info("user %s left chat %s", user.id, chat_id)
    finally:
        manager.disconnect(chat_id, ws)
