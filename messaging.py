"""Chats between a listing's provider and a claimant."""
import logging
from typing import Optional

from sqlmodel import Session, select

from errors import Forbidden, NotFound, ValidationError
from models import Chat, Listing, Message, User

logger = logging.getLogger(__name__)

SYSTEM_SENDER = "system"
SYSTEM_NAME = "System"


def find_or_create_chat(session: Session, listing: Listing, claimant_id: int) -> Chat:
    """Chat for (listing, claimant), added to the session if it does not exist yet. Does not commit."""
    chat = session.exec(
        select(Chat).where(
            Chat.listing_id == listing.id,
            Chat.claimant_id == claimant_id,
        )
    ).first()

    if not chat:
        chat = Chat(
            listing_id=listing.id,
            provider_id=listing.provider_id,
            claimant_id=claimant_id,
        )
        session.add(chat)
        session.flush()
        logger.info("chat %s opened for listing %s", chat.id, listing.id)
    return chat


def chat_for_listing(session: Session, listing_id: int, user: User) -> Optional[Chat]:
    """The caller's chat on a listing, newest first when a provider has several."""
    return session.exec(
        select(Chat)
        .where(
            Chat.listing_id == listing_id,
            (Chat.claimant_id == user.id) | (Chat.provider_id == user.id),
        )
        .order_by(Chat.created_at.desc(), Chat.id.desc())
    ).first()


def add_system_message(chat: Chat, text: str) -> Message:
    msg = Message(chat_id=chat.id, sender_id=None, sender_name=SYSTEM_NAME, text=text)
    chat.messages.append(msg)
    return msg


def append_message(session: Session, chat: Chat, sender: User, text: str) -> Message:
    if sender.id not in chat.participants:
        raise Forbidden("Not a participant of this chat")
    text = (text or "").strip()
    if not text:
        raise ValidationError("Message text is required")

    msg = Message(chat_id=chat.id, sender_id=sender.id, sender_name=sender.name, text=text)
    chat.messages.append(msg)
    session.add(chat)
    session.commit()
    session.refresh(msg)
    return msg


def post_message(session: Session, listing_id: int, sender: User, text: str) -> Chat:
    """
    Append a message to the sender's chat on a listing.

    Anyone other than the provider gets a chat opened on their first message.
    The provider can only answer in a chat that already exists.
    """
    if not (text or "").strip():
        raise ValidationError("Message text is required")

    listing = session.get(Listing, listing_id)
    if not listing:
        raise NotFound("Listing not found")

    if listing.provider_id == sender.id:
        chat = chat_for_listing(session, listing_id, sender)
        if not chat:
            raise NotFound("No chat for this listing yet")
    else:
        chat = find_or_create_chat(session, listing, sender.id)

    append_message(session, chat, sender, text)
    session.refresh(chat)
    return chat
