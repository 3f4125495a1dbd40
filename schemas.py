# schemas.py
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field, StrictInt
from pydantic.alias_generators import to_camel

from models import Category, Chat, Listing, Message, User, utcnow
from messaging import SYSTEM_SENDER


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# -------------------------
# Users
# -------------------------
class Location(CamelModel):
    lat: Optional[float] = None
    lng: Optional[float] = None
    address: Optional[str] = None


class UserPublic(CamelModel):
    id: int
    name: str
    email: Optional[str] = None
    rating: float = 0.0
    review_count: int = 0
    location: Location


class LocationUpdate(CamelModel):
    lat: float = Field(ge=-90, le=90, allow_inf_nan=False)
    lng: float = Field(ge=-180, le=180, allow_inf_nan=False)
    address: Optional[str] = None


# -------------------------
# Auth
# -------------------------
class SignupBody(CamelModel):
    name: str
    email: str
    password: str


class LoginBody(CamelModel):
    email: str
    password: str


class AuthResponse(CamelModel):
    token: str
    user: UserPublic


# -------------------------
# Listings
# -------------------------
class ListingCreate(CamelModel):
    title: str
    description: str
    category: Category = Field(alias="type")
    quantity: Optional[str] = None
    price: str = "Free"
    image: Optional[str] = None
    expires_at: datetime
    dietary: List[str] = []


class ListingUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[Category] = Field(default=None, alias="type")
    quantity: Optional[str] = None
    price: Optional[str] = None
    image: Optional[str] = None
    expires_at: Optional[datetime] = None
    dietary: Optional[List[str]] = None


class ReviewCreate(CamelModel):
    rating: StrictInt
    text: str = ""


class ReviewPublic(CamelModel):
    id: int
    user_id: int
    user_name: str = Field(alias="user")
    rating: int
    text: str
    date: datetime


class ListingPublic(CamelModel):
    id: int
    title: str
    description: str
    provider_id: int
    provider_name: str = Field(alias="provider")
    category: Category = Field(alias="type")
    quantity: Optional[str] = None
    price: str
    location: Location
    image: Optional[str] = None
    expires_at: datetime
    status: str
    claimed_by: Optional[int] = None
    rating: float
    review_count: int
    reviews: List[ReviewPublic] = []
    dietary: List[str] = []
    created_at: datetime


class BulkUploadResult(CamelModel):
    success: bool
    listings_created: int
    listings_details: List[dict]
    errors: List[str]
    total_rows: int


# -------------------------
# Chats
# -------------------------
class MessageCreate(CamelModel):
    text: str


class MessagePublic(CamelModel):
    id: int
    sender: Union[int, str]
    sender_name: str
    text: str
    timestamp: datetime


class ChatPublic(CamelModel):
    id: Optional[int] = None
    listing_id: Optional[int] = None
    participants: List[int] = []
    messages: List[MessagePublic] = []
    created_at: Optional[datetime] = None


class ClaimResult(CamelModel):
    listing: ListingPublic
    chat_id: int


class ListingSummary(CamelModel):
    id: int
    title: str
    image: Optional[str] = None


class UserSummary(CamelModel):
    id: int
    name: str


class ChatListItem(CamelModel):
    id: int
    listing: ListingSummary
    provider: UserSummary
    claimant: UserSummary
    last_message: Optional[str] = None


# -------------------------
# Wishlist
# -------------------------
class WishlistEntryPublic(CamelModel):
    user_id: int
    listing_id: int
    created_at: datetime


# -------------------------
# Builders
# -------------------------
def user_public(user: User, include_email: bool = True) -> UserPublic:
    return UserPublic(
        id=user.id,
        name=user.name,
        email=user.email if include_email else None,
        rating=user.rating,
        review_count=user.review_count,
        location=Location(lat=user.lat, lng=user.lng, address=user.address),
    )


def listing_public(listing: Listing, now: Optional[datetime] = None) -> ListingPublic:
    return ListingPublic(
        id=listing.id,
        title=listing.title,
        description=listing.description,
        provider_id=listing.provider_id,
        provider_name=listing.provider_name,
        category=listing.category,
        quantity=listing.quantity,
        price=listing.price,
        location=Location(lat=listing.lat, lng=listing.lng, address=listing.address),
        image=listing.image,
        expires_at=listing.expires_at,
        status=listing.status_at(now or utcnow()).value,
        claimed_by=listing.claimed_by,
        rating=listing.rating,
        review_count=listing.review_count,
        reviews=[
            ReviewPublic(
                id=r.id,
                user_id=r.user_id,
                user_name=r.user_name,
                rating=r.rating,
                text=r.text,
                date=r.date,
            )
            for r in listing.reviews
        ],
        dietary=listing.dietary or [],
        created_at=listing.created_at,
    )


def message_public(msg: Message) -> MessagePublic:
    return MessagePublic(
        id=msg.id,
        sender=msg.sender_id if msg.sender_id is not None else SYSTEM_SENDER,
        sender_name=msg.sender_name,
        text=msg.text,
        timestamp=msg.timestamp,
    )


def chat_public(chat: Chat) -> ChatPublic:
    return ChatPublic(
        id=chat.id,
        listing_id=chat.listing_id,
        participants=chat.participants,
        messages=[message_public(m) for m in chat.messages],
        created_at=chat.created_at,
    )
