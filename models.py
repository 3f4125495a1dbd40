from typing import List, Optional
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, DateTime, JSON
from sqlalchemy.types import TypeDecorator
from sqlmodel import SQLModel, Field, Relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Aware UTC datetimes in Python, naive UTC in the database."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            value = as_utc(value).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class Wishlist(SQLModel, table=True):
    user_id: int = Field(foreign_key="user.id", primary_key=True)
    listing_id: int = Field(foreign_key="listing.id", primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True, unique=True)
    password_hash: str
    rating: float = Field(default=0.0)
    review_count: int = Field(default=0)
    lat: Optional[float] = None
    lng: Optional[float] = None
    address: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    wishlist: List["Listing"] = Relationship(link_model=Wishlist)


class Category(str, Enum):
    PREPARED = "prepared"
    PRODUCE = "produce"
    BAKERY = "bakery"


class ListingStatus(str, Enum):
    AVAILABLE = "available"
    CLAIMED = "claimed"
    EXPIRED = "expired"


class Listing(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: str
    provider_id: int = Field(foreign_key="user.id", index=True)
    provider_name: str
    category: Category
    quantity: Optional[str] = None
    price: str = Field(default="Free")

    # snapshot of the provider's location when the listing was created
    lat: Optional[float] = None
    lng: Optional[float] = None
    address: Optional[str] = None

    image: Optional[str] = None
    expires_at: datetime = Field(sa_type=UTCDateTime)
    status: ListingStatus = Field(default=ListingStatus.AVAILABLE, index=True)
    claimed_by: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    # bumped on every claim; reviews record the claim they belong to
    claim_count: int = Field(default=0)
    rating: float = Field(default=5.0)
    review_count: int = Field(default=0)
    dietary: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)

    reviews: List["Review"] = Relationship(
        sa_relationship_kwargs={
            "order_by": "desc(Review.id)",
            "cascade": "all, delete-orphan",
        }
    )

    def status_at(self, now: datetime) -> ListingStatus:
        """Status as seen by readers: an available listing past its expiry reads as expired."""
        if self.status == ListingStatus.AVAILABLE and as_utc(self.expires_at) <= as_utc(now):
            return ListingStatus.EXPIRED
        return self.status


class Review(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    listing_id: int = Field(foreign_key="listing.id", index=True)
    user_id: int = Field(foreign_key="user.id")
    user_name: str
    rating: int
    claim_number: int = Field(default=0)
    text: str = ""
    date: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class Chat(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    listing_id: int = Field(foreign_key="listing.id", index=True)
    provider_id: int = Field(foreign_key="user.id")
    claimant_id: int = Field(foreign_key="user.id")
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)

    listing: Optional[Listing] = Relationship()
    provider: Optional[User] = Relationship(
        sa_relationship_kwargs={"foreign_keys": "Chat.provider_id"}
    )
    claimant: Optional[User] = Relationship(
        sa_relationship_kwargs={"foreign_keys": "Chat.claimant_id"}
    )
    messages: List["Message"] = Relationship(
        sa_relationship_kwargs={
            "order_by": "Message.id",
            "cascade": "all, delete-orphan",
        }
    )

    @property
    def participants(self) -> List[int]:
        return [self.provider_id, self.claimant_id]


class Message(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    chat_id: int = Field(foreign_key="chat.id", index=True)
    # None marks a system message
    sender_id: Optional[int] = Field(default=None, foreign_key="user.id")
    sender_name: str
    text: str
    timestamp: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
