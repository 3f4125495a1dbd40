"""
Listing state machine: create, claim, relist, update, delete and reviews.

Every operation takes the session and the acting user, and raises one of the
errors in errors.py instead of returning partial results. Commits happen once,
at the end of each operation.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from sqlmodel import Session, select

from errors import Forbidden, InvalidState, NotFound, ValidationError
from messaging import add_system_message, find_or_create_chat
from models import (
    Category,
    Chat,
    Listing,
    ListingStatus,
    Review,
    User,
    Wishlist,
    as_utc,
    utcnow,
)
from ratings import recompute_listing_rating, recompute_provider_rating

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "description", "category", "expires_at")
EDITABLE_FIELDS = {
    "title",
    "description",
    "category",
    "quantity",
    "price",
    "image",
    "expires_at",
    "dietary",
}


def get_listing(session: Session, listing_id: int) -> Listing:
    listing = session.get(Listing, listing_id)
    if not listing:
        raise NotFound("Listing not found")
    return listing


def _owned_listing(session: Session, listing_id: int, requestor: User) -> Listing:
    listing = get_listing(session, listing_id)
    if listing.provider_id != requestor.id:
        raise Forbidden("Not authorized")
    return listing


def _clean_category(value: Any) -> Category:
    try:
        return Category(value)
    except ValueError:
        allowed = ", ".join(c.value for c in Category)
        raise ValidationError(f"Invalid category '{value}'. Use: {allowed}")


def _clean_expiry(value: Any) -> datetime:
    if not isinstance(value, datetime):
        raise ValidationError("expires_at must be a datetime")
    return as_utc(value)


def _clean_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = dict(data)
    for field in ("title", "description"):
        if field in cleaned:
            value = (cleaned[field] or "").strip()
            if not value:
                raise ValidationError(f"{field} is required")
            cleaned[field] = value
    if "category" in cleaned:
        cleaned["category"] = _clean_category(cleaned["category"])
    if "expires_at" in cleaned:
        cleaned["expires_at"] = _clean_expiry(cleaned["expires_at"])
    if "price" in cleaned and not cleaned["price"]:
        cleaned["price"] = "Free"
    if "dietary" in cleaned:
        cleaned["dietary"] = [str(tag).strip() for tag in cleaned["dietary"] or [] if str(tag).strip()]
    return cleaned


def create_listing(session: Session, owner: User, data: Dict[str, Any]) -> Listing:
    """New available listing carrying a snapshot of the owner's name and location."""
    missing = [f for f in REQUIRED_FIELDS if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    unknown = set(data) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

    listing = Listing(
        **_clean_fields(data),
        provider_id=owner.id,
        provider_name=owner.name,
        lat=owner.lat,
        lng=owner.lng,
        address=owner.address,
    )
    session.add(listing)
    session.commit()
    session.refresh(listing)
    logger.info("listing %s created by user %s", listing.id, owner.id)
    return listing


def claim_listing(
    session: Session,
    listing_id: int,
    claimant: User,
    now: Optional[datetime] = None,
) -> Tuple[Listing, Chat]:
    listing = get_listing(session, listing_id)
    if listing.status_at(now or utcnow()) != ListingStatus.AVAILABLE:
        raise InvalidState("Listing not available")
    if listing.provider_id == claimant.id:
        raise Forbidden("You cannot claim your own listing")

    listing.status = ListingStatus.CLAIMED
    listing.claimed_by = claimant.id
    listing.claim_count += 1
    session.add(listing)

    chat = find_or_create_chat(session, listing, claimant.id)
    add_system_message(chat, f'Chat started for "{listing.title}"')

    session.commit()
    session.refresh(listing)
    session.refresh(chat)
    logger.info("listing %s claimed by user %s", listing.id, claimant.id)
    return listing, chat


def relist_listing(session: Session, listing_id: int, requestor: User) -> Listing:
    listing = _owned_listing(session, listing_id, requestor)
    if listing.status != ListingStatus.CLAIMED:
        raise InvalidState("Only claimed listings can be relisted")

    listing.status = ListingStatus.AVAILABLE
    listing.claimed_by = None
    session.add(listing)
    session.commit()
    session.refresh(listing)
    logger.info("listing %s relisted", listing.id)
    return listing


def update_listing(session: Session, listing_id: int, requestor: User, patch: Dict[str, Any]) -> Listing:
    listing = _owned_listing(session, listing_id, requestor)

    protected = set(patch) - EDITABLE_FIELDS
    if protected:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(protected))}")

    for key, value in _clean_fields(patch).items():
        setattr(listing, key, value)

    session.add(listing)
    session.commit()
    session.refresh(listing)
    return listing


def delete_listing(session: Session, listing_id: int, requestor: User) -> None:
    """Remove the listing together with its reviews, chats and wishlist entries."""
    listing = _owned_listing(session, listing_id, requestor)

    for chat in session.exec(select(Chat).where(Chat.listing_id == listing.id)).all():
        session.delete(chat)
    for entry in session.exec(select(Wishlist).where(Wishlist.listing_id == listing.id)).all():
        session.delete(entry)
    session.delete(listing)
    session.commit()
    logger.info("listing %s deleted by user %s", listing_id, requestor.id)


def add_review(session: Session, listing_id: int, reviewer: User, rating: Any, text: str = "") -> Listing:
    """
    Append the claimant's review, then recompute the listing rating and the
    provider rating across all of the provider's listings.
    """
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be an integer between 1 and 5")

    listing = get_listing(session, listing_id)
    if listing.claimed_by != reviewer.id:
        raise Forbidden("Only the claimant can review this listing")
    if any(r.user_id == reviewer.id and r.claim_number == listing.claim_count for r in listing.reviews):
        raise InvalidState("You already reviewed this claim")

    listing.reviews.append(
        Review(
            user_id=reviewer.id,
            user_name=reviewer.name,
            rating=rating,
            claim_number=listing.claim_count,
            text=(text or "").strip(),
        )
    )
    listing.rating, listing.review_count = recompute_listing_rating(listing.reviews)
    session.add(listing)
    session.flush()

    # fresh read so this review is part of the provider total
    provider_listings = session.exec(
        select(Listing).where(Listing.provider_id == listing.provider_id)
    ).all()
    provider_rating, provider_count = recompute_provider_rating(provider_listings)
    if provider_rating is not None:
        provider = session.get(User, listing.provider_id)
        if provider:
            provider.rating = provider_rating
            provider.review_count = provider_count
            session.add(provider)

    session.commit()
    session.refresh(listing)
    logger.info(
        "review on listing %s by user %s: listing %.1f (%d), provider %s (%d)",
        listing.id, reviewer.id, listing.rating, listing.review_count,
        provider_rating, provider_count,
    )
    return listing
