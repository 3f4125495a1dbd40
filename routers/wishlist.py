# routers/wishlist.py
from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from auth import get_current_user
from db import get_session
from errors import InvalidState, NotFound
from models import Listing, User, Wishlist
from schemas import ListingPublic, WishlistEntryPublic, listing_public

router = APIRouter(prefix="/api/wishlist", tags=["wishlist"])


@router.get("", response_model=List[ListingPublic])
def get_wishlist(current_user: User = Depends(get_current_user)):
    return [listing_public(l) for l in current_user.wishlist]


@router.post("/{listing_id}", response_model=WishlistEntryPublic)
def add_to_wishlist(
    listing_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    if not session.get(Listing, listing_id):
        raise NotFound("Listing not found")
    if session.get(Wishlist, (current_user.id, listing_id)):
        raise InvalidState("Already in wishlist")

    entry = Wishlist(user_id=current_user.id, listing_id=listing_id)
    session.add(entry)
    session.commit()
    session.refresh(entry)
    return entry


@router.delete("/{listing_id}")
def remove_from_wishlist(
    listing_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    entry = session.get(Wishlist, (current_user.id, listing_id))
    if entry:
        session.delete(entry)
        session.commit()
    return {"message": "Removed from wishlist"}
