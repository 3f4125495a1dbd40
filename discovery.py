from datetime import datetime
from typing import Iterable, List, Optional

from pydantic import BaseModel
from sqlmodel import Session, select

from config import DEFAULT_RADIUS_KM
from geo import Point, within_radius
from models import Listing, ListingStatus, as_utc, utcnow

ALL_CATEGORIES = "all"


class ListingFilter(BaseModel):
    category: Optional[str] = None
    search_text: Optional[str] = None
    origin: Optional[Point] = None
    radius_km: Optional[float] = None


def _matches_text(listing: Listing, needle: str) -> bool:
    needle = needle.lower()
    return needle in listing.title.lower() or needle in listing.description.lower()


def search(listings: Iterable[Listing], filters: ListingFilter, now: datetime) -> List[Listing]:
    """
    Browseable listings matching the filter, newest first.

    The radius filter runs after sorting, so results stay in recency order
    and are never reordered by distance.
    """
    now = as_utc(now)
    results = [l for l in listings if l.status_at(now) == ListingStatus.AVAILABLE]

    if filters.category and filters.category != ALL_CATEGORIES:
        results = [l for l in results if l.category == filters.category]

    if filters.search_text:
        results = [l for l in results if _matches_text(l, filters.search_text)]

    results.sort(key=lambda l: l.created_at, reverse=True)

    if filters.origin is not None:
        radius = filters.radius_km if filters.radius_km is not None else DEFAULT_RADIUS_KM
        # listings without a stored location can't be placed, so they drop out
        results = [
            l for l in results
            if l.lat is not None and l.lng is not None
            and within_radius(filters.origin, (l.lat, l.lng), radius)
        ]

    return results


def find_listings(session: Session, filters: ListingFilter, now: Optional[datetime] = None) -> List[Listing]:
    now = as_utc(now) if now else utcnow()
    candidates = session.exec(
        select(Listing).where(
            Listing.status == ListingStatus.AVAILABLE,
            Listing.expires_at > now,
        )
    ).all()
    return search(candidates, filters, now)
