from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple

DEFAULT_LISTING_RATING = 5.0


def round_rating(value: float) -> float:
    """Round to one decimal, halves going up (4.25 -> 4.3)."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def recompute_listing_rating(reviews: Iterable) -> Tuple[float, int]:
    """
    Average and count of a listing's reviews.

    A listing without reviews keeps the default rating.
    """
    scores = [r.rating for r in reviews]
    if not scores:
        return DEFAULT_LISTING_RATING, 0
    return round_rating(sum(scores) / len(scores)), len(scores)


def recompute_provider_rating(listings: Iterable) -> Tuple[Optional[float], int]:
    """
    Provider rating rebuilt from the per-listing averages, weighted by each
    listing's review count. Returns (None, 0) when no listing has reviews, in
    which case the provider's stored rating is left alone.
    """
    total = 0.0
    count = 0
    for listing in listings:
        total += listing.rating * listing.review_count
        count += listing.review_count
    if count == 0:
        return None, 0
    return round_rating(total / count), count
