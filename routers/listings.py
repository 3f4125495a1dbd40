# routers/listings.py
import logging
import uuid
from io import BytesIO
from typing import List, Optional

import pandas as pd
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse
from sqlmodel import Session, select

import lifecycle
from auth import get_current_user
from config import DEFAULT_RADIUS_KM
from db import get_session
from discovery import ListingFilter, find_listings
from errors import Forbidden, MarketError
from models import Category, Listing, User
from schemas import (
    BulkUploadResult,
    ClaimResult,
    ListingCreate,
    ListingPublic,
    ListingUpdate,
    ReviewCreate,
    listing_public,
)
from storage import save_image

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/listings", tags=["listings"])

BULK_COLUMNS = ["title", "description", "type", "quantity", "price", "expires_at", "image", "dietary"]
BULK_REQUIRED = ["title", "description", "type", "expires_at"]


# -------------------------
# Discovery
# -------------------------
@router.get("", response_model=List[ListingPublic])
def list_listings(
    category: Optional[str] = Query(None, alias="type"),
    search: Optional[str] = None,
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius: float = Query(DEFAULT_RADIUS_KM, gt=0),
    session: Session = Depends(get_session),
):
    origin = (lat, lng) if lat is not None and lng is not None else None
    filters = ListingFilter(category=category, search_text=search, origin=origin, radius_km=radius)
    return [listing_public(l) for l in find_listings(session, filters)]


@router.get("/user/mylistings", response_model=List[ListingPublic])
def my_listings(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    listings = session.exec(
        select(Listing).where(Listing.provider_id == current_user.id).order_by(Listing.created_at.desc())
    ).all()
    return [listing_public(l) for l in listings]


@router.get("/user/orders", response_model=List[ListingPublic])
def my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    listings = session.exec(
        select(Listing).where(Listing.claimed_by == current_user.id).order_by(Listing.created_at.desc())
    ).all()
    return [listing_public(l) for l in listings]


# -------------------------
# Bulk import
# -------------------------
def _cell(row, column):
    value = row.get(column)
    if value is None or pd.isna(value):
        return None
    return value


def _row_to_listing_data(row) -> dict:
    expires = _cell(row, "expires_at")
    if expires is None:
        raise ValueError("expires_at is empty")
    dietary = _cell(row, "dietary")
    return {
        "title": str(_cell(row, "title") or "").strip(),
        "description": str(_cell(row, "description") or "").strip(),
        "category": str(_cell(row, "type") or "").strip().lower(),
        "quantity": str(_cell(row, "quantity")).strip() if _cell(row, "quantity") is not None else None,
        "price": str(_cell(row, "price")).strip() if _cell(row, "price") is not None else "Free",
        "expires_at": pd.to_datetime(expires).to_pydatetime(),
        "image": str(_cell(row, "image")).strip() if _cell(row, "image") is not None else None,
        "dietary": [t.strip() for t in str(dietary).split(",")] if dietary is not None else [],
    }


@router.post("/bulk-upload", response_model=BulkUploadResult)
async def bulk_upload_listings(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """
    Create several listings from an Excel file (.xlsx).

    Expected columns:
    | title | description | type | quantity | price | expires_at | image | dietary |

    Rows that fail validation are reported and skipped; the others are created.
    """
    if not file.filename or not file.filename.endswith((".xlsx", ".xls")):
        raise HTTPException(400, "The file must be an Excel sheet (.xlsx or .xls)")

    contents = await file.read()
    try:
        df = pd.read_excel(BytesIO(contents))
    except Exception as e:
        logger.warning("unreadable bulk upload from user %s: %s", current_user.id, e)
        raise HTTPException(400, f"Could not read the Excel file: {e}")

    missing_columns = [col for col in BULK_REQUIRED if col not in df.columns]
    if missing_columns:
        raise HTTPException(400, f"Missing required columns: {', '.join(missing_columns)}")

    created = []
    errors = []

    for index, row in df.iterrows():
        row_num = index + 2  # header is row 1
        try:
            listing = lifecycle.create_listing(session, current_user, _row_to_listing_data(row))
        except (MarketError, ValueError, TypeError) as e:
            session.rollback()
            errors.append(f"Row {row_num}: {getattr(e, 'detail', e)}")
            continue
        created.append({"row": row_num, "id": listing.id, "title": listing.title})

    logger.info("bulk upload by user %s: %d created, %d rejected", current_user.id, len(created), len(errors))
    return BulkUploadResult(
        success=not errors,
        listings_created=len(created),
        listings_details=created,
        errors=errors,
        total_rows=len(df),
    )


@router.get("/bulk-upload/template")
def download_template():
    """Example workbook for bulk upload, with an instructions sheet."""
    sample_data = {
        "title": ["Vegetable biryani", "Fresh spinach", "Whole wheat bread"],
        "description": [
            "Cooked this afternoon, serves four",
            "Picked this morning from the terrace garden",
            "Two loaves left over from the bakery",
        ],
        "type": ["prepared", "produce", "bakery"],
        "quantity": ["4 portions", "2 bunches", "2 loaves"],
        "price": ["Free", "Free", "20"],
        "expires_at": pd.to_datetime(["2030-01-01 20:00", "2030-01-02 12:00", "2030-01-03 09:00"]),
        "image": ["", "", ""],
        "dietary": ["vegetarian", "vegan", "vegetarian, contains gluten"],
    }

    output = BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        pd.DataFrame(sample_data).to_excel(writer, index=False, sheet_name="Listings")

        instructions = pd.DataFrame({
            "INSTRUCTIONS": [
                "1. One row per listing",
                "2. title, description: required",
                f"3. type: one of {', '.join(c.value for c in Category)}",
                "4. quantity, price: free text (price defaults to Free)",
                "5. expires_at: date and time the food stops being good",
                "6. image: public URL (optional)",
                "7. dietary: comma-separated tags (optional)",
                "",
                "Listings use the location saved on your profile.",
                "Delete the example rows before uploading.",
            ]
        })
        instructions.to_excel(writer, index=False, sheet_name="INSTRUCTIONS")

    output.seek(0)
    return StreamingResponse(
        output,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": "attachment; filename=tableturn_listings_template.xlsx"},
    )


# -------------------------
# Single listing
# -------------------------
@router.get("/{listing_id}", response_model=ListingPublic)
def listing_detail(listing_id: int, session: Session = Depends(get_session)):
    return listing_public(lifecycle.get_listing(session, listing_id))


@router.post("", response_model=ListingPublic, status_code=201)
def create_listing(
    body: ListingCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return listing_public(lifecycle.create_listing(session, current_user, body.model_dump()))


@router.put("/{listing_id}", response_model=ListingPublic)
def update_listing(
    listing_id: int,
    body: ListingUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    patch = body.model_dump(exclude_unset=True)
    return listing_public(lifecycle.update_listing(session, listing_id, current_user, patch))


@router.delete("/{listing_id}")
def delete_listing(
    listing_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    lifecycle.delete_listing(session, listing_id, current_user)
    return {"message": "Listing deleted successfully", "listingId": listing_id}


@router.post("/{listing_id}/claim", response_model=ClaimResult)
def claim_listing(
    listing_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    listing, chat = lifecycle.claim_listing(session, listing_id, current_user)
    return ClaimResult(listing=listing_public(listing), chat_id=chat.id)


@router.post("/{listing_id}/relist", response_model=ListingPublic)
def relist_listing(
    listing_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return listing_public(lifecycle.relist_listing(session, listing_id, current_user))


@router.post("/{listing_id}/review", response_model=ListingPublic)
def add_review(
    listing_id: int,
    body: ReviewCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    listing = lifecycle.add_review(session, listing_id, current_user, body.rating, body.text)
    return listing_public(listing)


@router.post("/{listing_id}/image", response_model=ListingPublic)
async def upload_listing_image(
    listing_id: int,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    listing = lifecycle.get_listing(session, listing_id)
    if listing.provider_id != current_user.id:
        raise Forbidden("Not authorized")
    if not file.content_type or not file.content_type.startswith("image/"):
        raise HTTPException(400, "The file must be an image")

    file_ext = (file.filename or "image").rsplit(".", 1)[-1]
    unique_filename = f"listing_{listing_id}_{uuid.uuid4()}.{file_ext}"
    content = await file.read()
    url = save_image(content, unique_filename, file.content_type)

    return listing_public(lifecycle.update_listing(session, listing_id, current_user, {"image": url}))
