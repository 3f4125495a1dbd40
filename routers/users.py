# routers/users.py
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from auth import get_current_user
from db import get_session
from models import User
from schemas import LocationUpdate, UserPublic, user_public

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/me", response_model=UserPublic)
def get_me(current_user: User = Depends(get_current_user)):
    return user_public(current_user)


@router.put("/location", response_model=UserPublic)
def update_location(
    payload: LocationUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """
    Moves the user. Listings already posted keep the location they were created with.
    """
    current_user.lat = payload.lat
    current_user.lng = payload.lng
    current_user.address = payload.address
    session.add(current_user)
    session.commit()
    session.refresh(current_user)
    return user_public(current_user)


@router.get("/{user_id}", response_model=UserPublic)
def get_user(user_id: int, session: Session = Depends(get_session)):
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(404, "User not found")
    return user_public(user, include_email=False)
