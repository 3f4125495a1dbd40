# routers/auth.py
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from auth import create_token, hash_pwd, verify_pwd
from db import get_session
from models import User
from schemas import AuthResponse, LoginBody, SignupBody, user_public

router = APIRouter(prefix="/api/auth", tags=["auth"])

# Every new account starts here until the user sets a location
DEFAULT_LOCATION = {"lat": 30.3398, "lng": 76.3869, "address": "Sector 22, Patiala"}


@router.post("/signup", response_model=AuthResponse)
def signup(body: SignupBody, session: Session = Depends(get_session)):
    email = body.email.strip().lower()
    if not body.name.strip() or not email or not body.password:
        raise HTTPException(400, "Name, email and password are required")

    if session.exec(select(User).where(User.email == email)).first():
        raise HTTPException(400, "Email already registered")

    user = User(
        name=body.name.strip(),
        email=email,
        password_hash=hash_pwd(body.password),
        **DEFAULT_LOCATION,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return AuthResponse(token=create_token(user), user=user_public(user))


@router.post("/login", response_model=AuthResponse)
def login(body: LoginBody, session: Session = Depends(get_session)):
    user = session.exec(select(User).where(User.email == body.email.strip().lower())).first()
    if not user or not verify_pwd(body.password, user.password_hash):
        raise HTTPException(400, "Invalid credentials")
    return AuthResponse(token=create_token(user), user=user_public(user))
