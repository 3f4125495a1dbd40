from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.hash import bcrypt
from sqlmodel import Session

from config import JWT_SECRET_KEY, ACCESS_MINUTES
from db import get_session
from models import User

SECRET = JWT_SECRET_KEY
ALGO = "HS256"

oauth2 = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def hash_pwd(pw: str):
    return bcrypt.hash(pw)


def verify_pwd(pw: str, h: str):
    return bcrypt.verify(pw, h)


def create_token(user: User):
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=ACCESS_MINUTES),
    }
    return jwt.encode(payload, SECRET, algorithm=ALGO)


def user_from_token(token: str, session: Session) -> Optional[User]:
    try:
        data = jwt.decode(token, SECRET, algorithms=[ALGO])
        uid = int(data.get("sub"))
    except (JWTError, TypeError, ValueError):
        return None
    return session.get(User, uid)


def get_current_user(token: str = Depends(oauth2), session: Session = Depends(get_session)) -> User:
    try:
        data = jwt.decode(token, SECRET, algorithms=[ALGO])
        uid = int(data.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = session.get(User, uid)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user
