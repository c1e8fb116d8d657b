import jwt
import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Header, HTTPException

from config import JWT_ALG, JWT_SECRET
from models.schemas import CurrentUser

ROLES = ("student", "tutor", "admin")


def create_token(sub: str, role: str = "student", expires_delta: timedelta = timedelta(days=7)) -> str:
    to_encode = {
        "sub": sub,
        "role": role,
        "iat": datetime.utcnow(),
        "exp": datetime.utcnow() + expires_delta,
    }
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALG)


def decode_token(token: str) -> dict:
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG])


def user_from_token(token: Optional[str]) -> Optional[CurrentUser]:
    """CurrentUser for a valid token, None otherwise."""
    if not token:
        return None
    try:
        claims = decode_token(token)
    except jwt.PyJWTError:
        return None
    sub = claims.get("sub")
    role = claims.get("role", "student")
    if not sub or role not in ROLES:
        return None
    return CurrentUser(id=sub, role=role)


def auth_user(authorization: Optional[str] = Header(default=None)) -> CurrentUser:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing token")
    user = user_from_token(authorization.split(" ", 1)[1])
    if user is None:
        logging.error("Token decode failed")
        raise HTTPException(status_code=401, detail="Invalid token")
    return user
