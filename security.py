import logging
import os
from datetime import timedelta
from typing import Optional
from uuid import uuid4

from fastapi import Depends, Header
from passlib.context import CryptContext

from database import as_utc, create_document, get_db, utcnow
from errors import AuthenticationError, AuthorizationError
from schemas import Session

logger = logging.getLogger(__name__)

# -----------------
# Password hashing
# -----------------
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=int(os.getenv("BCRYPT_ROUNDS", "12")),
)

TOKEN_TTL_HOURS = int(os.getenv("TOKEN_TTL_HOURS", "24"))


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


# -----------------
# Sessions
# -----------------
def open_session(db, user_id) -> str:
    session = Session(
        token=str(uuid4()),
        userId=user_id,
        expiresAt=utcnow() + timedelta(hours=TOKEN_TTL_HOURS),
    )
    create_document(db, "session", session)
    return session.token


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError("No token, authorization denied")
    if not authorization.lower().startswith("bearer "):
        raise AuthenticationError("Invalid auth scheme")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise AuthenticationError("No token, authorization denied")
    return token


def get_current_user(authorization: Optional[str] = Header(None), db=Depends(get_db)) -> dict:
    """Resolve the bearer token to its user document or reject the request."""
    token = bearer_token(authorization)

    session = db["session"].find_one({"token": token})
    if not session:
        raise AuthenticationError("Token is not valid")

    exp = session.get("expiresAt")
    if exp and utcnow() > as_utc(exp):
        db["session"].delete_one({"_id": session["_id"]})
        raise AuthenticationError("Session expired")

    user = db["user"].find_one({"_id": session.get("userId")})
    if not user:
        raise AuthenticationError("Token is not valid")
    if not user.get("isActive", True):
        raise AuthorizationError("Account is deactivated")
    return user


# -----------------
# Authorization policy
# -----------------
def is_admin(user: dict) -> bool:
    return user.get("role") == "admin"


def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if not is_admin(user):
        raise AuthorizationError("Admin access required")
    return user


def ensure_owner_or_admin(owner_id, user: dict, action: str) -> None:
    """Only the resource's author or an admin may mutate it."""
    if str(owner_id) != str(user["_id"]) and not is_admin(user):
        logger.info("User %s denied: %s", user["_id"], action)
        raise AuthorizationError(f"Not authorized to {action}")
