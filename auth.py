import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel, EmailStr, Field, field_validator

from database import create_document, get_db
from errors import AuthenticationError, AuthorizationError, ValidationError
from schemas import PersonName, User, Username
from security import get_current_user, hash_password, open_session, verify_password
from users import to_public_user
from validation import validate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

PASSWORD_RULE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


# -----------------
# Models
# -----------------
class RegisterRequest(BaseModel):
    username: Username
    email: EmailStr
    password: str = Field(..., min_length=6)
    firstName: PersonName
    lastName: PersonName

    @field_validator("password")
    @classmethod
    def password_complexity(cls, value: str) -> str:
        if not PASSWORD_RULE.match(value):
            raise ValueError(
                "Password must contain at least one uppercase letter, one lowercase letter, and one number"
            )
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


# -----------------
# Routes
# -----------------
@router.post("/register", status_code=201)
def register(payload: RegisterRequest = Depends(validate(RegisterRequest)), db=Depends(get_db)):
    email = payload.email.strip().lower()

    # Uniqueness check
    exists = db["user"].find_one({"$or": [{"username": payload.username}, {"email": email}]})
    if exists:
        raise ValidationError("User with this email or username already exists")

    account = User(
        username=payload.username,
        email=email,
        password=hash_password(payload.password),
        firstName=payload.firstName,
        lastName=payload.lastName,
    )
    user = create_document(db, "user", account)
    logger.info("Registered user %s (%s)", user["username"], user["_id"])

    # Auto login after register
    token = open_session(db, user["_id"])
    return {
        "success": True,
        "message": "User registered successfully",
        "data": {"token": token, "user": to_public_user(user)},
    }


@router.post("/login")
def login(payload: LoginRequest = Depends(validate(LoginRequest)), db=Depends(get_db)):
    user = db["user"].find_one({"email": payload.email.strip().lower()})
    if not user or not verify_password(payload.password, user.get("password", "")):
        raise AuthenticationError("Invalid credentials")
    if not user.get("isActive", True):
        raise AuthorizationError("Account is deactivated")

    token = open_session(db, user["_id"])
    return {
        "success": True,
        "message": "Login successful",
        "data": {"token": token, "user": to_public_user(user)},
    }


@router.get("/me")
def me(user: dict = Depends(get_current_user)):
    return {"success": True, "data": {"user": to_public_user(user)}}


@router.post("/logout")
def logout(authorization: Optional[str] = Header(None), db=Depends(get_db)):
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
        db["session"].delete_many({"token": token})
    return {"success": True, "message": "Logged out"}
