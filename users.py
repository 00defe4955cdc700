import logging
from typing import Iterable, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from database import get_db, get_documents, oid, serialize, utcnow
from errors import NotFoundError
from schemas import Bio, PersonName, Role
from security import get_current_user, require_admin
from validation import validate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])

DISPLAY_FIELDS = ("username", "firstName", "lastName", "avatar")


# -----------------
# Models
# -----------------
class ProfileUpdate(BaseModel):
    firstName: Optional[PersonName] = None
    lastName: Optional[PersonName] = None
    bio: Optional[Bio] = None
    avatar: Optional[str] = None


class RoleUpdate(BaseModel):
    role: Role


# -----------------
# Helpers
# -----------------
def to_public_user(doc: dict, include_email: bool = True) -> dict:
    user = {
        "id": str(doc.get("_id")),
        "username": doc.get("username"),
        "firstName": doc.get("firstName"),
        "lastName": doc.get("lastName"),
        "avatar": doc.get("avatar"),
        "bio": doc.get("bio"),
        "role": doc.get("role", "user"),
        "isActive": doc.get("isActive", True),
        "createdAt": doc.get("createdAt"),
    }
    if include_email:
        user["email"] = doc.get("email")
    return serialize(user)


def display_users(db, ids: Iterable, fields: Iterable[str] = DISPLAY_FIELDS) -> dict:
    """
    Load the display fields of every referenced user in one query.

    Returns a mapping of user id -> serialized display dict; ids that do not
    resolve are simply missing from it.
    """
    wanted = list({i for i in ids if i is not None})
    if not wanted:
        return {}
    projection = {f: 1 for f in fields}
    found = db["user"].find({"_id": {"$in": wanted}}, projection)
    return {u["_id"]: serialize(u) for u in found}


# -----------------
# Routes
# -----------------
@router.get("")
def list_users(db=Depends(get_db), admin: dict = Depends(require_admin)):
    users = get_documents(db, "user", sort=[("createdAt", -1)])
    return {"success": True, "data": {"users": [to_public_user(u) for u in users]}}


@router.put("/profile")
def update_profile(
    payload: ProfileUpdate = Depends(validate(ProfileUpdate)),
    db=Depends(get_db),
    user: dict = Depends(get_current_user),
):
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    changes["updatedAt"] = utcnow()

    db["user"].update_one({"_id": user["_id"]}, {"$set": changes})
    updated = db["user"].find_one({"_id": user["_id"]})
    return {
        "success": True,
        "message": "Profile updated successfully",
        "data": {"user": to_public_user(updated)},
    }


@router.get("/{user_id}")
def get_user(user_id: str, db=Depends(get_db)):
    user = db["user"].find_one({"_id": oid(user_id)})
    if not user:
        raise NotFoundError("User not found")
    return {"success": True, "data": {"user": to_public_user(user, include_email=False)}}


@router.patch("/{user_id}/role")
def set_role(
    user_id: str,
    payload: RoleUpdate = Depends(validate(RoleUpdate)),
    db=Depends(get_db),
    admin: dict = Depends(require_admin),
):
    uid = oid(user_id)
    result = db["user"].update_one({"_id": uid}, {"$set": {"role": payload.role, "updatedAt": utcnow()}})
    if result.matched_count == 0:
        raise NotFoundError("User not found")
    logger.info("Admin %s set role of %s to %s", admin["_id"], uid, payload.role)
    return {"success": True, "message": "Role updated successfully"}
