"""User profiles. A caller may only read and edit their own account."""

import logging

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from auth import Principal, create_token
from database import now, serialize, to_object_id
from errors import Conflict, Forbidden, NotFound
from schemas import UserProfileUpdate

logger = logging.getLogger(__name__)

COLLECTION = "user"

# never leaves the store
HIDDEN_FIELDS = {"password_hash": 0}


def _own_id(principal: Principal, user_id: str):
    oid = to_object_id(user_id, "user id")
    if str(oid) != principal.id:
        logger.warning("User %s tried to access profile %s", principal.id, user_id)
        raise Forbidden("Unauthorized access")
    return oid


def get_profile(db: Database, principal: Principal, user_id: str) -> dict:
    oid = _own_id(principal, user_id)
    user = db[COLLECTION].find_one({"_id": oid}, HIDDEN_FIELDS)
    if user is None:
        raise NotFound("User not found")
    return serialize(user)


def update_profile(db: Database, principal: Principal, user_id: str, patch: UserProfileUpdate) -> dict:
    oid = _own_id(principal, user_id)
    user = db[COLLECTION].find_one({"_id": oid})
    if user is None:
        raise NotFound("User not found")

    changes = patch.model_dump(exclude_none=True)
    if changes["email"] != user.get("email"):
        existing = db[COLLECTION].find_one({"email": changes["email"]})
        if existing and existing["_id"] != oid:
            raise Conflict("Email already exists")

    changes["updatedAt"] = now()
    try:
        db[COLLECTION].update_one({"_id": oid}, {"$set": changes})
    except DuplicateKeyError:
        raise Conflict("Email already exists")
    logger.info("Profile updated for user %s", user_id)
    # tokens name the account by email, so hand back one for the current address
    return {
        "message": "Profile updated successfully",
        "token": create_token(changes["email"], user.get("role", "user")),
        "user": get_profile(db, principal, user_id),
    }
