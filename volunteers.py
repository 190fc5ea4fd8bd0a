"""Volunteer Directory. Contact numbers are unique across volunteers."""

import logging
from typing import Optional

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import create_document, get_documents, now, serialize, to_object_id
from errors import Conflict, NotFound, ValidationError
from schemas import CATEGORY_OF_FIELD, SkillCategory, SpecializedField, Volunteer, VolunteerUpdate

logger = logging.getLogger(__name__)

COLLECTION = "volunteer"


def find(db: Database, category: Optional[SkillCategory] = None) -> list:
    query = {"skills": {"$in": [category.value]}} if category else {}
    return [serialize(d) for d in get_documents(db, COLLECTION, query)]


def find_volunteer(db: Database, volunteer_id) -> Optional[dict]:
    return db[COLLECTION].find_one({"_id": to_object_id(volunteer_id, "volunteer id")})


def get(db: Database, volunteer_id) -> dict:
    doc = find_volunteer(db, volunteer_id)
    if doc is None:
        raise NotFound("Volunteer not found")
    return serialize(doc)


def create(db: Database, volunteer: Volunteer) -> dict:
    if db[COLLECTION].find_one({"contact": volunteer.contact}):
        raise Conflict("Volunteer with this contact already exists")

    try:
        _id = create_document(db, COLLECTION, volunteer.model_dump(mode="json"))
    except DuplicateKeyError:
        raise Conflict("Volunteer with this contact already exists")
    logger.info("Volunteer %s created (%s)", _id, ", ".join(volunteer.model_dump(mode="json")["skills"]))
    return get(db, _id)


def update(db: Database, volunteer_id: str, patch: VolunteerUpdate) -> dict:
    oid = to_object_id(volunteer_id, "volunteer id")
    existing = db[COLLECTION].find_one({"_id": oid})
    if existing is None:
        raise NotFound("Volunteer not found")

    changes = patch.model_dump(mode="json", exclude_unset=True, exclude_none=True)

    contact = changes.get("contact")
    if contact is not None:
        contact = changes["contact"] = contact.strip()
        if contact != existing.get("contact") and db[COLLECTION].find_one({"contact": contact}):
            raise Conflict("Contact is already in use by another volunteer")

    skills = changes.get("skills", existing.get("skills", []))
    for f in changes.get("specializedFields", existing.get("specializedFields", [])):
        if CATEGORY_OF_FIELD[SpecializedField(f)].value not in skills:
            raise ValidationError(
                "Invalid specialized fields",
                errors=[{"field": "specializedFields", "message": f"{f} is not under any of the volunteer's skills"}],
            )

    changes["updatedAt"] = now()
    try:
        db[COLLECTION].update_one({"_id": oid}, {"$set": changes})
    except DuplicateKeyError:
        raise Conflict("Contact is already in use by another volunteer")
    logger.info("Volunteer %s updated", volunteer_id)
    return get(db, oid)


def delete(db: Database, volunteer_id: str) -> None:
    res = db[COLLECTION].delete_one({"_id": to_object_id(volunteer_id, "volunteer id")})
    if res.deleted_count == 0:
        raise NotFound("Volunteer not found")
    logger.info("Volunteer %s deleted", volunteer_id)
