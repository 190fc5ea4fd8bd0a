"""
Assignment Engine.

Binds one volunteer to one report for a skill category and specialized field,
and drives the completion handshake: the volunteer side marks the work done,
then an administrator confirms and the report becomes resolved.

Eligibility rules, checked on create and whenever an update touches the
volunteer, category or field:

- the volunteer's skills contain the assignment category;
- a volunteer with specialized fields recorded must list the assignment
  field; an empty set means any field under a matching category.

The one-assignment-per-report rule is checked up front for a clear error and
backed by the unique index on ``issueId`` (see ``database.ensure_indexes``).
"""

import logging
from typing import Optional

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

import reports
import volunteers
from auth import Principal
from database import as_datetime, create_document, get_documents, now, serialize, to_object_id
from errors import Conflict, NotFound, ValidationError
from schemas import (
    ReportStatus,
    SkillCategory,
    SpecializedField,
    VolunteerAssignment,
    VolunteerAssignmentPatch,
    field_belongs_to,
)

logger = logging.getLogger(__name__)

COLLECTION = "volunteer_assignment"

REPORT_VIEW = ("title", "status")
VOLUNTEER_VIEW = ("name", "skills", "specializedFields")


def _view(doc: Optional[dict], keys) -> Optional[dict]:
    if doc is None:
        return None
    out = {"id": str(doc["_id"])}
    for k in keys:
        out[k] = doc.get(k)
    return out


def _lookup(db: Database, collection: str, ids, keys) -> dict:
    ids = list({i for i in ids if i is not None})
    if not ids:
        return {}
    return {d["_id"]: _view(d, keys) for d in db[collection].find({"_id": {"$in": ids}})}


def check_eligibility(volunteer: dict, category: str, field: str) -> None:
    """Raise Conflict unless the volunteer may work `field` under `category`."""
    if category not in volunteer.get("skills", []):
        logger.warning("Volunteer %s lacks skill %s", volunteer["_id"], category)
        raise Conflict(f"Main volunteer does not have {category} skill")
    specialized = volunteer.get("specializedFields") or []
    if specialized and field not in specialized:
        logger.warning("Volunteer %s does not specialize in %s", volunteer["_id"], field)
        raise Conflict(f"Main volunteer does not specialize in {field}")


def _get_assignment(db: Database, assignment_id) -> dict:
    doc = db[COLLECTION].find_one({"_id": to_object_id(assignment_id, "assignment id")})
    if doc is None:
        raise NotFound("Assignment not found")
    return doc


def list_assignments(db: Database) -> list:
    docs = get_documents(db, COLLECTION)
    issues = _lookup(db, reports.COLLECTION, (d.get("issueId") for d in docs), REPORT_VIEW)
    people = _lookup(db, volunteers.COLLECTION, (d.get("mainVolunteer") for d in docs), VOLUNTEER_VIEW)

    out = []
    for d in docs:
        item = serialize(d)
        item["issueId"] = issues.get(d.get("issueId"))
        item["mainVolunteer"] = people.get(d.get("mainVolunteer"))
        out.append(item)
    return out


def list_for_report(db: Database, issue_id: str) -> list:
    oid = to_object_id(issue_id, "issue id")
    if reports.find_report(db, oid) is None:
        raise NotFound("Report not found")

    docs = get_documents(db, COLLECTION, {"issueId": oid})
    people = _lookup(db, volunteers.COLLECTION, (d.get("mainVolunteer") for d in docs), VOLUNTEER_VIEW)

    out = []
    for d in docs:
        item = serialize(d)
        volunteer = people.get(d.get("mainVolunteer"))
        item["mainVolunteer"] = volunteer
        item["mainVolunteerName"] = (volunteer or {}).get("name") or "Unknown"
        out.append(item)
    return out


def create_assignment(db: Database, payload: VolunteerAssignment) -> dict:
    issue_id = to_object_id(payload.issueId, "issue id")
    volunteer_id = to_object_id(payload.mainVolunteer, "main volunteer id")
    category = payload.category.value
    field = payload.field.value

    report = reports.find_report(db, issue_id)
    if report is None:
        raise NotFound("Report not found")
    if report.get("status") == ReportStatus.RESOLVED.value:
        raise Conflict("Cannot assign volunteers to a resolved report")

    volunteer = volunteers.find_volunteer(db, volunteer_id)
    if volunteer is None:
        raise NotFound("Main volunteer not found")
    check_eligibility(volunteer, category, field)

    if db[COLLECTION].find_one({"issueId": issue_id}):
        raise Conflict("Report already has a volunteer assignment")

    data = {
        "issueId": issue_id,
        "category": category,
        "field": field,
        "mainVolunteer": volunteer_id,
        "subVolunteersCount": payload.subVolunteersCount,
        "workDescription": payload.workDescription,
        "estimatedCompletionDate": as_datetime(payload.estimatedCompletionDate),
        "volunteerCompleted": payload.volunteerCompleted,
        "completionNotes": payload.completionNotes or "",
    }
    try:
        _id = create_document(db, COLLECTION, data)
    except DuplicateKeyError:
        raise Conflict("Report already has a volunteer assignment")

    logger.info("Assignment %s: volunteer %s -> report %s (%s / %s)", _id, volunteer_id, issue_id, category, field)
    return serialize(_get_assignment(db, _id))


def mark_volunteer_complete(db: Database, assignment_id: str, completion_notes: Optional[str] = None) -> dict:
    doc = _get_assignment(db, assignment_id)
    if doc.get("volunteerCompleted"):
        raise Conflict("Assignment is already marked as completed by volunteer")

    changes = {"volunteerCompleted": True, "updatedAt": now()}
    if completion_notes:
        changes["completionNotes"] = completion_notes

    # the filter keeps the latch one-way under concurrent calls
    res = db[COLLECTION].update_one({"_id": doc["_id"], "volunteerCompleted": {"$ne": True}}, {"$set": changes})
    if res.matched_count == 0:
        raise Conflict("Assignment is already marked as completed by volunteer")

    logger.info("Assignment %s marked complete by volunteer", assignment_id)
    return serialize(_get_assignment(db, doc["_id"]))


def confirm_resolution(db: Database, assignment_id: str, principal: Principal) -> dict:
    doc = _get_assignment(db, assignment_id)
    if not doc.get("volunteerCompleted"):
        logger.warning("Resolution of assignment %s refused: volunteer has not completed", assignment_id)
        raise Conflict("Volunteer has not marked the task as completed")

    if reports.find_report(db, doc["issueId"]) is None:
        logger.error("Assignment %s references missing report %s", assignment_id, doc["issueId"])
        raise NotFound("Report not found")

    report = reports.set_resolved(db, doc["issueId"], principal.display_name)
    return {"message": "Report marked as resolved.", "report": report}


def update_assignment(db: Database, assignment_id: str, patch: VolunteerAssignmentPatch) -> dict:
    doc = _get_assignment(db, assignment_id)
    changes = patch.model_dump(exclude_unset=True, exclude_none=True)

    category = changes.get("category", doc["category"])
    field = changes.get("field", doc["field"])
    category = category.value if isinstance(category, SkillCategory) else category
    field = field.value if isinstance(field, SpecializedField) else field

    if ("category" in changes or "field" in changes) and not field_belongs_to(
            SpecializedField(field), SkillCategory(category)):
        raise ValidationError(
            "Invalid field",
            errors=[{"field": "field", "message": f"Field {field} does not belong to category {category}"}],
        )

    if "mainVolunteer" in changes or "category" in changes or "field" in changes:
        volunteer_id = to_object_id(changes.get("mainVolunteer", doc["mainVolunteer"]), "main volunteer id")
        volunteer = volunteers.find_volunteer(db, volunteer_id)
        if volunteer is None:
            raise NotFound("Main volunteer not found")
        check_eligibility(volunteer, category, field)
        changes["mainVolunteer"] = volunteer_id

    # completion is a one-way latch: once set it can be neither set again nor cleared
    if "volunteerCompleted" in changes and doc.get("volunteerCompleted"):
        raise Conflict("Assignment is already marked as completed by volunteer")

    if "category" in changes:
        changes["category"] = category
    if "field" in changes:
        changes["field"] = field
    if "estimatedCompletionDate" in changes:
        changes["estimatedCompletionDate"] = as_datetime(changes["estimatedCompletionDate"])
    changes["updatedAt"] = now()

    db[COLLECTION].update_one({"_id": doc["_id"]}, {"$set": changes})
    logger.info("Assignment %s updated: %s", assignment_id, sorted(changes))
    return serialize(_get_assignment(db, doc["_id"]))


def delete_assignment(db: Database, assignment_id: str) -> None:
    oid = to_object_id(assignment_id, "assignment id")
    res = db[COLLECTION].delete_one({"_id": oid})
    if res.deleted_count == 0:
        raise NotFound("Assignment not found")
    logger.info("Assignment %s deleted", assignment_id)
