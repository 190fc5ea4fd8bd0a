"""Report Store: citizen-submitted issues and their status lifecycle."""

import logging
from typing import Optional

from bson import ObjectId
from pymongo.database import Database

from auth import Principal
from config import MAX_REPORT_IMAGES
from database import create_document, get_documents, now, serialize, to_object_id
from errors import Conflict, NotFound, ValidationError
from schemas import Report, ReportStatus, ReportUpdate

logger = logging.getLogger(__name__)

COLLECTION = "report"


def create_report(db: Database, principal: Principal, report: Report) -> dict:
    if len(report.images) > MAX_REPORT_IMAGES:
        raise ValidationError(f"Maximum {MAX_REPORT_IMAGES} images allowed")

    data = report.model_dump(mode="json")
    data["user"] = ObjectId(principal.id)
    data["status"] = ReportStatus.PENDING.value
    data["comments"] = []

    _id = create_document(db, COLLECTION, data)
    logger.info("Report %s created by %s", _id, principal.email)
    return get_report(db, _id)


def _with_users(db: Database, docs: list) -> list:
    """Serialize reports with `user` expanded to {id, name, email}."""
    ids = list({d["user"] for d in docs if d.get("user") is not None})
    users = {}
    if ids:
        for u in db["user"].find({"_id": {"$in": ids}}, {"name": 1, "email": 1}):
            users[u["_id"]] = {"id": str(u["_id"]), "name": u.get("name"), "email": u.get("email")}

    out = []
    for d in docs:
        item = serialize(d)
        item["user"] = users.get(d.get("user"))
        out.append(item)
    return out


def list_reports_for_user(db: Database, principal: Principal) -> list:
    return _with_users(db, get_documents(db, COLLECTION, {"user": ObjectId(principal.id)}))


def list_reports(db: Database, limit: Optional[int] = None) -> list:
    return _with_users(db, get_documents(db, COLLECTION, {}, limit))


def find_report(db: Database, report_id) -> Optional[dict]:
    return db[COLLECTION].find_one({"_id": to_object_id(report_id, "report id")})


def get_report(db: Database, report_id) -> dict:
    doc = find_report(db, report_id)
    if doc is None:
        raise NotFound("Report not found")
    return _with_users(db, [doc])[0]


def update_report(db: Database, report_id: str, patch: ReportUpdate, principal: Principal) -> dict:
    oid = to_object_id(report_id, "report id")
    existing = db[COLLECTION].find_one({"_id": oid})
    if existing is None:
        raise NotFound("Report not found")

    changes = patch.model_dump(mode="json", exclude_unset=True, exclude_none=True)
    resolution = changes.pop("resolution", None)
    if existing.get("status") == ReportStatus.RESOLVED.value and "status" in changes:
        # resolved is terminal; re-resolving keeps the original stamps
        if changes["status"] != ReportStatus.RESOLVED.value:
            logger.warning("Refused to move resolved report %s to %s", report_id, changes["status"])
            raise Conflict("Report is already resolved")
        del changes["status"]
        if resolution:
            changes["resolution"] = resolution
    elif changes.get("status") == ReportStatus.RESOLVED.value:
        changes["resolvedAt"] = now()
        changes["resolvedBy"] = principal.display_name
        if resolution:
            changes["resolution"] = resolution
    changes["updatedAt"] = now()

    db[COLLECTION].update_one({"_id": oid}, {"$set": changes})
    logger.info("Report %s updated by %s: %s", report_id, principal.email, sorted(changes))
    return get_report(db, oid)


def set_resolved(db: Database, report_id, resolved_by: str, resolution: Optional[str] = None) -> dict:
    oid = to_object_id(report_id, "report id")
    stamp = now()
    changes = {
        "status": ReportStatus.RESOLVED.value,
        "resolvedAt": stamp,
        "resolvedBy": resolved_by,
        "updatedAt": stamp,
    }
    if resolution:
        changes["resolution"] = resolution

    res = db[COLLECTION].update_one({"_id": oid}, {"$set": changes})
    if res.matched_count == 0:
        raise NotFound("Report not found")
    logger.info("Report %s resolved by %s", report_id, resolved_by)
    return get_report(db, oid)
