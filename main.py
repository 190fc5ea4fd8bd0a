import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, EmailStr, Field
from pymongo.database import Database

import assignments
import database
import reports
import users
import volunteers
from auth import Principal, admin_login, ensure_default_admin, get_principal, login, register, require_admin
from config import ADMIN_EMAIL, ADMIN_NAME, ADMIN_PASSWORD, APP_NAME, CORS_ORIGINS, LOG_LEVEL
from database import ensure_indexes, get_db
from errors import install_handlers
from schemas import (
    CompletionNotes,
    Report as ReportSchema,
    ReportUpdate,
    SkillCategory,
    UserProfileUpdate,
    Volunteer as VolunteerSchema,
    VolunteerAssignment as AssignmentSchema,
    VolunteerAssignmentPatch,
    VolunteerUpdate,
)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        ensure_indexes(database.db)
        ensure_default_admin(database.db, ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_NAME)
    else:
        logger.warning("DATABASE_URL not set; running without a database")
    yield


app = FastAPI(title=APP_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
install_handlers(app)


# ---------- Models for requests ----------
class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# ---------- Basic routes ----------
@app.get("/")
def root():
    return {"message": f"{APP_NAME} running"}


@app.get("/test")
def test_database():
    info = {
        "backend": "running",
        "database": "disconnected",
        "collections": [],
    }
    try:
        if database.db is not None:
            info["database"] = "connected"
            info["collections"] = database.db.list_collection_names()[:10]
    except Exception as e:
        info["database"] = f"error: {str(e)[:80]}"
    return info


# ---------- Auth endpoints ----------
@app.post("/auth/register", status_code=201)
def register_account(req: RegisterRequest, db: Database = Depends(get_db)):
    return register(db, req.name, req.email, req.password)


@app.post("/auth/login")
def login_account(req: LoginRequest, db: Database = Depends(get_db)):
    return login(db, req.email, req.password)


@app.post("/admin/login")
def login_admin(req: LoginRequest, db: Database = Depends(get_db)):
    return admin_login(db, req.email, req.password)


@app.get("/me")
def me(principal: Principal = Depends(get_principal)):
    return {"id": principal.id, "email": principal.email, "name": principal.name, "isAdmin": principal.is_admin}


# ---------- User profile endpoints ----------
@app.get("/user/{user_id}")
def get_profile(user_id: str, principal: Principal = Depends(get_principal), db: Database = Depends(get_db)):
    return users.get_profile(db, principal, user_id)


@app.put("/user/{user_id}")
def update_profile(user_id: str, body: UserProfileUpdate, principal: Principal = Depends(get_principal),
                   db: Database = Depends(get_db)):
    return users.update_profile(db, principal, user_id, body)


# ---------- Report endpoints ----------
@app.post("/reports", status_code=201)
def create_report(report: ReportSchema, principal: Principal = Depends(get_principal),
                  db: Database = Depends(get_db)):
    return {"message": "Report created successfully", "report": reports.create_report(db, principal, report)}


@app.get("/reports")
def my_reports(principal: Principal = Depends(get_principal), db: Database = Depends(get_db)):
    return reports.list_reports_for_user(db, principal)


@app.get("/admin/reports")
def all_reports(limit: Optional[int] = None, admin: Principal = Depends(require_admin),
                db: Database = Depends(get_db)):
    return reports.list_reports(db, limit)


@app.get("/admin/reports/{report_id}")
def get_report(report_id: str, admin: Principal = Depends(require_admin), db: Database = Depends(get_db)):
    return reports.get_report(db, report_id)


@app.put("/admin/reports/{report_id}")
def update_report(report_id: str, body: ReportUpdate, admin: Principal = Depends(require_admin),
                  db: Database = Depends(get_db)):
    return reports.update_report(db, report_id, body, admin)


# ---------- Volunteer endpoints ----------
@app.get("/volunteers")
def list_volunteers(category: Optional[SkillCategory] = None, admin: Principal = Depends(require_admin),
                    db: Database = Depends(get_db)):
    return volunteers.find(db, category)


@app.post("/volunteers", status_code=201)
def create_volunteer(body: VolunteerSchema, admin: Principal = Depends(require_admin),
                     db: Database = Depends(get_db)):
    return volunteers.create(db, body)


@app.get("/volunteers/{volunteer_id}")
def get_volunteer(volunteer_id: str, admin: Principal = Depends(require_admin), db: Database = Depends(get_db)):
    return volunteers.get(db, volunteer_id)


@app.put("/volunteers/{volunteer_id}")
def update_volunteer(volunteer_id: str, body: VolunteerUpdate, admin: Principal = Depends(require_admin),
                     db: Database = Depends(get_db)):
    return volunteers.update(db, volunteer_id, body)


@app.delete("/volunteers/{volunteer_id}")
def delete_volunteer(volunteer_id: str, admin: Principal = Depends(require_admin),
                     db: Database = Depends(get_db)):
    volunteers.delete(db, volunteer_id)
    return {"ok": True}


# ---------- Volunteer assignment endpoints ----------
@app.get("/volunteer-assignments")
def list_assignments(admin: Principal = Depends(require_admin), db: Database = Depends(get_db)):
    return assignments.list_assignments(db)


@app.get("/volunteer-assignments/issue/{issue_id}")
def list_assignments_for_issue(issue_id: str, admin: Principal = Depends(require_admin),
                               db: Database = Depends(get_db)):
    return assignments.list_for_report(db, issue_id)


@app.post("/volunteer-assignments", status_code=201)
def create_assignment(body: AssignmentSchema, admin: Principal = Depends(require_admin),
                      db: Database = Depends(get_db)):
    return assignments.create_assignment(db, body)


@app.post("/volunteer-assignments/volunteer-complete/{assignment_id}")
def volunteer_complete(assignment_id: str, body: Optional[CompletionNotes] = None,
                       admin: Principal = Depends(require_admin), db: Database = Depends(get_db)):
    notes = body.completionNotes if body else None
    return assignments.mark_volunteer_complete(db, assignment_id, notes)


@app.post("/volunteer-assignments/complete/{assignment_id}")
def confirm_complete(assignment_id: str, admin: Principal = Depends(require_admin),
                     db: Database = Depends(get_db)):
    return assignments.confirm_resolution(db, assignment_id, admin)


@app.put("/volunteer-assignments/{assignment_id}")
def update_assignment(assignment_id: str, body: VolunteerAssignmentPatch,
                      admin: Principal = Depends(require_admin), db: Database = Depends(get_db)):
    return assignments.update_assignment(db, assignment_id, body)


@app.delete("/volunteer-assignments/{assignment_id}")
def delete_assignment(assignment_id: str, admin: Principal = Depends(require_admin),
                      db: Database = Depends(get_db)):
    assignments.delete_assignment(db, assignment_id)
    return {"ok": True}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)
