"""
Database Schemas for CivicFix

Each Pydantic model represents a MongoDB collection or a request body for one.
Collection names: "user", "report", "volunteer", "volunteer_assignment".
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Literal, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator


class SkillCategory(str, Enum):
    ELECTRICAL = "Electrical"
    PLUMBING = "Plumbing"
    ROAD_REPAIR = "Road Repair"
    CONSTRUCTION = "Construction"
    CARPENTRY = "Carpentry"
    GARBAGE_CLEAN = "Garbage Clean"


class SpecializedField(str, Enum):
    WIRING_REPAIR = "Wiring Repair"
    LIGHT_FIXTURE_INSTALLATION = "Light Fixture Installation"
    CIRCUIT_BREAKER_ISSUES = "Circuit Breaker Issues"
    GENERATOR_MAINTENANCE = "Generator Maintenance"
    PIPE_REPAIR = "Pipe Repair"
    DRAINAGE_ISSUES = "Drainage Issues"
    WATER_SUPPLY = "Water Supply"
    FIXTURE_INSTALLATION = "Fixture Installation"
    POTHOLE_FIXING = "Pothole Fixing"
    SIDEWALK_REPAIR = "Sidewalk Repair"
    STREET_SIGN_INSTALLATION = "Street Sign Installation"
    ROAD_MARKING = "Road Marking"
    WALL_REPAIR = "Wall Repair"
    FOUNDATION_WORK = "Foundation Work"
    STRUCTURAL_SUPPORT = "Structural Support"
    BUILDING_ENHANCEMENT = "Building Enhancement"
    WOODWORK_REPAIR = "Woodwork Repair"
    FURNITURE_MAKING = "Furniture Making"
    DOOR_INSTALLATION = "Door Installation"
    CABINET_WORK = "Cabinet Work"
    TRASH_COLLECTION = "Trash Collection"
    STREET_SWEEPING = "Street Sweeping"
    RECYCLING_PICKUP = "Recycling Pickup"
    WASTE_DISPOSAL = "Waste Disposal"


F = SpecializedField
FIELDS_BY_CATEGORY: Dict[SkillCategory, FrozenSet[SpecializedField]] = {
    SkillCategory.ELECTRICAL: frozenset({
        F.WIRING_REPAIR, F.LIGHT_FIXTURE_INSTALLATION, F.CIRCUIT_BREAKER_ISSUES, F.GENERATOR_MAINTENANCE,
    }),
    SkillCategory.PLUMBING: frozenset({
        F.PIPE_REPAIR, F.DRAINAGE_ISSUES, F.WATER_SUPPLY, F.FIXTURE_INSTALLATION,
    }),
    SkillCategory.ROAD_REPAIR: frozenset({
        F.POTHOLE_FIXING, F.SIDEWALK_REPAIR, F.STREET_SIGN_INSTALLATION, F.ROAD_MARKING,
    }),
    SkillCategory.CONSTRUCTION: frozenset({
        F.WALL_REPAIR, F.FOUNDATION_WORK, F.STRUCTURAL_SUPPORT, F.BUILDING_ENHANCEMENT,
    }),
    SkillCategory.CARPENTRY: frozenset({
        F.WOODWORK_REPAIR, F.FURNITURE_MAKING, F.DOOR_INSTALLATION, F.CABINET_WORK,
    }),
    SkillCategory.GARBAGE_CLEAN: frozenset({
        F.TRASH_COLLECTION, F.STREET_SWEEPING, F.RECYCLING_PICKUP, F.WASTE_DISPOSAL,
    }),
}
del F

CATEGORY_OF_FIELD: Dict[SpecializedField, SkillCategory] = {
    field: category for category, fields in FIELDS_BY_CATEGORY.items() for field in fields
}


def field_belongs_to(field: SpecializedField, category: SkillCategory) -> bool:
    return field in FIELDS_BY_CATEGORY[category]


class ReportStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"


ReportCategory = Literal[
    'Road Damage', 'Garbage Collection', 'Street Lighting', 'Water Supply', 'Drainage Issues',
    'Public Property Damage', 'Illegal Construction', 'Stray Animals', 'Other',
]
Urgency = Literal['low', 'medium', 'high', 'critical']


def _check_object_id(value: str, label: str) -> str:
    if not ObjectId.is_valid(value):
        raise ValueError(f"Invalid {label}")
    return value


def _parse_date(value):
    # accept full ISO-8601 timestamps as well as plain dates
    if isinstance(value, str) and "T" in value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            raise ValueError("Invalid date format")
    if isinstance(value, datetime):
        return value.date()
    return value


# ---------- Users ----------

class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address")
    role: Literal['user', 'admin'] = Field('user', description="Role of the account")
    password_hash: str = Field(..., description="Hashed password")
    is_active: bool = Field(True, description="Whether user is active")
    joinDate: Optional[datetime] = Field(None, description="Registration time")
    phone: str = ""
    dateOfBirth: str = ""
    gender: str = ""
    address: str = ""
    city: str = ""
    district: str = ""
    state: str = ""
    pincode: str = ""
    panchayat: str = ""
    wardNumber: str = ""
    occupation: str = ""
    organization: str = ""
    idType: str = ""
    idNumber: str = ""
    profileImage: str = Field("", description="URL of an already hosted image")


class UserProfileUpdate(BaseModel):
    """Profile fields a user may change on their own account."""

    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    dateOfBirth: Optional[str] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    panchayat: Optional[str] = None
    wardNumber: Optional[str] = None
    occupation: Optional[str] = None
    organization: Optional[str] = None
    idType: Optional[str] = None
    idNumber: Optional[str] = None
    profileImage: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


# ---------- Reports ----------

class Location(BaseModel):
    type: Literal['Point'] = 'Point'
    coordinates: List[float] = Field(..., min_length=2, max_length=2, description="[longitude, latitude]")
    address: str = Field(..., min_length=1, description="Nearest address or landmark")


class ReportImage(BaseModel):
    url: str
    public_id: Optional[str] = None


class Report(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    wardNumber: str = Field(..., min_length=1)
    category: ReportCategory
    urgency: Urgency = 'medium'
    location: Location
    images: List[ReportImage] = Field(default_factory=list)
    contactName: Optional[str] = None
    contactPhone: Optional[str] = None
    contactEmail: Optional[EmailStr] = None

    @field_validator("title", "description", "wardNumber")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class ReportUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Optional[ReportStatus] = None
    comments: Optional[List[str]] = None
    resolution: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    wardNumber: Optional[str] = None
    category: Optional[ReportCategory] = None
    urgency: Optional[Urgency] = None


# ---------- Volunteers ----------

class Volunteer(BaseModel):
    name: str = Field(..., min_length=1)
    skills: List[SkillCategory] = Field(..., min_length=1, description="At least one skill is required")
    specializedFields: List[SpecializedField] = Field(default_factory=list)
    availability: str = Field(..., min_length=1)
    contact: str = Field(..., min_length=1)

    @field_validator("name", "availability", "contact")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @model_validator(mode="after")
    def fields_match_skills(self):
        _check_fields_under_skills(self.skills, self.specializedFields)
        return self


class VolunteerUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1)
    skills: Optional[List[SkillCategory]] = Field(None, min_length=1)
    specializedFields: Optional[List[SpecializedField]] = None
    availability: Optional[str] = Field(None, min_length=1)
    contact: Optional[str] = Field(None, min_length=1)

    @field_validator("name", "availability", "contact", mode="before")
    @classmethod
    def strip_text(cls, v):
        # blank values then fail min_length
        return v.strip() if isinstance(v, str) else v


def _check_fields_under_skills(skills, fields) -> None:
    for f in fields:
        if CATEGORY_OF_FIELD[f] not in skills:
            raise ValueError(f"Specialized field {f.value} is not under any of the volunteer's skills")


# ---------- Volunteer assignments ----------

class VolunteerAssignment(BaseModel):
    issueId: str
    category: SkillCategory
    field: SpecializedField
    mainVolunteer: str
    subVolunteersCount: int = Field(..., ge=0)
    workDescription: Optional[str] = None
    estimatedCompletionDate: date
    volunteerCompleted: bool = False
    completionNotes: str = ""

    @field_validator("issueId")
    @classmethod
    def valid_issue_id(cls, v: str) -> str:
        return _check_object_id(v, "issue ID")

    @field_validator("mainVolunteer")
    @classmethod
    def valid_volunteer_id(cls, v: str) -> str:
        return _check_object_id(v, "main volunteer ID")

    @field_validator("estimatedCompletionDate", mode="before")
    @classmethod
    def parse_date(cls, v):
        return _parse_date(v)

    @field_validator("estimatedCompletionDate")
    @classmethod
    def not_in_past(cls, v: date) -> date:
        if v < datetime.now(timezone.utc).date():
            raise ValueError("Estimated completion date cannot be in the past")
        return v

    @field_validator("workDescription", "completionNotes")
    @classmethod
    def trim(cls, v):
        return v.strip() if isinstance(v, str) else v

    @model_validator(mode="after")
    def field_under_category(self):
        if not field_belongs_to(self.field, self.category):
            raise ValueError(f"Field {self.field.value} does not belong to category {self.category.value}")
        return self


class VolunteerAssignmentPatch(BaseModel):
    """Fields an administrator may change on an existing assignment."""

    model_config = ConfigDict(extra="forbid")

    category: Optional[SkillCategory] = None
    field: Optional[SpecializedField] = None
    mainVolunteer: Optional[str] = None
    subVolunteersCount: Optional[int] = Field(None, ge=0)
    workDescription: Optional[str] = None
    estimatedCompletionDate: Optional[date] = None
    volunteerCompleted: Optional[bool] = None
    completionNotes: Optional[str] = None

    @field_validator("mainVolunteer")
    @classmethod
    def valid_volunteer_id(cls, v):
        return _check_object_id(v, "main volunteer ID") if v is not None else v

    @field_validator("estimatedCompletionDate", mode="before")
    @classmethod
    def parse_date(cls, v):
        return _parse_date(v)

    @field_validator("workDescription", "completionNotes")
    @classmethod
    def trim(cls, v):
        return v.strip() if isinstance(v, str) else v


class CompletionNotes(BaseModel):
    completionNotes: Optional[str] = None

    @field_validator("completionNotes")
    @classmethod
    def trim(cls, v):
        return v.strip() if isinstance(v, str) else v
