"""
Identity & Access: password hashing, token issue and a single verification path.

Every protected route resolves its caller through `authenticate`, which
decodes the bearer token and loads the account it names. Admin-only routes
add `require_admin` on top.

Self-registration always creates a plain "user" account. Administrator
accounts are seeded from configuration with `ensure_default_admin`.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Header
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ConfigDict
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from config import JWT_ALG, JWT_EXPIRE_MINUTES, JWT_SECRET
from database import create_document, get_db, now
from errors import Conflict, Forbidden, Unauthenticated
from schemas import User as UserSchema

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class Principal(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    name: str
    is_admin: bool

    @property
    def display_name(self) -> str:
        return self.name or self.email or "Admin"


def create_token(email: str, role: str) -> str:
    payload = {
        "sub": email,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=JWT_EXPIRE_MINUTES),
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)


def _user_view(user: dict) -> dict:
    view = {"name": user.get("name"), "email": user.get("email"), "role": user.get("role", "user")}
    if "_id" in user:
        view["id"] = str(user["_id"])
    return view


def register(db: Database, name: str, email: str, password: str) -> dict:
    if db["user"].find_one({"email": email}):
        raise Conflict("Email already registered")

    user_doc = UserSchema(
        name=name,
        email=email,
        password_hash=pwd_context.hash(password),
        joinDate=now(),
    ).model_dump()
    user_doc["role"] = "user"
    try:
        create_document(db, "user", user_doc)
    except DuplicateKeyError:
        raise Conflict("Email already registered")
    logger.info("Registered account %s", email)

    return {"token": create_token(email, "user"), "user": _user_view(user_doc)}


def ensure_default_admin(db: Database, email: Optional[str], password: Optional[str],
                         name: str = "Administrator") -> bool:
    """Create the configured administrator account if it does not exist yet."""
    if not email or not password:
        logger.warning("ADMIN_EMAIL/ADMIN_PASSWORD not set; no administrator seeded")
        return False
    if db["user"].find_one({"email": email}):
        return False

    admin_doc = UserSchema(
        name=name,
        email=email,
        role="admin",
        password_hash=pwd_context.hash(password),
        joinDate=now(),
    ).model_dump()
    try:
        create_document(db, "user", admin_doc)
    except DuplicateKeyError:
        return False
    logger.info("Default administrator created: %s", email)
    return True


def _check_credentials(db: Database, email: str, password: str) -> dict:
    user = db["user"].find_one({"email": email})
    if not user or not pwd_context.verify(password, user.get("password_hash", "")):
        logger.warning("Failed login for %s", email)
        raise Unauthenticated("Invalid credentials")

    if not user.get("is_active", True):
        raise Forbidden("Account disabled")
    return user


def login(db: Database, email: str, password: str) -> dict:
    user = _check_credentials(db, email, password)
    return {"token": create_token(user["email"], user.get("role", "user")), "user": _user_view(user)}


def admin_login(db: Database, email: str, password: str) -> dict:
    user = _check_credentials(db, email, password)
    if user.get("role") != "admin":
        logger.warning("Admin login refused for non-admin %s", email)
        raise Forbidden("Admin role required")

    view = _user_view(user)
    view["isAdmin"] = True
    return {"token": create_token(user["email"], "admin"), "admin": view}


def authenticate(db: Database, credential: Optional[str]) -> Principal:
    """Resolve an ``Authorization`` header value to a Principal."""
    if not credential:
        raise Unauthenticated("Missing Authorization header")

    scheme, _, token = credential.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise Unauthenticated("Invalid auth scheme")
    try:
        data = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG])
    except JWTError:
        raise Unauthenticated("Invalid or expired token")

    user = db["user"].find_one({"email": data.get("sub")})
    if not user:
        raise Unauthenticated("User not found")
    if not user.get("is_active", True):
        raise Forbidden("Account disabled")

    return Principal(
        id=str(user["_id"]),
        email=user.get("email", ""),
        name=user.get("name", ""),
        is_admin=user.get("role") == "admin",
    )


def get_principal(authorization: Optional[str] = Header(None), db: Database = Depends(get_db)) -> Principal:
    return authenticate(db, authorization)


def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_admin:
        raise Forbidden("Admin role required")
    return principal
