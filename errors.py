"""Error taxonomy shared by the services and the HTTP layer."""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    kind = "Internal"
    status_code = 500

    def __init__(self, detail: str, errors: Optional[list] = None):
        super().__init__(detail)
        self.detail = detail
        self.errors = errors

    def to_dict(self) -> dict:
        body = {"error": self.kind, "detail": self.detail}
        if self.errors:
            body["errors"] = self.errors
        return body


class Unauthenticated(ServiceError):
    kind = "Unauthenticated"
    status_code = 401


class Forbidden(ServiceError):
    kind = "Forbidden"
    status_code = 403


class ValidationError(ServiceError):
    kind = "ValidationError"
    status_code = 400


class NotFound(ServiceError):
    kind = "NotFound"
    status_code = 404


class Conflict(ServiceError):
    kind = "Conflict"
    status_code = 409


class Internal(ServiceError):
    pass


def _field_errors(exc: RequestValidationError) -> list:
    out = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        ctx_error = (err.get("ctx") or {}).get("error")
        out.append({
            "field": ".".join(loc) or "body",
            "message": str(ctx_error) if ctx_error is not None else err.get("msg", "Invalid value"),
        })
    return out


def install_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        err = ValidationError("Invalid request", errors=_field_errors(exc))
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(PyMongoError)
    async def store_error_handler(request: Request, exc: PyMongoError):
        logger.exception("Database error on %s %s", request.method, request.url.path)
        err = Internal("Database operation failed")
        return JSONResponse(status_code=err.status_code, content=err.to_dict())
