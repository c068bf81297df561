# hms_tenancy/core/errors.py
from __future__ import annotations

from typing import Any, Optional


class HmsError(Exception):
    status_code: int = 500
    code: str = "ERROR"
    msg: str = "Something went wrong"
    retryable: bool = False

    def __init__(self, msg: Optional[str] = None, *, details: Any = None):
        self.msg = msg or self.msg
        self.details = details
        super().__init__(self.msg)


class MissingTenantContext(HmsError):
    status_code = 400
    code = "MISSING_TENANT"
    msg = "X-Tenant-ID header is required"


class NotFound(HmsError):
    status_code = 404
    code = "NOT_FOUND"
    msg = "Not found"


class UnknownTenant(NotFound):
    # rendered exactly like NotFound so a caller cannot probe for tenants
    msg = "Not found"


class ValidationFailed(HmsError):
    status_code = 400
    code = "VALIDATION_ERROR"
    msg = "Validation failed"


class InvalidCategory(ValidationFailed):
    code = "INVALID_CATEGORY"
    msg = "Invalid medical history category"


class PoolExhausted(HmsError):
    status_code = 503
    code = "POOL_EXHAUSTED"
    msg = "Database busy, retry shortly"
    retryable = True


class NoteNotEditable(HmsError):
    status_code = 409
    code = "NOTE_LOCKED"
    msg = "Signed clinical notes cannot be edited"


class DatabaseError(HmsError):
    status_code = 500
    code = "DATABASE_ERROR"
    msg = "Database error"
