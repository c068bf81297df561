# hms_tenancy/api/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException
from jose import JWTError, jwt
from sqlalchemy.engine import Engine

from hms_tenancy.core.config import settings
from hms_tenancy.db.session import get_engine
from hms_tenancy.db.tenancy import resolve_tenant
from hms_tenancy.repositories.clinical_notes import ClinicalNoteRepository
from hms_tenancy.repositories.medical_history import MedicalHistoryRepository


# =========================================================
# TENANT CONTEXT
# =========================================================
def get_tenant_schema(
    x_tenant_id: Optional[str] = Header(None, alias=settings.TENANT_HEADER),
) -> str:
    """Tenant header -> schema name (``acme`` -> ``tenant_acme``)."""
    return resolve_tenant(x_tenant_id)


# =========================================================
# AUTH HELPERS
# =========================================================
def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def _decode_token(raw_token: str) -> dict:
    try:
        return jwt.decode(raw_token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")


def current_actor_id(authorization: Optional[str] = Header(None)) -> int:
    token = _extract_bearer(authorization)
    if not token:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = _decode_token(token)
    uid = payload.get("uid") or payload.get("sub")
    try:
        return int(uid)
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token subject")


# =========================================================
# REPOSITORIES
# =========================================================
def get_medical_history_repo(engine: Engine = Depends(get_engine)) -> MedicalHistoryRepository:
    return MedicalHistoryRepository(engine)


def get_clinical_note_repo(engine: Engine = Depends(get_engine)) -> ClinicalNoteRepository:
    return ClinicalNoteRepository(engine)
