# hms_tenancy/api/routes_medical_history.py
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Response

from hms_tenancy.api.deps import current_actor_id, get_medical_history_repo, get_tenant_schema
from hms_tenancy.api.response import ok
from hms_tenancy.core.errors import NotFound
from hms_tenancy.repositories.medical_history import MedicalHistoryRepository
from hms_tenancy.schemas.common import Pagination, validate_as
from hms_tenancy.schemas.medical_history import (
    MedicalHistoryFilters,
    MedicalHistoryOut,
    MedicalHistorySummary,
)

router = APIRouter(prefix="/medical-history", tags=["Medical History"])

ENTRY_NOT_FOUND = "Medical history entry not found"


def _out(row) -> MedicalHistoryOut:
    return MedicalHistoryOut.model_validate(row)


@router.post("/", status_code=201)
def create_entry(
    payload: Dict[str, Any] = Body(...),
    tenant: str = Depends(get_tenant_schema),
    actor_id: int = Depends(current_actor_id),
    repo: MedicalHistoryRepository = Depends(get_medical_history_repo),
):
    row = repo.create(tenant, payload, actor_id)
    return ok(_out(row), status_code=201)


# sub-routes first so "/patient/{id}" never swallows them
@router.get("/patient/{patient_id}/critical-allergies")
def critical_allergies(
    patient_id: int,
    tenant: str = Depends(get_tenant_schema),
    repo: MedicalHistoryRepository = Depends(get_medical_history_repo),
):
    rows = repo.get_critical_allergies(tenant, patient_id)
    return ok([_out(r) for r in rows])


@router.get("/patient/{patient_id}/summary")
def patient_summary(
    patient_id: int,
    tenant: str = Depends(get_tenant_schema),
    repo: MedicalHistoryRepository = Depends(get_medical_history_repo),
):
    summary = MedicalHistorySummary.model_validate(repo.get_summary(tenant, patient_id), from_attributes=True)
    return ok(summary)


@router.get("/patient/{patient_id}")
def list_patient_history(
    patient_id: int,
    category: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    severity: Optional[str] = Query(None),
    is_critical: Optional[bool] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    page: int = Query(1),
    limit: int = Query(20),
    tenant: str = Depends(get_tenant_schema),
    repo: MedicalHistoryRepository = Depends(get_medical_history_repo),
):
    raw = {
        "category": category, "status": status, "severity": severity,
        "is_critical": is_critical, "date_from": date_from, "date_to": date_to,
        "page": page, "limit": limit,
    }
    filters = validate_as(MedicalHistoryFilters, {k: v for k, v in raw.items() if v is not None})
    rows, total = repo.list_by_patient(tenant, patient_id, filters)
    meta = Pagination.build(filters.page, filters.limit, total).model_dump()
    return ok([_out(r) for r in rows], meta=meta)


@router.get("/{entry_id}")
def get_entry(
    entry_id: int,
    tenant: str = Depends(get_tenant_schema),
    repo: MedicalHistoryRepository = Depends(get_medical_history_repo),
):
    row = repo.get_by_id(tenant, entry_id)
    if not row:
        raise NotFound(ENTRY_NOT_FOUND)
    return ok(_out(row))


@router.put("/{entry_id}")
def update_entry(
    entry_id: int,
    payload: Dict[str, Any] = Body(...),
    tenant: str = Depends(get_tenant_schema),
    actor_id: int = Depends(current_actor_id),
    repo: MedicalHistoryRepository = Depends(get_medical_history_repo),
):
    row = repo.update(tenant, entry_id, payload, actor_id)
    if not row:
        raise NotFound(ENTRY_NOT_FOUND)
    return ok(_out(row))


@router.delete("/{entry_id}", status_code=204)
def delete_entry(
    entry_id: int,
    tenant: str = Depends(get_tenant_schema),
    repo: MedicalHistoryRepository = Depends(get_medical_history_repo),
):
    if not repo.delete(tenant, entry_id):
        raise NotFound(ENTRY_NOT_FOUND)
    return Response(status_code=204)
