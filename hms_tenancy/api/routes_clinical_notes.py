# hms_tenancy/api/routes_clinical_notes.py
# Clinical notes are shared across tenants; no tenant header is read here.
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from hms_tenancy.api.deps import get_clinical_note_repo
from hms_tenancy.api.response import ok
from hms_tenancy.core.errors import NotFound
from hms_tenancy.repositories.clinical_notes import ClinicalNoteRepository
from hms_tenancy.schemas.clinical_note import (
    ClinicalNoteCreate,
    ClinicalNoteFilters,
    ClinicalNoteOut,
    ClinicalNoteSign,
    ClinicalNoteUpdate,
    ClinicalNoteVersionOut,
    ClinicalNoteWithVersionsOut,
)
from hms_tenancy.schemas.common import Pagination, validate_as

router = APIRouter(prefix="/clinical-notes", tags=["Clinical Notes"])

NOTE_NOT_FOUND = "Clinical note not found"


@router.post("/", status_code=201)
def create_note(
    payload: ClinicalNoteCreate,
    repo: ClinicalNoteRepository = Depends(get_clinical_note_repo),
):
    note = repo.create(payload)
    return ok(ClinicalNoteOut.model_validate(note), status_code=201)


@router.get("/")
def list_notes(
    patient_id: Optional[int] = Query(None),
    provider_id: Optional[int] = Query(None),
    note_type: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(10),
    repo: ClinicalNoteRepository = Depends(get_clinical_note_repo),
):
    raw = {
        "patient_id": patient_id, "provider_id": provider_id, "note_type": note_type,
        "status": status, "date_from": date_from, "date_to": date_to,
        "search": search, "page": page, "limit": limit,
    }
    filters = validate_as(ClinicalNoteFilters, {k: v for k, v in raw.items() if v is not None})
    notes, total = repo.list(filters)
    meta = Pagination.build(filters.page, filters.limit, total).model_dump()
    return ok([ClinicalNoteOut.model_validate(n) for n in notes], meta=meta)


@router.get("/patient/{patient_id}")
def notes_for_patient(patient_id: int, repo: ClinicalNoteRepository = Depends(get_clinical_note_repo)):
    return ok([ClinicalNoteOut.model_validate(n) for n in repo.list_by_patient(patient_id)])


@router.get("/provider/{provider_id}")
def notes_for_provider(provider_id: int, repo: ClinicalNoteRepository = Depends(get_clinical_note_repo)):
    return ok([ClinicalNoteOut.model_validate(n) for n in repo.list_by_provider(provider_id)])


@router.get("/{note_id}")
def get_note(
    note_id: int,
    include_versions: bool = Query(False),
    repo: ClinicalNoteRepository = Depends(get_clinical_note_repo),
):
    note = repo.get_by_id(note_id, with_versions=include_versions)
    if not note:
        raise NotFound(NOTE_NOT_FOUND)
    out = ClinicalNoteWithVersionsOut if include_versions else ClinicalNoteOut
    return ok(out.model_validate(note))


@router.put("/{note_id}")
def update_note(
    note_id: int,
    payload: ClinicalNoteUpdate,
    repo: ClinicalNoteRepository = Depends(get_clinical_note_repo),
):
    note = repo.update(note_id, payload)
    if not note:
        raise NotFound(NOTE_NOT_FOUND)
    return ok(ClinicalNoteOut.model_validate(note))


@router.delete("/{note_id}", status_code=204)
def delete_note(note_id: int, repo: ClinicalNoteRepository = Depends(get_clinical_note_repo)):
    if not repo.delete(note_id):
        raise NotFound(NOTE_NOT_FOUND)
    return Response(status_code=204)


@router.post("/{note_id}/sign")
def sign_note(
    note_id: int,
    payload: ClinicalNoteSign,
    repo: ClinicalNoteRepository = Depends(get_clinical_note_repo),
):
    note = repo.sign(note_id, payload.signed_by)
    if not note:
        raise NotFound("Clinical note not found or already signed")
    return ok(ClinicalNoteOut.model_validate(note))


@router.get("/{note_id}/versions")
def note_versions(note_id: int, repo: ClinicalNoteRepository = Depends(get_clinical_note_repo)):
    return ok([ClinicalNoteVersionOut.model_validate(v) for v in repo.get_versions(note_id)])


@router.get("/{note_id}/versions/{version_number}")
def note_version(
    note_id: int,
    version_number: int,
    repo: ClinicalNoteRepository = Depends(get_clinical_note_repo),
):
    version = repo.get_version(note_id, version_number)
    if not version:
        raise NotFound("Version not found")
    return ok(ClinicalNoteVersionOut.model_validate(version))
