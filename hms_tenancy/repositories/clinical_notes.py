# hms_tenancy/repositories/clinical_notes.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import selectinload

from hms_tenancy.core.errors import NoteNotEditable
from hms_tenancy.models.clinical_note import ClinicalNote, ClinicalNoteVersion
from hms_tenancy.repositories.base import GlobalRepository
from hms_tenancy.schemas.common import validate_as
from hms_tenancy.schemas.clinical_note import (
    ClinicalNoteCreate,
    ClinicalNoteFilters,
    ClinicalNoteUpdate,
)


def _like_escape(s: str) -> str:
    return s.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _filter_clauses(f: ClinicalNoteFilters) -> list:
    clauses = []
    if f.patient_id:
        clauses.append(ClinicalNote.patient_id == f.patient_id)
    if f.provider_id:
        clauses.append(ClinicalNote.provider_id == f.provider_id)
    if f.note_type:
        clauses.append(ClinicalNote.note_type == f.note_type)
    if f.status:
        clauses.append(ClinicalNote.status == f.status)
    if f.date_from:
        clauses.append(ClinicalNote.created_at >= f.date_from)
    if f.date_to:
        clauses.append(ClinicalNote.created_at <= f.date_to)
    if f.search:
        pattern = f"%{_like_escape(f.search)}%"
        clauses.append(or_(
            ClinicalNote.content.ilike(pattern, escape="\\"),
            ClinicalNote.summary.ilike(pattern, escape="\\"),
        ))
    return clauses


class ClinicalNoteRepository(GlobalRepository):
    """
    Clinical notes live in the shared schema, not in a tenant schema.
    Version rows are appended by a database trigger whenever content,
    summary or note_type changes; this class only reads them.
    """

    def create(self, data: Union[ClinicalNoteCreate, Dict[str, Any]]) -> ClinicalNote:
        data = validate_as(ClinicalNoteCreate, data)
        with self.session() as db:
            note = ClinicalNote(**data.model_dump(), status="draft")
            db.add(note)
            db.flush()
            db.refresh(note)
            return note

    def get_by_id(self, note_id: int, with_versions: bool = False) -> Optional[ClinicalNote]:
        opts = [selectinload(ClinicalNote.versions)] if with_versions else []
        with self.session() as db:
            return db.get(ClinicalNote, note_id, options=opts)

    def list(self, filters: Optional[ClinicalNoteFilters] = None) -> Tuple[List[ClinicalNote], int]:
        f = filters or ClinicalNoteFilters()
        where = _filter_clauses(f)
        with self.session() as db:
            total = db.execute(
                select(func.count()).select_from(ClinicalNote).where(*where)
            ).scalar_one()
            rows = db.execute(
                select(ClinicalNote)
                .where(*where)
                .order_by(ClinicalNote.created_at.desc(), ClinicalNote.id.desc())
                .limit(f.limit)
                .offset((f.page - 1) * f.limit)
            ).scalars().all()
        return list(rows), int(total)

    def list_by_patient(self, patient_id: int) -> List[ClinicalNote]:
        return self._list_where(ClinicalNote.patient_id == patient_id)

    def list_by_provider(self, provider_id: int) -> List[ClinicalNote]:
        return self._list_where(ClinicalNote.provider_id == provider_id)

    def _list_where(self, clause) -> List[ClinicalNote]:
        with self.session() as db:
            return list(db.execute(
                select(ClinicalNote)
                .where(clause)
                .order_by(ClinicalNote.created_at.desc(), ClinicalNote.id.desc())
            ).scalars().all())

    def update(self, note_id: int, patch: Union[ClinicalNoteUpdate, Dict[str, Any]]) -> Optional[ClinicalNote]:
        changes = validate_as(ClinicalNoteUpdate, patch).changes()

        with self.session() as db:
            note = db.get(ClinicalNote, note_id)
            if note is None:
                return None
            if not changes:
                return note
            if note.status != "draft":
                raise NoteNotEditable()

            result = db.execute(
                update(ClinicalNote)
                .where(ClinicalNote.id == note_id, ClinicalNote.status == "draft")
                .values(**changes, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            if not result.rowcount:
                # signed between the read and the write
                raise NoteNotEditable()
            db.refresh(note)
            return note

    def sign(self, note_id: int, signed_by: int) -> Optional[ClinicalNote]:
        """draft -> signed. None when the note is missing or not a draft."""
        now = datetime.utcnow()
        with self.session() as db:
            result = db.execute(
                update(ClinicalNote)
                .where(ClinicalNote.id == note_id, ClinicalNote.status == "draft")
                .values(status="signed", signed_at=now, signed_by=signed_by, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if not result.rowcount:
                return None
            return db.get(ClinicalNote, note_id)

    def delete(self, note_id: int) -> bool:
        with self.session() as db:
            db.execute(delete(ClinicalNoteVersion).where(ClinicalNoteVersion.note_id == note_id))
            result = db.execute(delete(ClinicalNote).where(ClinicalNote.id == note_id))
            return (result.rowcount or 0) > 0

    def get_versions(self, note_id: int) -> List[ClinicalNoteVersion]:
        with self.session() as db:
            return list(db.execute(
                select(ClinicalNoteVersion)
                .where(ClinicalNoteVersion.note_id == note_id)
                .order_by(ClinicalNoteVersion.version_number.desc())
            ).scalars().all())

    def get_version(self, note_id: int, version_number: int) -> Optional[ClinicalNoteVersion]:
        with self.session() as db:
            return db.execute(
                select(ClinicalNoteVersion)
                .where(
                    ClinicalNoteVersion.note_id == note_id,
                    ClinicalNoteVersion.version_number == version_number,
                )
            ).scalar_one_or_none()
