# hms_tenancy/repositories/medical_history.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy import and_, case, delete, func, select

from hms_tenancy.core.errors import ValidationFailed
from hms_tenancy.models.medical_history import MedicalHistory
from hms_tenancy.repositories.base import TenantRepository
from hms_tenancy.schemas.common import validate_as
from hms_tenancy.schemas.medical_history import (
    MedicalHistoryFilters,
    MedicalHistoryUpdate,
    foreign_fields,
    parse_entry,
)

RECENT_LIMIT = 10


def _filter_clauses(patient_id: int, f: MedicalHistoryFilters) -> list:
    clauses = [MedicalHistory.patient_id == patient_id]
    if f.category:
        clauses.append(MedicalHistory.category == f.category)
    if f.status:
        clauses.append(MedicalHistory.status == f.status)
    if f.severity:
        clauses.append(MedicalHistory.severity == f.severity)
    if f.is_critical is not None:
        clauses.append(MedicalHistory.is_critical.is_(f.is_critical))
    if f.date_from:
        clauses.append(MedicalHistory.date_diagnosed >= f.date_from)
    if f.date_to:
        clauses.append(MedicalHistory.date_diagnosed <= f.date_to)
    return clauses


def _critical_active_allergy():
    return and_(
        MedicalHistory.category == "allergy",
        MedicalHistory.is_critical.is_(True),
        MedicalHistory.status == "active",
    )


class MedicalHistoryRepository(TenantRepository):

    def create(self, tenant: str, entry: Any, actor_id: Optional[int]) -> MedicalHistory:
        # validated (and the column set fixed) before a connection is taken
        values = parse_entry(entry).columns()
        values["created_by"] = actor_id

        with self.session(tenant) as db:
            row = MedicalHistory(**values)
            db.add(row)
            db.flush()
            db.refresh(row)
            return row

    def get_by_id(self, tenant: str, entry_id: int) -> Optional[MedicalHistory]:
        with self.session(tenant) as db:
            return db.get(MedicalHistory, entry_id)

    def list_by_patient(
        self,
        tenant: str,
        patient_id: int,
        filters: Optional[MedicalHistoryFilters] = None,
    ) -> Tuple[List[MedicalHistory], int]:
        f = filters or MedicalHistoryFilters()
        where = _filter_clauses(patient_id, f)

        with self.session(tenant) as db:
            total = db.execute(
                select(func.count()).select_from(MedicalHistory).where(*where)
            ).scalar_one()

            stmt = (
                select(MedicalHistory)
                .where(*where)
                .order_by(
                    case((_critical_active_allergy(), 0), else_=1),
                    MedicalHistory.date_diagnosed.desc().nulls_last(),
                    MedicalHistory.created_at.desc(),
                    MedicalHistory.id.desc(),
                )
                .limit(f.limit)
                .offset((f.page - 1) * f.limit)
            )
            rows = list(db.execute(stmt).scalars().all())
        return rows, int(total)

    def update(
        self,
        tenant: str,
        entry_id: int,
        patch: Union[MedicalHistoryUpdate, Dict[str, Any]],
        actor_id: Optional[int],
    ) -> Optional[MedicalHistory]:
        changes = validate_as(MedicalHistoryUpdate, patch).changes()

        with self.session(tenant) as db:
            row = db.get(MedicalHistory, entry_id)
            if row is None:
                return None
            if not changes:
                return row

            foreign = foreign_fields(row.category, changes)
            if foreign:
                raise ValidationFailed(
                    f"Fields not valid for a {row.category} entry: {', '.join(foreign)}",
                    details={"category": row.category, "fields": foreign},
                )

            for key, value in changes.items():
                setattr(row, key, value)
            row.updated_by = actor_id
            row.updated_at = datetime.utcnow()
            db.flush()
            db.refresh(row)
            return row

    def delete(self, tenant: str, entry_id: int) -> bool:
        with self.session(tenant) as db:
            result = db.execute(delete(MedicalHistory).where(MedicalHistory.id == entry_id))
            return (result.rowcount or 0) > 0

    def get_critical_allergies(self, tenant: str, patient_id: int) -> List[MedicalHistory]:
        with self.session(tenant) as db:
            stmt = (
                select(MedicalHistory)
                .where(MedicalHistory.patient_id == patient_id, _critical_active_allergy())
                .order_by(MedicalHistory.severity.desc(), MedicalHistory.created_at.desc(),
                          MedicalHistory.id.desc())
            )
            return list(db.execute(stmt).scalars().all())

    def get_summary(self, tenant: str, patient_id: int) -> Dict[str, Any]:
        cat = MedicalHistory.category
        counts_stmt = (
            select(
                func.count().filter(cat == "condition").label("total_conditions"),
                func.count().filter(and_(cat == "condition", MedicalHistory.status == "active"))
                .label("active_conditions"),
                func.count().filter(cat == "surgery").label("total_surgeries"),
                func.count().filter(cat == "allergy").label("total_allergies"),
                func.count().filter(and_(cat == "allergy", MedicalHistory.is_critical.is_(True)))
                .label("critical_allergies"),
                func.count().filter(cat == "family_history").label("total_family_history"),
            )
            .select_from(MedicalHistory)
            .where(MedicalHistory.patient_id == patient_id)
        )
        recent_stmt = (
            select(MedicalHistory)
            .where(MedicalHistory.patient_id == patient_id)
            .order_by(MedicalHistory.created_at.desc(), MedicalHistory.id.desc())
            .limit(RECENT_LIMIT)
        )

        with self.session(tenant) as db:
            counts = db.execute(counts_stmt).mappings().one()
            recent = list(db.execute(recent_stmt).scalars().all())

        summary: Dict[str, Any] = {k: int(v or 0) for k, v in counts.items()}
        summary["recent_entries"] = recent
        return summary
