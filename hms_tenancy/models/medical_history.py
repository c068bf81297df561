# hms_tenancy/models/medical_history.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean, CheckConstraint, Column, Date, DateTime, Index, Integer, String, Text
)

from hms_tenancy.db.base import TenantBase


class MedicalHistory(TenantBase):
    __tablename__ = "medical_history"

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, nullable=False)
    category = Column(String(32), nullable=False)  # condition, surgery, allergy, family_history
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    date_diagnosed = Column(Date, nullable=True)
    date_resolved = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default="active")
    notes = Column(Text, nullable=True)

    # condition (severity/treatment shared with allergy)
    icd_code = Column(String(20), nullable=True)
    severity = Column(String(20), nullable=True)
    treatment = Column(Text, nullable=True)

    # surgery
    procedure_code = Column(String(20), nullable=True)
    surgeon = Column(String(255), nullable=True)
    hospital = Column(String(255), nullable=True)
    complications = Column(Text, nullable=True)

    # allergy -- no column defaults: only the allergy insert writes these
    allergen_type = Column(String(32), nullable=True)
    reaction = Column(Text, nullable=True)
    is_critical = Column(Boolean, nullable=True)

    # family history
    relationship = Column(String(100), nullable=True)
    age_of_onset = Column(Integer, nullable=True)
    is_genetic = Column(Boolean, nullable=True)

    created_by = Column(Integer, nullable=True)
    updated_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(
            "category IN ('condition', 'surgery', 'allergy', 'family_history')",
            name="ck_medical_history_category",
        ),
        CheckConstraint(
            "status IN ('active', 'resolved', 'chronic')",
            name="ck_medical_history_status",
        ),
        Index("idx_medical_history_patient", "patient_id"),
        Index("idx_medical_history_category", "patient_id", "category"),
        Index("idx_medical_history_critical", "patient_id", "is_critical"),
    )

    def __repr__(self) -> str:
        return f"<MedicalHistory id={self.id} patient={self.patient_id} category={self.category}>"
