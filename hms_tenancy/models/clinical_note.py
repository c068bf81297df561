# hms_tenancy/models/clinical_note.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
)
from sqlalchemy.orm import relationship

from hms_tenancy.db.base import Base


class ClinicalNote(Base):
    __tablename__ = "clinical_notes"

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, nullable=False)
    provider_id = Column(Integer, nullable=False)
    note_type = Column(String(50), nullable=False)
    content = Column(Text, nullable=False)
    summary = Column(Text, nullable=True)
    template_id = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default="draft")  # draft -> signed (amended reserved)
    signed_at = Column(DateTime, nullable=True)
    signed_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    versions = relationship(
        "ClinicalNoteVersion",
        back_populates="note",
        cascade="all, delete-orphan",
        order_by="ClinicalNoteVersion.version_number.desc()",
    )

    __table_args__ = (
        Index("idx_clinical_notes_patient", "patient_id"),
        Index("idx_clinical_notes_provider", "provider_id"),
        Index("idx_clinical_notes_created", "created_at"),
    )


class ClinicalNoteVersion(Base):
    """Rows are written by the database trigger, never by the application."""
    __tablename__ = "clinical_note_versions"

    id = Column(Integer, primary_key=True)
    note_id = Column(
        Integer,
        ForeignKey("clinical_notes.id", ondelete="CASCADE", name="fk_clinical_note_versions_note"),
        nullable=False,
    )
    version_number = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    summary = Column(Text, nullable=True)
    note_type = Column(String(50), nullable=False)
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    note = relationship("ClinicalNote", back_populates="versions")

    __table_args__ = (
        UniqueConstraint("note_id", "version_number", name="uq_clinical_note_version"),
    )
