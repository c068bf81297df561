# hms_tenancy/schemas/clinical_note.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

NoteType = Literal[
    "progress_note",
    "discharge_summary",
    "consultation",
    "admission_note",
    "operative_note",
    "procedure_note",
    "follow_up",
    "other",
]
NoteStatus = Literal["draft", "signed", "amended"]


class ClinicalNoteCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")
    patient_id: int = Field(gt=0)
    provider_id: int = Field(gt=0)
    note_type: NoteType
    content: str = Field(min_length=1)
    summary: Optional[str] = None
    template_id: Optional[int] = Field(None, gt=0)


class ClinicalNoteUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")
    content: Optional[str] = Field(None, min_length=1)
    summary: Optional[str] = None
    note_type: Optional[NoteType] = None

    @model_validator(mode="after")
    def _required_not_cleared(self):
        for f in ("content", "note_type"):
            if f in self.model_fields_set and getattr(self, f) is None:
                raise ValueError(f"{f} cannot be null")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class ClinicalNoteSign(BaseModel):
    model_config = ConfigDict(extra="forbid")
    signed_by: int = Field(gt=0)


class ClinicalNoteFilters(BaseModel):
    model_config = ConfigDict(extra="forbid")
    patient_id: Optional[int] = None
    provider_id: Optional[int] = None
    note_type: Optional[NoteType] = None
    status: Optional[NoteStatus] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    search: Optional[str] = None
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)


class ClinicalNoteVersionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    note_id: int
    version_number: int
    content: str
    summary: Optional[str] = None
    note_type: str
    created_by: Optional[int] = None
    created_at: datetime


class ClinicalNoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    patient_id: int
    provider_id: int
    note_type: str
    content: str
    summary: Optional[str] = None
    template_id: Optional[int] = None
    status: str
    signed_at: Optional[datetime] = None
    signed_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class ClinicalNoteWithVersionsOut(ClinicalNoteOut):
    versions: List[ClinicalNoteVersionOut] = Field(default_factory=list)
