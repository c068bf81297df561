# hms_tenancy/models/__init__.py
from .medical_history import MedicalHistory
from .clinical_note import ClinicalNote, ClinicalNoteVersion

__all__ = ["MedicalHistory", "ClinicalNote", "ClinicalNoteVersion"]
