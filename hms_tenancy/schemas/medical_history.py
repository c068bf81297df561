# hms_tenancy/schemas/medical_history.py
from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from hms_tenancy.core.errors import InvalidCategory, ValidationFailed

Category = Literal["condition", "surgery", "allergy", "family_history"]
EntryStatus = Literal["active", "resolved", "chronic"]
Severity = Literal["mild", "moderate", "severe"]
AllergenType = Literal["medication", "food", "environmental", "other"]

BASE_FIELDS: Tuple[str, ...] = (
    "patient_id", "name", "description", "date_diagnosed",
    "date_resolved", "status", "notes",
)

# discriminator -> the one column group written next to the base columns
CATEGORY_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "condition": ("icd_code", "severity", "treatment"),
    "surgery": ("procedure_code", "surgeon", "hospital", "complications"),
    "allergy": ("allergen_type", "severity", "reaction", "treatment", "is_critical"),
    "family_history": ("relationship", "age_of_onset", "is_genetic"),
}

ALL_CATEGORY_FIELDS = frozenset(f for cols in CATEGORY_COLUMNS.values() for f in cols)


class _EntryBase(BaseModel):
    model_config = ConfigDict(extra="forbid")

    CATEGORY: ClassVar[str] = ""

    patient_id: int = Field(gt=0)
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    date_diagnosed: Optional[date] = None
    date_resolved: Optional[date] = None
    status: EntryStatus = "active"
    notes: Optional[str] = None

    def columns(self) -> Dict[str, Any]:
        """Base columns plus exactly this variant's column group."""
        cols = {f: getattr(self, f) for f in BASE_FIELDS}
        cols["category"] = self.CATEGORY
        for f in CATEGORY_COLUMNS[self.CATEGORY]:
            cols[f] = getattr(self, f)
        return cols


class ConditionCreate(_EntryBase):
    CATEGORY: ClassVar[str] = "condition"
    category: Literal["condition"]
    icd_code: Optional[str] = Field(None, max_length=20)
    severity: Optional[Severity] = None
    treatment: Optional[str] = None


class SurgeryCreate(_EntryBase):
    CATEGORY: ClassVar[str] = "surgery"
    category: Literal["surgery"]
    procedure_code: Optional[str] = Field(None, max_length=20)
    surgeon: Optional[str] = Field(None, max_length=255)
    hospital: Optional[str] = Field(None, max_length=255)
    complications: Optional[str] = None


class AllergyCreate(_EntryBase):
    CATEGORY: ClassVar[str] = "allergy"
    category: Literal["allergy"]
    allergen_type: AllergenType = "other"
    severity: Severity = "mild"
    reaction: str = ""
    treatment: Optional[str] = None
    is_critical: bool = False


class FamilyHistoryCreate(_EntryBase):
    CATEGORY: ClassVar[str] = "family_history"
    category: Literal["family_history"]
    relationship: Optional[str] = Field(None, max_length=100)
    age_of_onset: Optional[int] = Field(None, ge=0, le=150)
    is_genetic: bool = False


MedicalHistoryCreate = Annotated[
    Union[ConditionCreate, SurgeryCreate, AllergyCreate, FamilyHistoryCreate],
    Field(discriminator="category"),
]

ENTRY_TYPES = (ConditionCreate, SurgeryCreate, AllergyCreate, FamilyHistoryCreate)

_entry_adapter: TypeAdapter = TypeAdapter(MedicalHistoryCreate)


def parse_entry(data: Any) -> _EntryBase:
    """Validate a raw payload into its category variant."""
    if isinstance(data, ENTRY_TYPES):
        return data
    if not isinstance(data, dict):
        raise ValidationFailed("Medical history entry must be an object")
    category = data.get("category")
    if not isinstance(category, str) or category not in CATEGORY_COLUMNS:
        raise InvalidCategory(
            details={"category": category, "allowed": sorted(CATEGORY_COLUMNS)})
    try:
        return _entry_adapter.validate_python(data)
    except ValidationError as e:
        raise ValidationFailed(details=e.errors(include_url=False, include_context=False)) from e


class MedicalHistoryUpdate(BaseModel):
    """Sparse patch: only fields present in the payload are written."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    date_diagnosed: Optional[date] = None
    date_resolved: Optional[date] = None
    status: Optional[EntryStatus] = None
    notes: Optional[str] = None

    icd_code: Optional[str] = Field(None, max_length=20)
    severity: Optional[Severity] = None
    treatment: Optional[str] = None

    procedure_code: Optional[str] = Field(None, max_length=20)
    surgeon: Optional[str] = Field(None, max_length=255)
    hospital: Optional[str] = Field(None, max_length=255)
    complications: Optional[str] = None

    allergen_type: Optional[AllergenType] = None
    reaction: Optional[str] = None
    is_critical: Optional[bool] = None

    relationship: Optional[str] = Field(None, max_length=100)
    age_of_onset: Optional[int] = Field(None, ge=0, le=150)
    is_genetic: Optional[bool] = None

    @model_validator(mode="after")
    def _required_not_cleared(self):
        for f in ("name", "status", "is_critical", "is_genetic"):
            if f in self.model_fields_set and getattr(self, f) is None:
                raise ValueError(f"{f} cannot be null")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


def foreign_fields(category: str, changes: Dict[str, Any]) -> List[str]:
    """Category-specific fields in ``changes`` that ``category`` does not own."""
    own = set(CATEGORY_COLUMNS.get(category, ()))
    return sorted(f for f in changes if f in ALL_CATEGORY_FIELDS and f not in own)


class MedicalHistoryFilters(BaseModel):
    model_config = ConfigDict(extra="forbid")
    category: Optional[Category] = None
    status: Optional[EntryStatus] = None
    severity: Optional[Severity] = None
    is_critical: Optional[bool] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)


class MedicalHistoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    category: Category
    name: str
    description: Optional[str] = None
    date_diagnosed: Optional[date] = None
    date_resolved: Optional[date] = None
    status: str
    notes: Optional[str] = None

    icd_code: Optional[str] = None
    severity: Optional[str] = None
    treatment: Optional[str] = None
    procedure_code: Optional[str] = None
    surgeon: Optional[str] = None
    hospital: Optional[str] = None
    complications: Optional[str] = None
    allergen_type: Optional[str] = None
    reaction: Optional[str] = None
    is_critical: Optional[bool] = None
    relationship: Optional[str] = None
    age_of_onset: Optional[int] = None
    is_genetic: Optional[bool] = None

    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class MedicalHistorySummary(BaseModel):
    total_conditions: int = 0
    active_conditions: int = 0
    total_surgeries: int = 0
    total_allergies: int = 0
    critical_allergies: int = 0
    total_family_history: int = 0
    recent_entries: List[MedicalHistoryOut] = Field(default_factory=list)
