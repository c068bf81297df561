# hms_tenancy/schemas/common.py
from __future__ import annotations

import math
from typing import Any, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from hms_tenancy.core.errors import ValidationFailed

M = TypeVar("M", bound=BaseModel)


class Pagination(BaseModel):
    model_config = ConfigDict(extra="forbid")
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


def validate_as(model: Type[M], data: Any) -> M:
    """``model.model_validate`` with pydantic errors surfaced as ValidationFailed."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ValidationFailed(details=e.errors(include_url=False, include_context=False)) from e
