# hms_tenancy/db/sql_guard.py
import re
from typing import Iterable, Pattern

from hms_tenancy.core.config import settings

IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


def schema_pattern(prefixes: Iterable[str]) -> Pattern[str]:
    alt = "|".join(re.escape(p.lower()) for p in prefixes if p)
    return re.compile(rf"^(?:{alt})[a-z0-9_]{{1,55}}$")


TENANT_SCHEMA_RE = schema_pattern(settings.TENANT_SCHEMA_PREFIXES)


def has_tenant_prefix(v: str) -> bool:
    return any(v.startswith(p.lower()) for p in settings.TENANT_SCHEMA_PREFIXES if p)


def is_tenant_schema(v: str) -> bool:
    return bool(v) and bool(TENANT_SCHEMA_RE.match(v))


def assert_ident(v: str, what: str = "identifier") -> str:
    if not v or not IDENT_RE.match(v):
        raise ValueError(f"Invalid {what}: {v!r}")
    return v


def assert_schema(v: str) -> str:
    if not is_tenant_schema(v):
        raise ValueError(f"Invalid tenant schema: {v!r}")
    return v
