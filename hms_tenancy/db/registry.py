# hms_tenancy/db/registry.py
"""Enumerates tenant schemas in the shared database by naming convention."""
from __future__ import annotations

from typing import List, Union

from sqlalchemy import inspect
from sqlalchemy.engine import Connection, Engine

from hms_tenancy.db.sql_guard import is_tenant_schema


def list_tenant_schemas(bind: Union[Engine, Connection]) -> List[str]:
    names = inspect(bind).get_schema_names()
    return sorted(n for n in names if is_tenant_schema(n))


def schema_exists(conn: Connection, schema: str) -> bool:
    if not is_tenant_schema(schema):
        return False
    return inspect(conn).has_schema(schema)
