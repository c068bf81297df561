# hms_tenancy/db/base.py
from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# Placeholder schema for every per-tenant table. It is swapped for the real
# tenant schema through ``schema_translate_map`` on a scoped connection and
# never exists in the database, so an unscoped statement fails closed.
TENANT_SCHEMA = "tenant"


class TenantBase(DeclarativeBase):
    """Tables present in every tenant schema (medical history, ...)."""
    metadata = MetaData(schema=TENANT_SCHEMA)


class Base(DeclarativeBase):
    """Global / public tables shared by all tenants (clinical notes)."""
    pass
