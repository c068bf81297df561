# hms_tenancy/db/tenancy.py
"""
Tenant resolution and per-request scoping of pooled connections.

Tenant tables are declared under the placeholder schema ``tenant``; a scoped
connection carries ``schema_translate_map`` so every statement is rendered
schema-qualified (``tenant_acme.medical_history``). Nothing is ever set on
the database session itself (no ``SET search_path``), so a connection goes
back to the pool exactly as neutral as it came out.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from hms_tenancy.core.config import settings
from hms_tenancy.core.errors import MissingTenantContext, PoolExhausted, UnknownTenant
from hms_tenancy.db.base import TENANT_SCHEMA
from hms_tenancy.db.registry import schema_exists
from hms_tenancy.db.sql_guard import assert_schema, has_tenant_prefix, is_tenant_schema

logger = logging.getLogger(__name__)


def resolve_tenant(raw: Optional[str]) -> str:
    """
    Map a raw tenant header value to a schema name.

    ``acme`` -> ``tenant_acme``; ``demo_clinic`` stays as is. Missing/blank
    raises MissingTenantContext; anything that cannot be a schema name is
    reported as UnknownTenant.
    """
    value = (raw or "").strip().lower()
    if not value:
        raise MissingTenantContext()
    if not has_tenant_prefix(value):
        value = f"{settings.DEFAULT_TENANT_PREFIX}{value}"
    if not is_tenant_schema(value):
        raise UnknownTenant()
    return value


@dataclass
class ScopedConnection:
    """A pooled connection bound to one tenant schema for one unit of work."""

    schema: Optional[str]
    connection: Connection

    @property
    def is_bound(self) -> bool:
        return self.schema is not None


def checkout(engine: Engine) -> Connection:
    try:
        return engine.connect()
    except PoolTimeoutError as e:
        logger.warning("Connection pool exhausted: %s", engine.pool.status())
        raise PoolExhausted() from e


@contextmanager
def tenant_connection(engine: Engine, schema: str) -> Iterator[ScopedConnection]:
    try:
        schema = assert_schema(schema)
    except ValueError as e:
        raise UnknownTenant() from e

    conn = checkout(engine)
    scoped = ScopedConnection(schema=schema, connection=conn)
    try:
        if not schema_exists(conn, schema):
            logger.warning("Unknown tenant schema requested: %s", schema)
            raise UnknownTenant()
        # end the transaction the inspector autobegan so the caller owns it
        conn.rollback()
        scoped.connection = conn.execution_options(
            schema_translate_map={TENANT_SCHEMA: schema})
        yield scoped
    finally:
        scoped.schema = None
        conn.close()


@contextmanager
def tenant_session(engine: Engine, schema: str) -> Iterator[Session]:
    with tenant_connection(engine, schema) as scoped:
        db = Session(bind=scoped.connection, autoflush=False, expire_on_commit=False)
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


@contextmanager
def global_session(engine: Engine) -> Iterator[Session]:
    conn = checkout(engine)
    db = Session(bind=conn, autoflush=False, expire_on_commit=False)
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        conn.close()
