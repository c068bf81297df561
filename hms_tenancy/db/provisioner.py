# hms_tenancy/db/provisioner.py
"""
Applies the tenant table definition to every tenant schema.

Each schema is diffed against the definition with the SQLAlchemy inspector
and only the missing pieces are emitted, so a second run is a no-op.
Schemas run one after another, each in its own transaction; a failure is
recorded on that schema's result and the loop moves on.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import CheckConstraint, Table, UniqueConstraint, inspect, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.schema import AddConstraint, CreateColumn, CreateIndex, CreateTable, DDLElement
from sqlalchemy.sql.elements import TextClause

from hms_tenancy.db.base import TENANT_SCHEMA, TenantBase
from hms_tenancy.db.registry import list_tenant_schemas
from hms_tenancy.db.sql_guard import assert_ident, assert_schema
import hms_tenancy.models  # noqa: F401  (metadata must be complete)

logger = logging.getLogger(__name__)

APPLIED = "applied"
UNCHANGED = "unchanged"
PLANNED = "planned"
FAILED = "failed"

# dialects that cannot add a constraint to an existing table
_NO_ALTER_CONSTRAINT = {"sqlite"}


@dataclass
class SchemaResult:
    schema: str
    status: str
    statements: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != FAILED


@dataclass
class ProvisionReport:
    results: List[SchemaResult] = field(default_factory=list)

    @property
    def failed(self) -> List[SchemaResult]:
        return [r for r in self.results if r.status == FAILED]

    @property
    def ok(self) -> bool:
        return not self.failed

    def counts(self) -> dict:
        out = {APPLIED: 0, UNCHANGED: 0, PLANNED: 0, FAILED: 0}
        for r in self.results:
            out[r.status] += 1
        return out

    def summary(self) -> str:
        c = self.counts()
        line = (f"{len(self.results)} schema(s): {c[APPLIED]} applied, "
                f"{c[UNCHANGED]} unchanged, {c[PLANNED]} planned, {c[FAILED]} failed")
        if self.failed:
            line += " -- failed: " + ", ".join(r.schema for r in self.failed)
        return line


def default_definition() -> List[Table]:
    return list(TenantBase.metadata.sorted_tables)


def _named(constraints: Iterable[dict]) -> set:
    return {c.get("name") for c in constraints if c.get("name")}


def plan_schema(conn: Connection, schema: str, tables: Sequence[Table]) -> List[DDLElement | TextClause]:
    """DDL needed to bring ``schema`` up to ``tables``; empty when already there."""
    insp = inspect(conn)
    prep = conn.dialect.identifier_preparer
    ops: List[DDLElement | TextClause] = []

    for table in tables:
        if table.schema != TENANT_SCHEMA:
            raise ValueError(f"Table {table.name!r} is not declared under the tenant schema")
        assert_ident(table.name, "table")

        if not insp.has_table(table.name, schema=schema):
            ops.append(CreateTable(table, if_not_exists=True))
            for idx in sorted(table.indexes, key=lambda i: i.name or ""):
                ops.append(CreateIndex(idx, if_not_exists=True))
            continue

        qualified = f"{prep.quote_schema(schema)}.{prep.quote(table.name)}"

        existing_cols = {c["name"] for c in insp.get_columns(table.name, schema=schema)}
        for col in table.columns:
            if col.name not in existing_cols:
                spec = CreateColumn(col).compile(dialect=conn.dialect)
                ops.append(text(f"ALTER TABLE {qualified} ADD COLUMN {spec}"))

        existing_idx = _named(insp.get_indexes(table.name, schema=schema))
        for idx in sorted(table.indexes, key=lambda i: i.name or ""):
            if idx.name not in existing_idx:
                ops.append(CreateIndex(idx, if_not_exists=True))

        if conn.dialect.name in _NO_ALTER_CONSTRAINT:
            continue
        existing_cons = _named(insp.get_check_constraints(table.name, schema=schema))
        existing_cons |= _named(insp.get_unique_constraints(table.name, schema=schema))
        for cons in table.constraints:
            if not isinstance(cons, (CheckConstraint, UniqueConstraint)):
                continue
            if cons.name and cons.name not in existing_cons:
                ops.append(AddConstraint(cons))

    return ops


def _render(op: DDLElement | TextClause, conn: Connection) -> str:
    translate = conn.get_execution_options().get("schema_translate_map")
    compiled = op.compile(
        dialect=conn.dialect,
        schema_translate_map=translate,
        render_schema_translate=True,
    )
    return " ".join(str(compiled).split())


def provision_schema(engine: Engine, schema: str, tables: Sequence[Table], *, dry_run: bool = False) -> SchemaResult:
    try:
        schema = assert_schema(schema)
    except ValueError as e:
        return SchemaResult(schema=schema, status=FAILED, error=str(e))

    executed: List[str] = []
    try:
        with engine.connect() as raw:
            conn = raw.execution_options(schema_translate_map={TENANT_SCHEMA: schema})
            with conn.begin():
                ops = plan_schema(conn, schema, tables)
                for op in ops:
                    executed.append(_render(op, conn))
                    if not dry_run:
                        conn.execute(op)
    except Exception as e:
        logger.exception("Provisioning failed for schema %s", schema)
        return SchemaResult(schema=schema, status=FAILED, statements=executed, error=str(e))

    if dry_run:
        status = PLANNED if executed else UNCHANGED
    else:
        status = APPLIED if executed else UNCHANGED
    logger.info("Schema %s: %s (%d statement(s))", schema, status, len(executed))
    return SchemaResult(schema=schema, status=status, statements=executed)


def provision_all(
    engine: Engine,
    tables: Optional[Sequence[Table]] = None,
    *,
    schemas: Optional[Sequence[str]] = None,
    dry_run: bool = False,
) -> ProvisionReport:
    """
    Apply ``tables`` (default: every tenant table) to each tenant schema the
    registry finds, or to ``schemas`` when given.
    """
    definition = list(tables) if tables is not None else default_definition()
    targets = list(schemas) if schemas is not None else list_tenant_schemas(engine)
    logger.info("Provisioning %d table(s) across %d schema(s)%s",
                len(definition), len(targets), " (dry run)" if dry_run else "")

    report = ProvisionReport()
    for schema in targets:
        report.results.append(provision_schema(engine, schema, definition, dry_run=dry_run))

    logger.info("Provisioning finished: %s", report.summary())
    return report
