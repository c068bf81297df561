# hms_tenancy/db/init_db.py
from __future__ import annotations

import logging
from typing import List

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from hms_tenancy.db.base import Base
import hms_tenancy.models  # noqa: F401  (metadata must be complete)

logger = logging.getLogger(__name__)

_SQLITE_VERSION_TRIGGER = [
    """
    CREATE TRIGGER IF NOT EXISTS trg_clinical_note_version
    AFTER UPDATE OF content, summary, note_type ON clinical_notes
    FOR EACH ROW
    WHEN OLD.content IS NOT NEW.content
      OR OLD.summary IS NOT NEW.summary
      OR OLD.note_type IS NOT NEW.note_type
    BEGIN
      INSERT INTO clinical_note_versions
        (note_id, version_number, content, summary, note_type, created_by, created_at)
      VALUES (
        OLD.id,
        (SELECT COALESCE(MAX(version_number), 0) + 1
           FROM clinical_note_versions WHERE note_id = OLD.id),
        OLD.content, OLD.summary, OLD.note_type, OLD.provider_id, CURRENT_TIMESTAMP
      );
    END
    """,
]

_PG_VERSION_TRIGGER = [
    """
    CREATE OR REPLACE FUNCTION create_clinical_note_version() RETURNS TRIGGER AS $$
    BEGIN
      IF OLD.content IS DISTINCT FROM NEW.content
         OR OLD.summary IS DISTINCT FROM NEW.summary
         OR OLD.note_type IS DISTINCT FROM NEW.note_type THEN
        INSERT INTO clinical_note_versions
          (note_id, version_number, content, summary, note_type, created_by, created_at)
        VALUES (
          OLD.id,
          COALESCE((SELECT MAX(version_number) FROM clinical_note_versions
                    WHERE note_id = OLD.id), 0) + 1,
          OLD.content, OLD.summary, OLD.note_type, OLD.provider_id, CURRENT_TIMESTAMP
        );
      END IF;
      RETURN NEW;
    END;
    $$ LANGUAGE plpgsql
    """,
    "DROP TRIGGER IF EXISTS trg_clinical_note_version ON clinical_notes",
    """
    CREATE TRIGGER trg_clinical_note_version
    AFTER UPDATE OF content, summary, note_type ON clinical_notes
    FOR EACH ROW EXECUTE FUNCTION create_clinical_note_version()
    """,
]


def version_trigger_sql(dialect_name: str) -> List[str]:
    if dialect_name == "postgresql":
        return list(_PG_VERSION_TRIGGER)
    if dialect_name == "sqlite":
        return list(_SQLITE_VERSION_TRIGGER)
    raise RuntimeError(f"No clinical note version trigger for dialect {dialect_name!r}")


def ensure_version_trigger(conn: Connection) -> None:
    for sql in version_trigger_sql(conn.dialect.name):
        conn.execute(text(sql))


def init_global_db(engine: Engine) -> None:
    """
    Create the shared (non-tenant) tables and the version-capture trigger.
    Safe to run multiple times.
    """
    with engine.begin() as conn:
        Base.metadata.create_all(conn, checkfirst=True)
        ensure_version_trigger(conn)
    logger.info("Global tables ready: %s", ", ".join(sorted(Base.metadata.tables)))
