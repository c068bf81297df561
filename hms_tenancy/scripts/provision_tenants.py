# hms_tenancy/scripts/provision_tenants.py
"""
Bring every tenant schema up to the current tenant table definition.

    python -m hms_tenancy.scripts.provision_tenants --dry-run
    python -m hms_tenancy.scripts.provision_tenants --schema tenant_acme --schema tenant_zen
"""
from __future__ import annotations

import argparse
import os
from typing import List, Optional

from sqlalchemy import create_engine

from hms_tenancy.core.config import settings
from hms_tenancy.core.logging import configure_logging
from hms_tenancy.db.init_db import init_global_db
from hms_tenancy.db.provisioner import ProvisionReport, provision_all


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Provision tenant schemas")
    ap.add_argument("--database-url", default=os.getenv("DATABASE_URL", "").strip() or settings.DATABASE_URL,
                    help="Shared database URL (defaults to settings)")
    ap.add_argument("--dry-run", action="store_true", help="Only print the DDL each schema would receive")
    ap.add_argument("--schema", action="append", default=None, metavar="NAME",
                    help="Restrict to this schema (repeatable). Default: every tenant schema found")
    ap.add_argument("--create-global", action="store_true",
                    help="Also create the shared tables and the clinical note version trigger")
    return ap


def print_report(report: ProvisionReport) -> None:
    for r in report.results:
        print(f"[{r.status.upper():9}] {r.schema}")
        for stmt in r.statements:
            print(f"    {stmt}")
        if r.error:
            print(f"    ERROR: {r.error}")
    print(report.summary())


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    engine = create_engine(args.database_url, pool_pre_ping=True, future=True)
    try:
        if args.create_global:
            if args.dry_run:
                print("Global tables: skipped (--create-global is not applied in a dry run)")
            else:
                init_global_db(engine)
        report = provision_all(engine, schemas=args.schema, dry_run=args.dry_run)
    finally:
        engine.dispose()

    print_report(report)
    return 0 if report.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
