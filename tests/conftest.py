import os
import tempfile
from pathlib import Path
from typing import Iterator, List, Sequence

import pytest
import sqlalchemy as sa
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.pool import QueuePool

# Settings are read at import time; point them at SQLite before the package loads.
os.environ.setdefault(
    'DATABASE_URL', 'sqlite+pysqlite:///' + os.path.join(tempfile.gettempdir(), 'hms_tenancy_unused.db')
)
os.environ.setdefault('JWT_SECRET', 'test-jwt-secret')
os.environ.setdefault('LOG_LEVEL', 'WARNING')

from hms_tenancy.core.config import settings  # noqa: E402
from hms_tenancy.db.init_db import init_global_db  # noqa: E402
from hms_tenancy.db.provisioner import provision_all  # noqa: E402
from hms_tenancy.db.session import get_engine  # noqa: E402

TENANT_SCHEMAS = ('demo_clinic', 'tenant_acme', 'tenant_other')


def _env_flag(name: str) -> bool:
    return os.getenv(name, '0').lower() in {'1', 'true', 'yes'}


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        '--run-postgres',
        action='store_true',
        default=_env_flag('RUN_PG_TESTS'),
        dest='run_postgres',
        help='Execute tests marked with @pytest.mark.postgres that require PostgreSQL.',
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        'markers',
        'postgres: Tests that require a PostgreSQL database and are skipped unless '
        'RUN_PG_TESTS=1 or --run-postgres is provided.',
    )


def pytest_collection_modifyitems(config: pytest.Config, items: List[pytest.Item]) -> None:
    if config.getoption('run_postgres'):
        return
    skip_marker = pytest.mark.skip(reason='Requires PostgreSQL. Set RUN_PG_TESTS=1 or pass --run-postgres to enable.')
    for item in items:
        if 'postgres' in item.keywords:
            item.add_marker(skip_marker)


def make_sqlite_engine(root: Path, schemas: Sequence[str] = TENANT_SCHEMAS) -> sa.engine.Engine:
    """
    File-backed SQLite engine where every tenant schema is an attached
    database. One pooled connection only, so tests can assert that the same
    DBAPI connection is handed to different tenants.
    """
    engine = sa.create_engine(
        f"sqlite+pysqlite:///{root / 'main.db'}",
        future=True,
        poolclass=QueuePool,
        pool_size=1,
        max_overflow=0,
        pool_timeout=0.2,
        connect_args={'check_same_thread': False},
    )

    @sa.event.listens_for(engine, 'connect')
    def _attach_tenants(dbapi_conn, _record):
        for name in schemas:
            dbapi_conn.execute(f"ATTACH DATABASE '{root / (name + '.db')}' AS {name}")

    return engine


@pytest.fixture()
def engine(tmp_path: Path) -> Iterator[sa.engine.Engine]:
    eng = make_sqlite_engine(tmp_path)
    yield eng
    eng.dispose()


@pytest.fixture()
def provisioned_engine(engine: sa.engine.Engine) -> sa.engine.Engine:
    init_global_db(engine)
    report = provision_all(engine)
    assert report.ok, report.summary()
    return engine


@pytest.fixture()
def client(provisioned_engine: sa.engine.Engine) -> Iterator[TestClient]:
    from hms_tenancy.main import app

    app.dependency_overrides[get_engine] = lambda: provisioned_engine
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def make_token(uid: int = 7) -> str:
    return jwt.encode({'uid': uid}, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def tenant_headers(tenant: str, uid: int = 7) -> dict:
    return {settings.TENANT_HEADER: tenant, 'Authorization': f'Bearer {make_token(uid)}'}


@pytest.fixture()
def acme_headers() -> dict:
    return tenant_headers('acme')


@pytest.fixture()
def other_headers() -> dict:
    return tenant_headers('other')


@pytest.fixture()
def headers_for():
    return tenant_headers
