# hms_tenancy/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from hms_tenancy.core.config import settings

# One physical database shared by every tenant; isolation is per schema,
# so a single bounded pool serves all requests.
engine: Engine = create_engine(settings.DATABASE_URL, **settings.engine_options())


def get_engine() -> Engine:
    return engine
