# hms_tenancy/repositories/base.py
from __future__ import annotations

import enum
import logging
from contextlib import contextmanager
from typing import ClassVar, Iterator

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from hms_tenancy.core.errors import DatabaseError, HmsError, PoolExhausted
from hms_tenancy.db.tenancy import global_session, tenant_session

logger = logging.getLogger(__name__)


class DataScope(str, enum.Enum):
    TENANT = "tenant"  # rows live in the caller's tenant schema
    GLOBAL = "global"  # rows live in the shared public schema


class BaseRepository:
    scope: ClassVar[DataScope]

    def __init__(self, engine: Engine):
        self.engine = engine

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except HmsError:
            raise
        except PoolTimeoutError as e:
            raise PoolExhausted() from e
        except SQLAlchemyError as e:
            logger.exception("%s: database error", type(self).__name__)
            raise DatabaseError() from e


class TenantRepository(BaseRepository):
    """Every operation takes the resolved tenant schema and runs scoped to it."""
    scope: ClassVar[DataScope] = DataScope.TENANT

    @contextmanager
    def session(self, tenant: str) -> Iterator[Session]:
        with self._translate_errors(), tenant_session(self.engine, tenant) as db:
            yield db


class GlobalRepository(BaseRepository):
    """Operations run against the shared schema with no tenant binding."""
    scope: ClassVar[DataScope] = DataScope.GLOBAL

    @contextmanager
    def session(self) -> Iterator[Session]:
        with self._translate_errors(), global_session(self.engine) as db:
            yield db
