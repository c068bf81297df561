# hms_tenancy/core/config.py
import os
from typing import Any, Dict, List
from urllib.parse import quote_plus

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def _default_database_url() -> str:
    driver = os.getenv("DB_DRIVER", "psycopg2")
    user = os.getenv("PG_USER", "postgres")
    password = os.getenv("PG_PASSWORD", "postgres")
    host = os.getenv("PG_HOST", "localhost")
    port = os.getenv("PG_PORT", "5432")
    db = os.getenv("PG_DB", "multitenant_db")
    return (
        f"postgresql+{driver}://{quote_plus(user)}:{quote_plus(password)}"
        f"@{host}:{port}/{db}")


class Settings(BaseModel):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "HMS Tenancy Core")
    API_V1_STR: str = os.getenv("API_V1_STR", "/api")

    # CORS (env takes priority)
    BACKEND_CORS_ORIGINS: List[str] = _split_csv(
        os.getenv(
            "CORS_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ))

    # ---------- PostgreSQL (one physical DB, schema per tenant) ----------
    DATABASE_URL: str = os.getenv("DATABASE_URL") or _default_database_url()
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "10"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "20"))
    # bounded wait for a pooled connection before PoolExhausted
    DB_POOL_TIMEOUT: float = float(os.getenv("DB_POOL_TIMEOUT", "5"))
    DB_POOL_RECYCLE: int = int(os.getenv("DB_POOL_RECYCLE", "280"))
    DB_ECHO: bool = os.getenv("DB_ECHO", "false").lower() in {"1", "true", "yes"}

    # ---------- Tenancy ----------
    TENANT_HEADER: str = os.getenv("TENANT_HEADER", "X-Tenant-ID")
    TENANT_SCHEMA_PREFIXES: List[str] = _split_csv(
        os.getenv("TENANT_SCHEMA_PREFIXES", "tenant_,demo_"))
    DEFAULT_TENANT_PREFIX: str = os.getenv("DEFAULT_TENANT_PREFIX", "tenant_")

    # ---------- Security ----------
    JWT_SECRET: str = os.getenv("JWT_SECRET", "change-this")
    JWT_ALG: str = os.getenv("JWT_ALG", "HS256")

    # ---------- Logging ----------
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    def engine_options(self) -> Dict[str, Any]:
        """Keyword arguments for :func:`sqlalchemy.create_engine`."""
        options: Dict[str, Any] = {
            "pool_pre_ping": True,
            "pool_recycle": self.DB_POOL_RECYCLE,
            "pool_size": self.DB_POOL_SIZE,
            "max_overflow": self.DB_MAX_OVERFLOW,
            "pool_timeout": self.DB_POOL_TIMEOUT,
            "echo": self.DB_ECHO,
            "future": True,
        }
        if self.DATABASE_URL.startswith("postgres"):
            options["connect_args"] = {"options": "-c timezone=UTC"}
        return options


settings = Settings()
