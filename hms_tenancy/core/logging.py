# hms_tenancy/core/logging.py
import logging
from typing import Optional

from hms_tenancy.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    root = logging.getLogger()
    lvl = (level or settings.LOG_LEVEL or "INFO").upper()
    root.setLevel(lvl)
    # single handler even when called from both the app and a CLI
    if any(getattr(h, "_hms_handler", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._hms_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
