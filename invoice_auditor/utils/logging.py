"""Logging setup shared by the CLI and the API"""

import logging
from typing import Optional

from invoice_auditor.utils.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Install a basic root logging config.

    The level comes from the argument, falling back to LOG_LEVEL (default INFO).
    """
    resolved = (level or get_settings().log_level).upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    # httpx logs every storage/postgrest request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
