"""Logging setup, called once from the application lifespan."""
import logging
from typing import Optional

from app.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    settings = get_settings()
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )
    # pymongo's heartbeat chatter drowns out the app at INFO
    logging.getLogger("pymongo").setLevel(logging.WARNING)
