"""Process-wide service configuration."""

from __future__ import annotations

import logging

from dotenv import load_dotenv

from config import Settings
from logging_config import setup_logging

load_dotenv()

try:
    settings = Settings()
except ValueError as exc:
    logging.basicConfig(level=logging.ERROR, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("promptcraft").error("Invalid configuration: %s", exc)
    raise

setup_logging(settings.debug)
