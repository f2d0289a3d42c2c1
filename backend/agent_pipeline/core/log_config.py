"""Process-wide logging setup shared by the worker and local scripts."""

from __future__ import annotations

import logging

from agent_pipeline.core.config import Settings, settings as default_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(settings: Settings | None = None) -> None:
    """
    Configure the root logger once per process.

    DEBUG when settings.debug is set, otherwise settings.log_level.
    """
    settings = settings or default_settings
    level = logging.DEBUG if settings.debug else getattr(
        logging, settings.log_level.upper(), logging.INFO
    )
    logging.basicConfig(level=level, format=LOG_FORMAT)

    # Third-party noise
    logging.getLogger("celery").setLevel(logging.WARNING)
    logging.getLogger("kombu").setLevel(logging.WARNING)
    logging.getLogger("chardet").setLevel(logging.WARNING)
