"""Entrypoint: python -m clinic_chat"""
from __future__ import annotations

import logging

import uvicorn

from clinic_chat.api.middleware.correlation_id import CorrelationIdFilter
from clinic_chat.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        "clinic_chat.app:create_app",
        factory=True,
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        log_level=settings.LOG_LEVEL.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
