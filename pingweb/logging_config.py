"""Logging configuration for pingweb."""

import logging
import os
import sys

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# uvicorn logs one access line per request; with a 3 s auto-refresh that is
# a line every few seconds per open browser tab
ACCESS_LOGGER = "uvicorn.access"


def _env_level(name: str, default: int) -> int:
    return LOG_LEVELS.get(os.environ.get(name, "").strip().upper(), default)


def configure_logging() -> None:
    """Configure logging for the monitor and the embedded uvicorn server.

    Everything goes to stderr (the journal under systemd) in one format.
    uvicorn's own loggers propagate to the root handler because the server
    is started with ``log_config=None``.

    Environment Variables:
        PINGWEB_LOG_LEVEL: root level, DEBUG..CRITICAL, default INFO.
            Unknown values fall back to INFO.
        PINGWEB_ACCESS_LOG_LEVEL: level of the per-request access log,
            default WARNING, which hides page refreshes.
    """
    log_level = _env_level("PINGWEB_LOG_LEVEL", logging.INFO)
    access_level = _env_level("PINGWEB_ACCESS_LOG_LEVEL", logging.WARNING)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )
    logging.getLogger(ACCESS_LOGGER).setLevel(access_level)

    logger = logging.getLogger(__name__)
    logger.info(
        "Logging configured: level=%s, access_log=%s",
        logging.getLevelName(log_level),
        logging.getLevelName(access_level),
    )
