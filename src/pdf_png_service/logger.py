import logging

from . import config

LOGGER_NAME = "pdf_png_service"


def configure_logging(level: str | None = None) -> logging.Logger:
    """Attach a console handler to the package logger (idempotent)."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel((level or config.LOG_LEVEL).upper())
    logger.propagate = False
    if not any(getattr(h, "_pdf_png_console", False) for h in logger.handlers):
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        ))
        console._pdf_png_console = True  # type: ignore[attr-defined]
        logger.addHandler(console)
    return logger
