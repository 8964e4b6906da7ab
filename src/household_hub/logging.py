"""Logger setup shared by the household hub modules."""

import logging
import os

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

_ROOT = "household_hub"


def _coerce_level(value: str | int | None) -> int:
    if isinstance(value, str):
        return _LEVELS.get(value.upper().strip(), logging.WARNING)
    if isinstance(value, int):
        return value
    return logging.WARNING


def get_logger(name: str) -> logging.Logger:
    """Return a child of the package logger.

    The package logger is configured once: LOG_LEVEL (default WARNING) and an
    optional LOG_FILE. Output goes to stderr so ``--json`` output on stdout
    stays parseable.
    """
    root = logging.getLogger(_ROOT)
    if not getattr(root, "_household_configured", False):
        level = _coerce_level(os.environ.get("LOG_LEVEL"))
        root.setLevel(level)

        formatter = logging.Formatter(
            fmt="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        root.addHandler(handler)

        log_file = os.environ.get("LOG_FILE")
        if log_file:
            try:
                file_handler = logging.FileHandler(log_file, encoding="utf-8")
                file_handler.setFormatter(formatter)
                root.addHandler(file_handler)
            except OSError:
                root.warning("LOG_FILE could not be opened; continuing without file logging")

        root.propagate = False
        setattr(root, "_household_configured", True)

    if name == _ROOT or name.startswith(_ROOT + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT}.{name}")


def set_level(level: str | int) -> None:
    """Change the package log level at runtime (used by the config layer)."""
    logging.getLogger(_ROOT).setLevel(_coerce_level(level))
