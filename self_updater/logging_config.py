"""Logging configuration for hosts and the command line entry point.

The updater modules only ever call :func:`logging.getLogger`; this module is
what wires those loggers to a file so a failed update can be diagnosed after
the application restarted.

Two environment variables allow customising where the log file is written:

``SELF_UPDATER_LOG_FILE``
    Absolute path to the log file that should be created.

``SELF_UPDATER_LOG_DIR``
    Directory where the default log file name will be created.  Ignored when
    ``SELF_UPDATER_LOG_FILE`` is present.
"""

from __future__ import annotations

import logging
import os
import sys
from enum import Enum
from pathlib import Path
from typing import Iterable

_LOG_FILE_ENV = "SELF_UPDATER_LOG_FILE"
_LOG_DIR_ENV = "SELF_UPDATER_LOG_DIR"
_DEFAULT_DIRNAME = ".self_updater"
_DEFAULT_LOGNAME = "updater.log"
_CONFIGURED = False
_LOG_PATH: Path | None = None
_HANDLER_TAG = "_self_updater_logging_handler"
_FILE_HANDLER: logging.FileHandler | None = None
_LOGGER_NAME = "self_updater"


class LogVerbosity(str, Enum):
    """Verbosity levels supported by the updater log file."""

    DISABLED = "disabled"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    VERBOSE = "verbose"


_VERBOSITY_LEVELS: dict[LogVerbosity, int] = {
    LogVerbosity.DISABLED: logging.CRITICAL + 1,
    LogVerbosity.ERROR: logging.ERROR,
    LogVerbosity.WARNING: logging.WARNING,
    LogVerbosity.INFO: logging.INFO,
    LogVerbosity.VERBOSE: logging.DEBUG,
}

_DEFAULT_VERBOSITY = LogVerbosity.INFO
_CURRENT_VERBOSITY = _DEFAULT_VERBOSITY


def ensure_updater_logging(*, console_level: int = logging.INFO) -> Path:
    """Attach file and console handlers to the ``self_updater`` logger.

    The first invocation installs a file handler filtered by the current
    verbosity and, when stderr is interactive, a console handler at
    ``console_level``.  Later calls return the configured log path.
    """

    global _CONFIGURED, _LOG_PATH, _FILE_HANDLER

    if _CONFIGURED and _LOG_PATH is not None:
        return _LOG_PATH

    log_path = _resolve_log_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(_VERBOSITY_LEVELS[_CURRENT_VERBOSITY])
    file_handler.setFormatter(formatter)
    setattr(file_handler, _HANDLER_TAG, True)
    logger.addHandler(file_handler)
    _FILE_HANDLER = file_handler

    if _should_log_to_stderr(logger.handlers):
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(console_level)
        stream_handler.setFormatter(formatter)
        setattr(stream_handler, _HANDLER_TAG, True)
        logger.addHandler(stream_handler)

    _CONFIGURED = True
    _LOG_PATH = log_path

    logger.info(
        "Writing updater logs to %s (verbosity=%s)", log_path, _CURRENT_VERBOSITY.value
    )
    return log_path


def set_file_log_verbosity(verbosity: LogVerbosity | str) -> None:
    """Adjust the minimum severity recorded in the updater log file."""

    global _CURRENT_VERBOSITY

    if isinstance(verbosity, str):
        try:
            verbosity = LogVerbosity(verbosity.lower())
        except ValueError as exc:
            raise ValueError(f"Unsupported log verbosity: {verbosity}") from exc

    ensure_updater_logging()
    handler = _FILE_HANDLER
    if handler is None:  # pragma: no cover - defensive
        return

    _CURRENT_VERBOSITY = verbosity
    handler.setLevel(_VERBOSITY_LEVELS[verbosity])
    logging.getLogger(__name__).info("File log verbosity set to %s", verbosity.value)


def get_file_log_verbosity() -> LogVerbosity:
    """Return the current verbosity level for the updater log file."""

    return _CURRENT_VERBOSITY


def _resolve_log_path() -> Path:
    env_file = os.environ.get(_LOG_FILE_ENV)
    if env_file:
        return Path(env_file).expanduser()

    env_dir = os.environ.get(_LOG_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser() / _DEFAULT_LOGNAME

    return Path.home() / _DEFAULT_DIRNAME / "logs" / _DEFAULT_LOGNAME


def _should_log_to_stderr(handlers: Iterable[logging.Handler]) -> bool:
    stderr = getattr(sys, "stderr", None)
    if stderr is None:
        return False
    is_tty = getattr(stderr, "isatty", None)
    if not callable(is_tty):
        return False
    try:
        if not is_tty():
            return False
    except Exception:  # pragma: no cover - defensive against odd stderr
        return False

    for handler in handlers:
        if isinstance(handler, logging.StreamHandler) and handler.stream is stderr:
            return False
    return True


def _reset_for_tests() -> None:
    """Remove handlers installed by :func:`ensure_updater_logging`."""

    global _CONFIGURED, _LOG_PATH, _FILE_HANDLER, _CURRENT_VERBOSITY

    logger = logging.getLogger(_LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            logger.removeHandler(handler)
            handler.close()

    _CONFIGURED = False
    _LOG_PATH = None
    _FILE_HANDLER = None
    _CURRENT_VERBOSITY = _DEFAULT_VERBOSITY


__all__ = [
    "LogVerbosity",
    "ensure_updater_logging",
    "get_file_log_verbosity",
    "set_file_log_verbosity",
]
