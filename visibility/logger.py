"""Logging configuration using loguru.

stdout belongs to the check report, so every diagnostic (metadata fallbacks,
probe failures and timeouts, phase transitions) goes to stderr. CI runs that
archive their logs can add a JSON-lines file sink with
``VISIBILITY_LOG_TO_FILE=true``. Every record carries the configured
``environment`` in its context.

Modules log with keyword context rather than formatted strings::

    log = get_logger(__name__)
    log.warning("Probe timed out", url=url, timeout_ms=5000)
"""

import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from config.settings import VisibilityConfig, get_config
from visibility.exceptions import LoggingInitializationError

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[module]}</cyan> | "
    "<level>{message}</level>"
)
_LOG_FILE_NAME = "visibility_{time:YYYY-MM-DD}.json"


def _record_to_json(record: dict[str, Any]) -> str:
    """One JSON line per record; bound keyword context lands under ``context``."""
    context = {key: value for key, value in record["extra"].items() if key != "json_line"}
    entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": record["name"],
        "function": record["function"],
        "line": record["line"],
        "context": context,
    }

    exception = record["exception"]
    if exception is not None and exception.type is not None:
        entry["exception"] = {"type": exception.type.__name__, "value": str(exception.value)}

    return json.dumps(entry, default=str)


def _attach_json_line(record: dict[str, Any]) -> bool:
    record["extra"]["json_line"] = _record_to_json(record)
    return True


def _console_context(record: dict[str, Any]) -> bool:
    record["extra"].setdefault("module", record["name"])
    return True


def _ensure_writable(log_dir: Path) -> None:
    """Create ``log_dir`` and prove a file can be written in it.

    Raises:
        LoggingInitializationError: If the directory cannot be created or
            written to.
    """
    probe_file = log_dir / ".visibility_write_probe"
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        probe_file.touch()
        probe_file.unlink()
    except PermissionError as exc:
        raise LoggingInitializationError(
            log_dir=str(log_dir), reason=f"Permission denied: {exc}"
        ) from exc
    except OSError as exc:
        raise LoggingInitializationError(log_dir=str(log_dir), reason=str(exc)) from exc


def configure_logging(config: VisibilityConfig | None = None) -> None:
    """Install the stderr sink and, when enabled, the JSON file sink.

    Call once at startup, before any checks run. The stderr sink is in place
    before the file sink is attempted, so a failing file sink still leaves
    console diagnostics working.

    Raises:
        LoggingInitializationError: If the file sink is enabled and its
            directory is not writable.
    """
    if config is None:
        config = get_config()

    logger.remove()
    logger.configure(extra={"environment": config.environment})
    logger.add(
        sys.stderr,
        format=_CONSOLE_FORMAT,
        level=config.log_level,
        filter=_console_context,
        colorize=True,
        backtrace=config.debug,
        diagnose=config.debug,
    )

    if config.log_to_file:
        _ensure_writable(config.log_dir)
        logger.add(
            str(config.log_dir / _LOG_FILE_NAME),
            format="{extra[json_line]}",
            level=config.log_level,
            filter=_attach_json_line,
            rotation=config.log_rotation,
            retention=config.log_retention,
            compression="gz",
        )

    logger.debug(
        "Logging initialized",
        log_level=config.log_level,
        log_to_file=config.log_to_file,
    )


def get_logger(name: str) -> "logger":
    """Return the shared logger bound to a module name."""
    return logger.bind(module=name)
