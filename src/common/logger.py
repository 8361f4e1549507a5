"""
Logging setup for the lead finder.

Orchestrator messages carry the run id and the current stage, both as a
``[run:xxxxxxxx] [stage]`` prefix for humans and as record attributes so the
JSON formatter can emit them as separate fields for scheduled runs.
"""

import json
import logging
import os
import sys
from typing import Optional


# Set from DEBUG_MODE or the run script's --debug flag
_GLOBAL_DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() == "true"

NOISY_LOGGERS = ("urllib3", "httpx", "openai")


def set_global_debug_mode(enabled: bool) -> None:
    global _GLOBAL_DEBUG_MODE
    _GLOBAL_DEBUG_MODE = enabled


def is_debug_mode() -> bool:
    return _GLOBAL_DEBUG_MODE


class RunLogger:
    """
    Logger wrapper bound to one run.

    The orchestrator calls ``bind`` as it moves from stage to stage; every
    message after that is prefixed and tagged with the new values.
    """

    def __init__(
        self,
        name: str,
        run_id: Optional[str] = None,
        stage: Optional[str] = None,
        debug_mode: Optional[bool] = None,
    ):
        """
        Args:
            name: Logger name (usually __name__)
            run_id: Run identifier, if already known
            stage: Pipeline stage (e.g., "searching", "fetching")
            debug_mode: Force DEBUG level; None uses the global setting
        """
        self.logger = logging.getLogger(name)
        self.run_id = run_id
        self.stage = stage

        if debug_mode if debug_mode is not None else is_debug_mode():
            self.logger.setLevel(logging.DEBUG)

    def bind(self, run_id: Optional[str] = None, stage: Optional[str] = None) -> "RunLogger":
        """Switch the run id and/or stage. ``""`` clears a value."""
        if run_id is not None:
            self.run_id = run_id
        if stage is not None:
            self.stage = stage
        return self

    def _prefix(self) -> str:
        parts = []
        if self.run_id:
            parts.append(f"[run:{self.run_id[:8]}]")
        if self.stage:
            parts.append(f"[{self.stage}]")
        return " ".join(parts)

    def _log(self, level: int, message: str, **kwargs) -> None:
        prefix = self._prefix()
        extra = {"run_id": self.run_id or "", "stage": self.stage or ""}
        extra.update(kwargs.pop("extra", None) or {})
        self.logger.log(level, f"{prefix} {message}" if prefix else message, extra=extra, **kwargs)

    def debug(self, message: str, **kwargs) -> None:
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log(logging.ERROR, message, **kwargs)

    def exception(self, message: str, **kwargs) -> None:
        """ERROR with the active traceback attached."""
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, message, **kwargs)


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record; run_id and stage included when set."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for key in ("run_id", "stage"):
            value = getattr(record, key, "")
            if value:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(level: str = "INFO", format: str = "simple") -> None:
    """
    Configure the root logger with a single stdout handler.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: "simple" for terminals, "json" for scheduled runs
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if format == "json":
        handler.setFormatter(JsonLineFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))

    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(max(log_level, logging.WARNING))


def get_logger(
    name: str,
    run_id: Optional[str] = None,
    stage: Optional[str] = None,
    debug_mode: Optional[bool] = None,
) -> RunLogger:
    return RunLogger(name, run_id, stage, debug_mode)
