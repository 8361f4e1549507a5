"""
JSON-line run events for the lead finder.

One line per event on stdout (or any stream):

    {"timestamp": "...", "event": "stage_complete", "run_id": "...",
     "stage": "fetching", "status": "success", "duration_ms": 5120,
     "metadata": {"pages": 8}}

Scheduled runs ship these lines to the log aggregator; ordinary log
messages go through src.common.logger.
"""

import json
import sys
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, TextIO


class EventType(str, Enum):
    STAGE_START = "stage_start"
    STAGE_COMPLETE = "stage_complete"
    STAGE_ERROR = "stage_error"
    RUN_START = "run_start"
    RUN_COMPLETE = "run_complete"


class StageStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class LogEvent:
    timestamp: str
    event: str
    run_id: str
    stage: Optional[str] = None
    status: Optional[str] = None
    duration_ms: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_json(self) -> str:
        """JSON without the unset fields."""
        return json.dumps({k: v for k, v in asdict(self).items() if v is not None}, default=str)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class StructuredLogger:
    """
    Emits run events for one run.

    Disabled loggers drop every event, which is what unit tests and the
    orchestrator's ``emit_events=False`` use.
    """

    def __init__(self, run_id: str, enabled: bool = True, stream: Optional[TextIO] = None):
        self.run_id = run_id
        self.enabled = enabled
        self.stream = stream

    def emit(self, event: EventType, **fields: Any) -> None:
        if not self.enabled:
            return
        line = LogEvent(timestamp=_utc_timestamp(), event=event.value, run_id=self.run_id, **fields).to_json()
        print(line, file=self.stream or sys.stdout, flush=True)

    def run_start(self, metadata: Optional[Dict[str, Any]] = None) -> None:
        self.emit(EventType.RUN_START, metadata=metadata)

    def run_complete(
        self,
        status: str = "success",
        duration_ms: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Final event of a run.

        Args:
            status: "success" or "failed"
            duration_ms: Wall time of the whole run
            metadata: Final RunStats as a dict
        """
        self.emit(EventType.RUN_COMPLETE, status=status, duration_ms=duration_ms, metadata=metadata)


class StageContext:
    """
    Times one pipeline stage and emits its start and outcome events.

    ``duration_ms`` is set when the block exits, whether it returned or
    raised; exceptions are never suppressed.
    """

    def __init__(self, logger: StructuredLogger, stage: str):
        self.logger = logger
        self.stage = stage
        self.metadata: Dict[str, Any] = {}
        self.duration_ms: int = 0
        self._started: float = 0.0

    def __enter__(self) -> "StageContext":
        self._started = time.perf_counter()
        self.logger.emit(EventType.STAGE_START, stage=self.stage)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.duration_ms = int((time.perf_counter() - self._started) * 1000)
        fields = {
            "stage": self.stage,
            "duration_ms": self.duration_ms,
            "metadata": self.metadata or None,
        }
        if exc_type is None:
            self.logger.emit(EventType.STAGE_COMPLETE, status=StageStatus.SUCCESS.value, **fields)
        else:
            self.logger.emit(EventType.STAGE_ERROR, status=StageStatus.ERROR.value, error=str(exc_val), **fields)
        return False

    def add_metadata(self, key: str, value: Any) -> None:
        """Counts reported in the stage_complete event."""
        self.metadata[key] = value
