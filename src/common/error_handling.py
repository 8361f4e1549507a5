"""
Centralized error handling for the lead finder pipeline.

Item-level failures (one query, one page, one candidate, one lead) are
recorded in an ErrorCollector and the stage carries on. Structural failures
propagate to the orchestrator, which finalizes the run as failed.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional


@dataclass
class StageError:
    """
    Structured error information for a failed pipeline item.

    The message is what ends up in RunStats.errors; the remaining fields
    are kept for logging and summaries.
    """

    stage: str  # e.g., "fetch", "contact_enrichment"
    operation: str  # e.g., "fetch_page", "score_lead"
    message: str
    severity: str = "medium"  # "critical", "high", "medium", "low"
    recoverable: bool = True  # Can the stage continue?
    exception_type: Optional[str] = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class ErrorCollector:
    """
    Collects item-level errors during one pipeline run.

    Collaborators that loop over items accept an optional collector and
    append to it instead of raising.
    """

    def __init__(self):
        self.errors: List[StageError] = []

    def __len__(self) -> int:
        return len(self.errors)

    def add_error(
        self,
        stage: str,
        operation: str,
        message: str,
        severity: str = "medium",
        recoverable: bool = True,
        exception: Optional[Exception] = None,
    ) -> None:
        """Convenience method to add an error with parameters."""
        self.errors.append(
            StageError(
                stage=stage,
                operation=operation,
                message=message,
                severity=severity,
                recoverable=recoverable,
                exception_type=type(exception).__name__ if exception else None,
            )
        )

    def get_error_messages(self) -> List[str]:
        """Flat list of messages, the shape stored in run stats."""
        return [e.message for e in self.errors]

    def summary(self) -> dict:
        """Get error summary statistics."""
        by_severity = {"critical": 0, "high": 0, "medium": 0, "low": 0}
        by_stage: dict = {}
        for error in self.errors:
            if error.severity in by_severity:
                by_severity[error.severity] += 1
            by_stage[error.stage] = by_stage.get(error.stage, 0) + 1
        return {
            "total": len(self.errors),
            "by_severity": by_severity,
            "by_stage": by_stage,
            "recoverable": sum(1 for e in self.errors if e.recoverable),
            "non_recoverable": sum(1 for e in self.errors if not e.recoverable),
        }


def record_item_failure(
    collector: Optional[ErrorCollector],
    logger: logging.Logger,
    stage: str,
    operation: str,
    message: str,
    exception: Optional[Exception] = None,
) -> None:
    """
    Log an item-level failure and add it to the collector (if any).

    Usage:
        except Exception as e:
            record_item_failure(self.errors, self.logger, "fetch", "fetch_page",
                                f"Fetch failed for {url}: {e}", e)
    """
    logger.warning(f"[{stage}] [{operation}] {message}")
    if collector is not None:
        collector.add_error(stage, operation, message, exception=exception)

