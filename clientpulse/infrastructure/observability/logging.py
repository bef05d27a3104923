"""
Structured logging setup for the note intelligence workers.
Provides JSON-formatted logs with consistent fields for production monitoring.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging with JSON output for production.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _add_worker_context,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def _add_worker_context(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Tag every entry with the service name so worker logs can be filtered."""
    event_dict.setdefault("service", "note_intelligence")
    return event_dict


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def log_job_outcome(
    note_id: str,
    outcome: str,
    attempt: int,
    provider: str,
    duration_ms: float,
    error: str | None = None,
):
    """Log the result of a single note processing job with consistent fields."""
    logger = get_logger("jobs")

    log_data = {
        "note_id": note_id,
        "outcome": outcome,
        "attempt": attempt,
        "provider": provider,
        "duration_ms": round(duration_ms, 2),
        "job_event": "note_processed",
    }

    if error:
        log_data["error"] = error

    if outcome == "failed":
        logger.error("Note processing failed permanently", **log_data)
    elif outcome == "retried":
        logger.warning("Note processing scheduled for retry", **log_data)
    else:
        logger.info("Note processing finished", **log_data)
