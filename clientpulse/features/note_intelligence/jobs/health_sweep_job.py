"""
Nightly client health sweep.

Recomputes health for every active client of an active user with the same
scoring used after note processing, then records the day's snapshots.
Clients are processed one at a time; a failing client is counted and
skipped.
"""

import time
from datetime import UTC, datetime

from clientpulse.config import settings
from clientpulse.features.note_intelligence.pipeline.health import HealthService, health_service
from clientpulse.features.note_intelligence.pipeline.health.repository import HealthRepository
from clientpulse.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class HealthSweepMetrics:
    """Counters for one sweep run."""

    def __init__(self):
        self.reset()

    def reset(self):
        self.start_time = datetime.now(UTC)
        self.clients_processed = 0
        self.clients_updated = 0
        self.errors_count = 0
        self.snapshots_written = 0
        self.total_duration_seconds = 0.0
        self.errors: list[dict] = []

    def record_success(self, client_id: str, score: int):
        self.clients_processed += 1
        self.clients_updated += 1
        logger.debug("Client health updated", client_id=client_id, score=score, job_run="health_sweep")

    def record_failure(self, client_id: str, error: str):
        self.clients_processed += 1
        self.errors_count += 1
        self.errors.append(
            {"client_id": client_id, "error": error, "timestamp": datetime.now(UTC).isoformat()}
        )
        logger.warning(
            "Client health update failed", client_id=client_id, error=error, job_run="health_sweep"
        )

    def finalize(self):
        self.total_duration_seconds = (datetime.now(UTC) - self.start_time).total_seconds()

    def to_dict(self) -> dict:
        return {
            "job_run": "health_sweep",
            "start_time": self.start_time.isoformat(),
            "total_duration_seconds": round(self.total_duration_seconds, 2),
            "clients_processed": self.clients_processed,
            "clients_updated": self.clients_updated,
            "errors_count": self.errors_count,
            "snapshots_written": self.snapshots_written,
        }


async def run_health_sweep(
    service: HealthService = health_service,
    snapshots_enabled: bool | None = None,
    now: datetime | None = None,
) -> HealthSweepMetrics:
    metrics = HealthSweepMetrics()
    now = now or datetime.now(UTC)
    if snapshots_enabled is None:
        snapshots_enabled = settings.HEALTH_SNAPSHOTS_ENABLED

    clients = await HealthRepository.fetch_active_clients()
    logger.info("Health sweep started", client_count=len(clients))

    for client in clients:
        started = time.perf_counter()
        try:
            assessment = await service.recalculate_for_row(client, now)
        except Exception as e:
            metrics.record_failure(client.id, str(e) or type(e).__name__)
            continue
        metrics.record_success(client.id, assessment.score)
        logger.debug(
            "Client swept",
            client_id=client.id,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )

    if snapshots_enabled:
        metrics.snapshots_written = await HealthRepository.insert_health_snapshots(now.date())

    metrics.finalize()
    logger.info("Health sweep completed", **metrics.to_dict())
    return metrics
