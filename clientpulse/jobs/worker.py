"""
Generic background worker runner.

Reads the desired job name from CLI args or the WORKER_JOB environment
variable, opens the shared resources and delegates to the job.
"""

import asyncio
import os
import sys
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from clientpulse.config import settings
from clientpulse.db.pool import db_pool
from clientpulse.features.note_intelligence.jobs.health_sweep_job import run_health_sweep
from clientpulse.features.note_intelligence.jobs.note_processing_job import (
    start_note_processing_worker,
)
from clientpulse.infrastructure.observability.logging import get_logger, setup_logging
from clientpulse.services.infrastructure.redis_client import fast_redis

logger = get_logger(__name__)

JobCoroutine = Callable[[], Awaitable[object]]

JOB_REGISTRY: dict[str, JobCoroutine] = {
    "note_processing": start_note_processing_worker,
    "health_sweep": run_health_sweep,
}

DEFAULT_JOB = "note_processing"


def _resolve_job_name() -> str:
    """Pick the target job from CLI args or WORKER_JOB env variable."""
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower()
    return os.getenv("WORKER_JOB", DEFAULT_JOB).strip().lower()


async def run_worker(job_name: str | None = None) -> None:
    """Run the requested background job."""
    name = (job_name or _resolve_job_name()).strip().lower()
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )

    logger.info("Starting background worker", job=name)
    await JOB_REGISTRY[name]()


@asynccontextmanager
async def worker_resources() -> AsyncIterator[None]:
    """Open the database pool then Redis; close them in reverse order."""
    started: list[str] = []
    try:
        await db_pool.initialize()
        started.append("database_pool")
        await fast_redis.initialize()
        started.append("redis")
        logger.info("Worker resources initialized", services=started)
    except Exception as e:
        logger.error("Failed to initialize worker resources", error=str(e), completed=started)
        if "database_pool" in started:
            await db_pool.close()
        raise

    try:
        yield
    finally:
        try:
            await fast_redis.close()
        except Exception as e:
            logger.error("Error closing Redis", error=str(e))
        try:
            await db_pool.close()
        except Exception as e:
            logger.error("Error closing database pool", error=str(e))
        logger.info("Worker resources closed")


async def _run_with_resources(job_name: str) -> None:
    async with worker_resources():
        await run_worker(job_name)


def main() -> None:
    """CLI entrypoint."""
    setup_logging(settings.LOG_LEVEL)
    job_name = _resolve_job_name()
    try:
        asyncio.run(_run_with_resources(job_name))
    except KeyboardInterrupt:
        logger.info("Worker interrupted", job=job_name)


if __name__ == "__main__":
    main()
