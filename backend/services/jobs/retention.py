"""Periodic removal of expired video jobs."""

import asyncio

from shared.logging_utils import setup_logging

logger = setup_logging("retention-sweeper")


class RetentionSweeper:
    """Background task that calls ``cleanup_old_jobs`` on a fixed interval."""

    def __init__(self, orchestrator, interval_seconds: float = 3600, max_age_hours: float = 24.0):
        self.orchestrator = orchestrator
        self.interval_seconds = interval_seconds
        self.max_age_hours = max_age_hours
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="retention-sweeper")
        logger.info(
            "Retention sweeper started (every %ss, max age %sh)", self.interval_seconds, self.max_age_hours
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
        logger.info("Retention sweeper stopped")

    async def run_once(self) -> int:
        return await self.orchestrator.cleanup_old_jobs(self.max_age_hours)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.run_once()
            except Exception as exc:
                logger.error("Retention sweep failed: %s", exc)
