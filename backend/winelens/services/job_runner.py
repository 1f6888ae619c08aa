"""
Job runner: one asyncio background task per submitted job.

- submit() spawns the job's coroutine and returns immediately
- at most one task per job id (JobAlreadyRunningError otherwise)
- task references are held until the task finishes
- shutdown() waits for running jobs, then cancels stragglers
"""

import asyncio
import logging
from typing import Coroutine, Optional

logger = logging.getLogger(__name__)


class JobAlreadyRunningError(RuntimeError):
    """A task for this job id is already running."""


class JobRunner:
    """Tracks background job tasks on the running event loop."""

    def __init__(self):
        self._tasks: dict[str, asyncio.Task] = {}

    @property
    def active_job_ids(self) -> list[str]:
        return [job_id for job_id, task in self._tasks.items() if not task.done()]

    def is_running(self, job_id: str) -> bool:
        task = self._tasks.get(job_id)
        return task is not None and not task.done()

    def submit(self, job_id: str, coro: Coroutine) -> asyncio.Task:
        """
        Schedule coro as the owner of job_id.

        Raises:
            JobAlreadyRunningError: job_id already has a live task
                                    (coro is closed without running)
        """
        if self.is_running(job_id):
            coro.close()
            raise JobAlreadyRunningError(f"Job {job_id} is already running")

        task = asyncio.create_task(coro, name=f"job-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda t: self._on_done(job_id, t))
        logger.debug(f"[{job_id}] Background task started ({len(self._tasks)} active)")
        return task

    def _on_done(self, job_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(job_id) is task:
            del self._tasks[job_id]
        if task.cancelled():
            logger.warning(f"[{job_id}] Background task cancelled")
        elif task.exception() is not None:
            logger.error(
                f"[{job_id}] Background task crashed: {task.exception()}",
                exc_info=task.exception(),
            )

    async def wait(self, job_id: str) -> None:
        """Wait for job_id's task if one is running."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def shutdown(self, grace_seconds: float = 10.0) -> None:
        """Wait up to grace_seconds for running jobs, then cancel the rest."""
        tasks = [t for t in self._tasks.values() if not t.done()]
        if not tasks:
            return

        logger.info(f"Waiting up to {grace_seconds:g}s for {len(tasks)} running job(s)")
        _, pending = await asyncio.wait(tasks, timeout=grace_seconds)

        if pending:
            logger.warning(f"Cancelling {len(pending)} job(s) still running at shutdown")
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)


# Singleton runner instance
_job_runner: Optional[JobRunner] = None


def get_job_runner() -> JobRunner:
    """Get or create job runner singleton."""
    global _job_runner
    if _job_runner is None:
        _job_runner = JobRunner()
    return _job_runner
