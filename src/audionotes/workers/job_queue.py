"""
In-process job queue with a single worker.

Jobs run strictly one at a time in arrival order. ``enqueue`` only appends
and schedules a drain; the drain task processes the head job to completion
before removing it and looking at the next one.
"""

import asyncio
import logging
from collections import deque
from pathlib import Path
from typing import Awaitable, Callable, Deque, List, Optional, Union

from ..core.structured_logger import log_event
from ..domain.entities.job import Job, JobOutcome

logger = logging.getLogger(__name__)

JobHandler = Callable[[Job], Awaitable[JobOutcome]]


class JobQueue:
    """FIFO queue drained by at most one worker at a time."""

    def __init__(self, handler: JobHandler):
        self._handler = handler
        self._jobs: Deque[Job] = deque()
        self._busy = False
        self._drain_task: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()
        self.processed_count = 0
        self.failed_count = 0

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def pending_count(self) -> int:
        return len(self._jobs)

    def snapshot(self) -> List[str]:
        """Job ids in queue order, head first."""
        return [job.job_id for job in self._jobs]

    def enqueue(
        self,
        audio_path: Union[str, Path],
        recipient: str,
        include_transcript_pdf: bool = True,
        include_notes_pdf: bool = True,
    ) -> Job:
        """Append a job and make sure a drain is running. Never blocks."""
        job = Job(
            audio_path=Path(audio_path),
            recipient=recipient,
            include_transcript_pdf=include_transcript_pdf,
            include_notes_pdf=include_notes_pdf,
        )
        self._jobs.append(job)
        self._idle.clear()
        log_event(
            logger,
            "job_enqueued",
            job_id=job.job_id,
            recipient=recipient,
            queue_depth=len(self._jobs),
            worker_busy=self._busy,
        )
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())
        return job

    async def _drain(self) -> None:
        if self._busy:
            return
        self._busy = True
        try:
            while self._jobs:
                job = self._jobs[0]
                try:
                    outcome = await self._handler(job)
                    if outcome.succeeded:
                        self.processed_count += 1
                    else:
                        self.failed_count += 1
                except Exception:
                    self.failed_count += 1
                    logger.exception(f"Unhandled error while processing job {job.job_id}")
                finally:
                    self._jobs.popleft()
        finally:
            self._busy = False
            self._idle.set()

    async def wait_idle(self) -> None:
        """Wait until the queue is empty and no job is running."""
        await self._idle.wait()

    async def close(self, timeout: Optional[float] = None) -> None:
        """Let the current backlog finish, or cancel it after ``timeout`` seconds."""
        if self._drain_task is None or self._drain_task.done():
            return
        try:
            await asyncio.wait_for(asyncio.shield(self._drain_task), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Job queue shut down with {len(self._jobs)} job(s) unfinished")
            self._drain_task.cancel()
            try:
                await self._drain_task
            except asyncio.CancelledError:
                pass
