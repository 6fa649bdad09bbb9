"""
Job dispatch for the build pipeline.

``BuildQueue`` runs jobs one at a time on a background task of the event
loop; ``SyncQueue`` runs them inline when dispatched. Both keep a bounded
record of the jobs that failed or timed out, which can be retried or
forgotten.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional, Protocol
from uuid import uuid4

from sitedeploy.core.database.base import utc_now
from sitedeploy.core.logging_config import get_build_logger

from .errors import FailedJobNotFoundError
from .jobs import BuildContext

logger = get_build_logger()

# Extra time granted over a job's own timeout before the queue aborts it
TIMEOUT_GRACE_SECONDS = 30

FAILED_JOBS_LIMIT = 100
EXCEPTION_SUMMARY_LENGTH = 150


class Job(Protocol):
    tries: int
    timeout: Optional[float]

    async def handle(self, ctx: BuildContext) -> None: ...

    async def failed(self, ctx: BuildContext, exc: BaseException) -> None: ...


def summarize_exception(exc: BaseException) -> str:
    """First line of the exception message, cut at ``EXCEPTION_SUMMARY_LENGTH``."""
    message = str(exc).strip()
    first_line = message.splitlines()[0] if message else ""
    text = f"{type(exc).__name__}: {first_line}" if first_line else type(exc).__name__
    if len(text) > EXCEPTION_SUMMARY_LENGTH:
        return text[:EXCEPTION_SUMMARY_LENGTH] + "..."
    return text


@dataclass
class FailedJob:
    job: Any
    exception: str
    failed_at: datetime = field(default_factory=utc_now)
    uuid: str = field(default_factory=lambda: str(uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uuid": self.uuid,
            "name": type(self.job).__name__,
            "description": repr(self.job),
            "exception": self.exception,
            "failed_at": self.failed_at,
        }


class _JobRunner:
    def __init__(self, context: BuildContext) -> None:
        self.context = context
        self.current: Optional[Job] = None
        self._failed_jobs: Deque[FailedJob] = deque(maxlen=FAILED_JOBS_LIMIT)

    async def _run(self, job: Job) -> None:
        timeout = getattr(job, "timeout", None)
        limit = timeout + TIMEOUT_GRACE_SECONDS if timeout else None
        logger.info(f"Running job {job!r}")
        self.current = job
        try:
            await asyncio.wait_for(job.handle(self.context), timeout=limit)
        except asyncio.TimeoutError as e:
            logger.error(f"Job {job!r} exceeded {limit} seconds and was aborted")
            self._record_failure(job, e)
            await self._failed(job, e)
        except Exception as e:
            logger.error(f"Job {job!r} raised: {e}", exc_info=True)
            self._record_failure(job, e)
            await self._failed(job, e)
        finally:
            self.current = None

    def _record_failure(self, job: Job, exc: BaseException) -> None:
        self._failed_jobs.append(FailedJob(job=job, exception=summarize_exception(exc)))

    async def _failed(self, job: Job, exc: BaseException) -> None:
        hook = getattr(job, "failed", None)
        if hook is None:
            return
        try:
            await hook(self.context, exc)
        except Exception as e:
            logger.error(f"Failure hook of {job!r} raised: {e}", exc_info=True)

    async def dispatch(self, job: Job) -> None:
        raise NotImplementedError

    @property
    def failed_jobs(self) -> List[FailedJob]:
        """Recorded failures, newest first."""
        return list(reversed(self._failed_jobs))

    def _pop_failed(self, job_uuid: str) -> FailedJob:
        for record in self._failed_jobs:
            if record.uuid == job_uuid:
                self._failed_jobs.remove(record)
                return record
        raise FailedJobNotFoundError(job_uuid)

    async def retry(self, job_uuid: str) -> FailedJob:
        """Push a failed job back onto the queue.

        Raises:
            FailedJobNotFoundError: when no failure with ``job_uuid`` is recorded
        """
        record = self._pop_failed(job_uuid)
        logger.info(f"Retrying failed job {record.job!r}", extra={"uuid": job_uuid})
        await self.dispatch(record.job)
        return record

    async def retry_all(self) -> int:
        records = list(self._failed_jobs)
        self._failed_jobs.clear()
        for record in records:
            await self.dispatch(record.job)
        logger.info(f"Retried {len(records)} failed jobs")
        return len(records)

    def forget(self, job_uuid: str) -> FailedJob:
        """Drop one recorded failure.

        Raises:
            FailedJobNotFoundError: when no failure with ``job_uuid`` is recorded
        """
        return self._pop_failed(job_uuid)

    def flush(self) -> int:
        count = len(self._failed_jobs)
        self._failed_jobs.clear()
        logger.info(f"Flushed {count} failed jobs")
        return count

    def snapshot(self) -> Dict[str, Any]:
        failed = self.failed_jobs
        return {
            "running": self.running,
            "current": repr(self.current) if self.current is not None else None,
            "pending": self.pending,
            "failed_count": len(failed),
            "failed": [record.to_dict() for record in failed],
        }


class BuildQueue(_JobRunner):
    """Sequential in-process job queue backed by ``asyncio.Queue``."""

    def __init__(self, context: BuildContext) -> None:
        super().__init__(context)
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._work(), name="sitedeploy-build-queue")
        logger.info("Build queue worker started")

    async def stop(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
        logger.info(f"Build queue worker stopped ({self.pending} jobs left pending)")

    async def dispatch(self, job: Job) -> None:
        if not self.running:
            self.start()
        await self._queue.put(job)
        logger.debug(f"Queued job {job!r} (pending={self.pending})")

    async def join(self) -> None:
        """Wait until every dispatched job has finished."""
        await self._queue.join()

    async def _work(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self._run(job)
            finally:
                self._queue.task_done()


class SyncQueue(_JobRunner):
    """Run jobs immediately in the caller's task."""

    running = True
    pending = 0

    async def dispatch(self, job: Job) -> None:
        await self._run(job)

    async def join(self) -> None:
        return None

    def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None
