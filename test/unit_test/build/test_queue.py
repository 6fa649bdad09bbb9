import asyncio
from unittest.mock import patch

import pytest

from sitedeploy.build import queue as queue_module
from sitedeploy.build.events import EventDispatcher
from sitedeploy.build.jobs import BuildContext
from sitedeploy.build.errors import FailedJobNotFoundError
from sitedeploy.build.queue import BuildQueue, SyncQueue, summarize_exception


class _RecordingJob:
    tries = 1
    timeout = None

    def __init__(self, name, log, delay=0.0, error=None):
        self.name = name
        self.log = log
        self.delay = delay
        self.error = error
        self.failures = []

    def __repr__(self):
        return f"_RecordingJob({self.name})"

    async def handle(self, ctx):
        self.log.append(f"start:{self.name}")
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.log.append(f"end:{self.name}")

    async def failed(self, ctx, exc):
        self.failures.append(exc)


@pytest.fixture
def ctx(session_factory, storage, parameters):
    return BuildContext(session_factory, storage, parameters, EventDispatcher(), shell="/bin/sh")


class TestBuildQueue:
    async def test_jobs_run_one_at_a_time_in_order(self, ctx):
        log = []
        queue = BuildQueue(ctx)
        queue.start()
        try:
            await queue.dispatch(_RecordingJob("a", log, delay=0.05))
            await queue.dispatch(_RecordingJob("b", log))
            await queue.join()
        finally:
            await queue.stop()

        assert log == ["start:a", "end:a", "start:b", "end:b"]

    async def test_dispatch_starts_worker(self, ctx):
        queue = BuildQueue(ctx)
        assert not queue.running

        await queue.dispatch(_RecordingJob("a", []))
        assert queue.running

        await queue.join()
        await queue.stop()
        assert not queue.running

    async def test_failing_job_calls_hook_and_worker_survives(self, ctx):
        log = []
        failing = _RecordingJob("bad", log, error=RuntimeError("boom"))
        queue = BuildQueue(ctx)
        try:
            await queue.dispatch(failing)
            await queue.dispatch(_RecordingJob("good", log))
            await queue.join()
        finally:
            await queue.stop()

        assert [str(e) for e in failing.failures] == ["boom"]
        assert log[-1] == "end:good"

    async def test_timeout_aborts_job(self, ctx):
        job = _RecordingJob("slow", [], delay=5)
        job.timeout = 0.05
        queue = BuildQueue(ctx)
        with patch.object(queue_module, "TIMEOUT_GRACE_SECONDS", 0.05):
            try:
                await queue.dispatch(job)
                await queue.join()
            finally:
                await queue.stop()

        assert len(job.failures) == 1
        assert isinstance(job.failures[0], asyncio.TimeoutError)

    async def test_stop_is_idempotent(self, ctx):
        queue = BuildQueue(ctx)
        await queue.stop()
        queue.start()
        queue.start()
        await queue.stop()
        await queue.stop()


class TestSyncQueue:
    async def test_runs_inline(self, ctx):
        log = []
        queue = SyncQueue(ctx)

        await queue.dispatch(_RecordingJob("a", log))

        assert log == ["start:a", "end:a"]

    async def test_hook_failure_is_contained(self, ctx):
        job = _RecordingJob("bad", [], error=ValueError("x"))

        async def broken_hook(ctx, exc):
            raise RuntimeError("hook")

        job.failed = broken_hook

        await SyncQueue(ctx).dispatch(job)


class TestFailedJobs:
    async def test_failure_is_recorded(self, ctx):
        queue = SyncQueue(ctx)

        await queue.dispatch(_RecordingJob("bad", [], error=RuntimeError("boom")))
        await queue.dispatch(_RecordingJob("good", []))

        [record] = queue.failed_jobs
        assert repr(record.job) == "_RecordingJob(bad)"
        assert record.exception == "RuntimeError: boom"
        assert record.failed_at.tzinfo is not None

    async def test_timeout_is_recorded(self, ctx):
        job = _RecordingJob("slow", [], delay=5)
        job.timeout = 0.05
        queue = SyncQueue(ctx)
        with patch.object(queue_module, "TIMEOUT_GRACE_SECONDS", 0.05):
            await queue.dispatch(job)

        assert [r.exception for r in queue.failed_jobs] == ["TimeoutError"]

    async def test_record_is_bounded_and_newest_first(self, ctx):
        with patch.object(queue_module, "FAILED_JOBS_LIMIT", 3):
            queue = SyncQueue(ctx)
        for i in range(5):
            await queue.dispatch(_RecordingJob(str(i), [], error=ValueError(str(i))))

        assert [r.job.name for r in queue.failed_jobs] == ["4", "3", "2"]

    async def test_retry_runs_job_again(self, ctx):
        log = []
        job = _RecordingJob("flaky", log, error=RuntimeError("once"))
        queue = BuildQueue(ctx)
        try:
            await queue.dispatch(job)
            await queue.join()
            [record] = queue.failed_jobs

            job.error = None
            await queue.retry(record.uuid)
            await queue.join()
        finally:
            await queue.stop()

        assert log == ["start:flaky", "start:flaky", "end:flaky"]
        assert queue.failed_jobs == []

    async def test_retry_all(self, ctx):
        log = []
        queue = SyncQueue(ctx)
        jobs = [_RecordingJob(name, log, error=RuntimeError(name)) for name in ("a", "b")]
        for job in jobs:
            await queue.dispatch(job)
            job.error = None
        log.clear()

        assert await queue.retry_all() == 2
        assert log == ["start:a", "end:a", "start:b", "end:b"]
        assert queue.failed_jobs == []

    async def test_unknown_uuid(self, ctx):
        queue = SyncQueue(ctx)

        with pytest.raises(FailedJobNotFoundError) as exc_info:
            await queue.retry("missing")
        assert exc_info.value.status_code == 404
        with pytest.raises(FailedJobNotFoundError):
            queue.forget("missing")

    async def test_forget_and_flush(self, ctx):
        queue = SyncQueue(ctx)
        for name in ("a", "b", "c"):
            await queue.dispatch(_RecordingJob(name, [], error=RuntimeError(name)))

        queue.forget(queue.failed_jobs[0].uuid)
        assert [r.job.name for r in queue.failed_jobs] == ["b", "a"]
        assert queue.flush() == 2
        assert queue.failed_jobs == []

    async def test_snapshot(self, ctx):
        queue = BuildQueue(ctx)
        try:
            await queue.dispatch(_RecordingJob("bad", [], error=RuntimeError("boom")))
            await queue.join()
            snapshot = queue.snapshot()
        finally:
            await queue.stop()

        assert snapshot["running"] is True
        assert snapshot["current"] is None
        assert snapshot["pending"] == 0
        assert snapshot["failed_count"] == 1
        assert snapshot["failed"][0]["name"] == "_RecordingJob"
        assert snapshot["failed"][0]["description"] == "_RecordingJob(bad)"
        assert snapshot["failed"][0]["exception"] == "RuntimeError: boom"

    def test_exception_summary_is_truncated(self):
        summary = summarize_exception(RuntimeError("x" * 300 + "\nsecond line"))

        assert summary == "RuntimeError: " + "x" * 136 + "..."
        assert summarize_exception(RuntimeError("first\nsecond")) == "RuntimeError: first"
