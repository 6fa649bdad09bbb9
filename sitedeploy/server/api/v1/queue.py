"""
Build Queue Endpoints.

Inspect the in-process build queue and manage the jobs that failed or timed
out: retry them one by one or all at once, or drop them.
"""

from fastapi import APIRouter

from sitedeploy.server.schemas import QueueActionResult, QueueStatus
from sitedeploy.server.services.deps import BuildQueueDep

router = APIRouter()


@router.get(
    "",
    response_model=QueueStatus,
    summary="Queue Status",
    description="Worker state, the job being run, the pending count and the recent failures (newest first).",
)
async def queue_status(queue: BuildQueueDep):
    return queue.snapshot()


@router.post(
    "/failed/retry",
    response_model=QueueActionResult,
    summary="Retry All Failed Jobs",
)
async def retry_all_failed(queue: BuildQueueDep):
    count = await queue.retry_all()
    return QueueActionResult(message=f"{count} failed jobs pushed back onto the queue")


@router.post(
    "/failed/{job_uuid}/retry",
    response_model=QueueActionResult,
    summary="Retry Failed Job",
    responses={404: {"description": "No failed job with this id"}},
)
async def retry_failed(job_uuid: str, queue: BuildQueueDep):
    record = await queue.retry(job_uuid)
    return QueueActionResult(message=f"Job {record.job!r} pushed back onto the queue")


@router.delete(
    "/failed",
    response_model=QueueActionResult,
    summary="Flush Failed Jobs",
)
async def flush_failed(queue: BuildQueueDep):
    count = queue.flush()
    return QueueActionResult(message=f"{count} failed jobs deleted")


@router.delete(
    "/failed/{job_uuid}",
    response_model=QueueActionResult,
    summary="Delete Failed Job",
    responses={404: {"description": "No failed job with this id"}},
)
async def forget_failed(job_uuid: str, queue: BuildQueueDep):
    queue.forget(job_uuid)
    return QueueActionResult(message=f"Failed job {job_uuid} deleted")
