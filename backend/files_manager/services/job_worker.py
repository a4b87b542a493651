"""Background job worker.

Polls the jobs table for 'queued' jobs and processes them.
Runs as an asyncio task within the FastAPI process.

Delivery is at-least-once: jobs left in 'running' by a crashed process are
put back in the queue on startup, so handlers must be idempotent.
"""
import asyncio
import logging
import traceback
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from files_manager.config import settings
from files_manager.database import async_session
from files_manager.models.job import Job
from files_manager.records import Image, parse_record_id
from files_manager.services.file_storage import file_storage
from files_manager.services.job_queue import THUMBNAIL_JOB_TYPE
from files_manager.services.record_store import SqlRecordStore
from files_manager.services.thumbnails import generate_thumbnails

logger = logging.getLogger(__name__)


class JobError(Exception):
    """Raised by a handler for a job that cannot be processed as submitted."""
    pass


async def recover_stale_jobs(
    stale_minutes: int = 15,
    session_factory: async_sessionmaker[AsyncSession] = async_session,
) -> int:
    """Re-queue jobs stuck in 'running' for longer than `stale_minutes`.

    Call on startup to recover from process crashes that left jobs stranded.
    """
    cutoff = datetime.now(timezone.utc) - timedelta(minutes=stale_minutes)
    async with session_factory() as db:
        result = await db.execute(
            select(Job).where(
                and_(
                    Job.status == "running",
                    Job.started_at < cutoff,
                )
            )
        )
        stale_jobs = result.scalars().all()
        for job in stale_jobs:
            logger.warning(f"Re-queued stale job {job.id} (started at {job.started_at})")
            job.status = "queued"
            job.started_at = None
        if stale_jobs:
            await db.commit()
            logger.info(f"Recovered {len(stale_jobs)} stale job(s)")
        return len(stale_jobs)


def safe_error_message(e: Exception, fallback: str = "Job failed") -> str:
    """Extract a meaningful error message from an exception.

    Some exceptions produce an empty str(e). This helper falls back to the
    exception class name.
    """
    msg = str(e).strip()
    if not msg:
        msg = f"{type(e).__name__}: {fallback}"
    return msg


# Job handler registry - add new job types here
JOB_HANDLERS = {}


def register_job_handler(job_type: str):
    """Decorator to register a job handler function."""
    def decorator(func):
        JOB_HANDLERS[job_type] = func
        return func
    return decorator


async def process_job(job_id, job_type: str, params: dict, session_factory) -> dict:
    """Dispatch job to the appropriate handler."""
    handler = JOB_HANDLERS.get(job_type)
    if not handler:
        raise ValueError(f"Unknown job type: {job_type}")
    return await handler(job_id, params, session_factory)


async def run_next_job(
    session_factory: async_sessionmaker[AsyncSession] = async_session,
) -> uuid.UUID | None:
    """Claim and run the oldest queued job. Returns its id, or None if idle."""
    async with session_factory() as db:
        result = await db.execute(
            select(Job)
            .where(Job.status == "queued")
            .order_by(Job.created_at)
            .limit(1)
        )
        job = result.scalar_one_or_none()
        if not job:
            return None

        logger.info(f"Processing job {job.id} (type={job.job_type})")
        job.status = "running"
        job.started_at = datetime.now(timezone.utc)
        job.attempts = (job.attempts or 0) + 1
        await db.commit()

        try:
            result_data = await process_job(job.id, job.job_type, job.params, session_factory)
            job.status = "completed"
            job.result = result_data or {}
            job.error_message = None
            job.completed_at = datetime.now(timezone.utc)
            await db.commit()
            logger.info(f"Job {job.id} completed")
        except Exception as e:
            logger.error(f"Job {job.id} failed: {e}")
            logger.debug(traceback.format_exc())
            job.status = "failed"
            job.error_message = safe_error_message(e)[:2000]
            job.completed_at = datetime.now(timezone.utc)
            await db.commit()
        return job.id


async def worker_loop(poll_interval: float | None = None):
    """Main worker loop. Drains queued jobs, then sleeps between polls."""
    interval = poll_interval if poll_interval is not None else settings.WORKER_POLL_INTERVAL
    logger.info("Job worker started")
    while True:
        try:
            while await run_next_job() is not None:
                pass
        except Exception as e:
            logger.error(f"Worker loop error: {e}")

        await asyncio.sleep(interval)


# ── Job Handlers ─────────────────────────────────────────────────

@register_job_handler(THUMBNAIL_JOB_TYPE)
async def handle_generate_thumbnails(job_id, params: dict, session_factory) -> dict:
    """Render the configured thumbnail widths for an uploaded image."""
    file_id = params.get("fileId")
    user_id = params.get("userId")
    if not file_id:
        raise JobError("Missing fileId")
    if not user_id:
        raise JobError("Missing userId")

    record_uuid = parse_record_id(file_id)
    async with session_factory() as db:
        record = (
            await SqlRecordStore(db).find_by_id_and_owner(record_uuid, user_id)
            if record_uuid else None
        )
    if record is None:
        raise JobError("File not found")
    if not isinstance(record, Image):
        raise JobError(f"File {file_id} is not an image")

    paths = await generate_thumbnails(file_storage, record.local_path, settings.THUMBNAIL_WIDTHS)
    return {"thumbnails": paths}
