"""Processing queue: hands thumbnail jobs to the background worker.

Jobs are rows in the jobs table picked up by ``job_worker.worker_loop``.
Enqueueing uses its own session so it never shares a transaction with the
request that triggered it.
"""
import logging
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from files_manager.models.job import Job
from files_manager.records import ProcessingJob

logger = logging.getLogger(__name__)

THUMBNAIL_JOB_TYPE = "generate-thumbnails"


class ProcessingQueue(Protocol):
    async def enqueue(self, job: ProcessingJob) -> None: ...


class JobQueue:
    """ProcessingQueue that persists jobs for the in-process worker."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def enqueue(self, job: ProcessingJob) -> None:
        async with self.session_factory() as db:
            row = Job(
                job_type=THUMBNAIL_JOB_TYPE,
                user_id=job.owner_id,
                params={"userId": job.owner_id, "fileId": str(job.record_id)},
            )
            db.add(row)
            await db.commit()
            logger.info(f"Queued {THUMBNAIL_JOB_TYPE} job {row.id} for file {job.record_id}")
