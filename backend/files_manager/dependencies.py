"""FastAPI dependencies that assemble the file manager per request.

Tests swap any of these through ``app.dependency_overrides``.
"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from files_manager.config import settings
from files_manager.database import async_session, get_db
from files_manager.services.file_manager import FileManager
from files_manager.services.file_storage import FileStorageService, file_storage
from files_manager.services.job_queue import JobQueue, ProcessingQueue
from files_manager.services.principal import TokenPrincipalResolver
from files_manager.services.record_store import SqlRecordStore


def get_blob_store() -> FileStorageService:
    return file_storage


def get_processing_queue() -> ProcessingQueue:
    return JobQueue(async_session)


def get_storage_root() -> str:
    return settings.FOLDER_PATH


async def get_file_manager(
    db: AsyncSession = Depends(get_db),
    blobs: FileStorageService = Depends(get_blob_store),
    queue: ProcessingQueue = Depends(get_processing_queue),
    storage_root: str = Depends(get_storage_root),
) -> FileManager:
    return FileManager(
        resolver=TokenPrincipalResolver(db),
        store=SqlRecordStore(db),
        blobs=blobs,
        queue=queue,
        storage_root=storage_root,
        page_size=settings.PAGE_SIZE,
        enqueue_timeout=settings.ENQUEUE_TIMEOUT,
    )
