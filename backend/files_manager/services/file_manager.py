"""File manager core: upload, show, list, publish and content delivery.

The manager holds no state between requests. Its collaborators are injected:

- ``resolver``   maps the X-Token credential to a Principal (or None)
- ``store``      record metadata (files table)
- ``blobs``      file bytes on local disk
- ``queue``      thumbnail job hand-off for image uploads

Private records owned by someone else are always reported as NotFound, never
as a permission error.
"""
import asyncio
import base64
import binascii
import logging
import mimetypes
import os
import uuid
from dataclasses import dataclass, replace
from typing import Optional, Sequence

from files_manager.exceptions import NotFound, Unauthorized, UnsupportedOperation, ValidationError
from files_manager.records import (
    File,
    Folder,
    Image,
    Principal,
    ProcessingJob,
    Record,
    RecordDraft,
    RecordKind,
    build_record,
    is_root,
    parse_record_id,
)
from files_manager.services.file_storage import FileStorageService
from files_manager.services.job_queue import ProcessingQueue
from files_manager.services.principal import PrincipalResolver
from files_manager.services.record_store import ANY_PARENT, RecordStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
DEFAULT_MEDIA_TYPE = "application/octet-stream"
DEFAULT_ENQUEUE_TIMEOUT = 2.0


@dataclass(frozen=True)
class Content:
    """Location and media type of bytes ready to be streamed."""
    path: str
    media_type: str


class FileManager:
    def __init__(
        self,
        resolver: PrincipalResolver,
        store: RecordStore,
        blobs: FileStorageService,
        queue: ProcessingQueue,
        storage_root: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        enqueue_timeout: float = DEFAULT_ENQUEUE_TIMEOUT,
    ):
        self.resolver = resolver
        self.store = store
        self.blobs = blobs
        self.queue = queue
        self.storage_root = storage_root
        self.page_size = page_size
        self.enqueue_timeout = enqueue_timeout

    async def _require_principal(self, credential: Optional[str]) -> Principal:
        principal = await self.resolver.resolve(credential)
        if principal is None:
            raise Unauthorized()
        return principal

    # ── Create ───────────────────────────────────────────────────

    async def upload(
        self,
        credential: Optional[str],
        name: Optional[str] = None,
        kind: Optional[str] = None,
        parent_id=None,
        is_public: Optional[bool] = False,
        data: Optional[str] = None,
    ) -> Record:
        """Create a folder, or store bytes and create a file/image record.

        All validation happens before anything is written. For files the
        bytes are written before the metadata row is inserted, so a record
        never points at content that failed to persist.
        """
        principal = await self._require_principal(credential)

        if not name:
            raise ValidationError("Missing name")
        try:
            record_kind = RecordKind(kind)
        except ValueError:
            raise ValidationError("Missing type")

        content = None
        if record_kind != RecordKind.FOLDER:
            if not data:
                raise ValidationError("Missing data")
            content = _decode_content(data)

        parent_uuid = await self._validate_parent(parent_id)

        draft = RecordDraft(
            kind=record_kind,
            name=name,
            owner_id=principal.id,
            parent_id=parent_uuid,
            is_public=bool(is_public),
        )

        if record_kind == RecordKind.FOLDER:
            record_id = await self.store.insert(draft)
            logger.info(f"Folder created: {name} ({record_id}) by {principal.id}")
            return build_record(record_id, draft)

        await self.blobs.ensure_dir(self.storage_root)
        local_path = os.path.join(self.storage_root, str(uuid.uuid4()))
        try:
            await self.blobs.write(local_path, content)
        except Exception:
            await self._discard_partial_write(local_path)
            raise

        draft = replace(draft, local_path=local_path)
        record_id = await self.store.insert(draft)
        record = build_record(record_id, draft)
        logger.info(
            f"{record_kind.value.capitalize()} uploaded: {name} ({record_id}, "
            f"{len(content)} bytes) by {principal.id}"
        )

        if isinstance(record, Image):
            await self._enqueue_thumbnails(record)
        return record

    async def _discard_partial_write(self, local_path: str) -> None:
        try:
            if await self.blobs.exists(local_path):
                await self.blobs.delete(local_path)
        except OSError:
            logger.exception(f"Failed to remove partial upload {local_path}")

    async def _validate_parent(self, parent_id) -> Optional[uuid.UUID]:
        if is_root(parent_id):
            return None
        parent_uuid = parse_record_id(str(parent_id))
        parent = await self.store.find_by_id(parent_uuid) if parent_uuid else None
        if parent is None:
            raise ValidationError("Parent not found")
        if not isinstance(parent, Folder):
            raise ValidationError("Parent is not a folder")
        return parent_uuid

    async def _enqueue_thumbnails(self, record: Image) -> None:
        # Thumbnails are best-effort; the upload already succeeded.
        job = ProcessingJob(owner_id=record.owner_id, record_id=record.id)
        try:
            await asyncio.wait_for(self.queue.enqueue(job), timeout=self.enqueue_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Thumbnail job for {record.id} not enqueued within {self.enqueue_timeout}s"
            )
        except Exception:
            logger.exception(f"Failed to enqueue thumbnail job for {record.id}")

    # ── Read ─────────────────────────────────────────────────────

    async def show(self, credential: Optional[str], record_id) -> Record:
        principal = await self._require_principal(credential)
        return await self._find_owned(record_id, principal)

    async def index(
        self, credential: Optional[str], parent_id=None, page: int = 1
    ) -> Sequence[Record]:
        """List the caller's own records, ``page_size`` at a time.

        ``parent_id`` of 0 lists top-level records; None lists everything.
        Public records of other users are not included.
        """
        principal = await self._require_principal(credential)
        page = max(page or 1, 1)
        skip = (page - 1) * self.page_size

        if parent_id is None:
            parent_filter = ANY_PARENT
        elif is_root(parent_id):
            parent_filter = None
        else:
            parent_filter = parse_record_id(str(parent_id))
            if parent_filter is None:
                return []

        return await self.store.scan(
            principal.id, parent_id=parent_filter, skip=skip, limit=self.page_size
        )

    async def _find_owned(self, record_id, principal: Principal) -> Record:
        record_uuid = parse_record_id(record_id)
        if record_uuid is None:
            raise NotFound()
        record = await self.store.find_by_id_and_owner(record_uuid, principal.id)
        if record is None:
            raise NotFound()
        return record

    # ── Visibility ───────────────────────────────────────────────

    async def publish(self, credential: Optional[str], record_id) -> Record:
        return await self.set_visibility(credential, record_id, True)

    async def unpublish(self, credential: Optional[str], record_id) -> Record:
        return await self.set_visibility(credential, record_id, False)

    async def set_visibility(
        self, credential: Optional[str], record_id, is_public: bool
    ) -> Record:
        principal = await self._require_principal(credential)
        record = await self._find_owned(record_id, principal)
        await self.store.update_field(record.id, "is_public", is_public)
        updated = await self.store.find_by_id(record.id)
        if updated is None:
            raise NotFound()
        logger.info(f"Record {record.id} is_public={is_public}")
        return updated

    # ── Content ──────────────────────────────────────────────────

    async def get_content(
        self, credential: Optional[str], record_id, size: Optional[str] = None
    ) -> Content:
        """Locate the bytes of a file, or of one of an image's thumbnails.

        Anyone may read a public record; private records only by their owner.
        A thumbnail that the worker has not produced yet is NotFound.
        """
        record_uuid = parse_record_id(record_id)
        if record_uuid is None:
            raise NotFound()

        record = await self.store.find_by_id(record_uuid)
        if record is None:
            raise NotFound()

        if not record.is_public:
            principal = await self.resolver.resolve(credential)
            if principal is None or principal.id != record.owner_id:
                raise NotFound()

        if isinstance(record, Folder):
            raise UnsupportedOperation("A folder doesn't have content")

        path = record.local_path
        if size and isinstance(record, Image):
            if os.sep in size or (os.altsep and os.altsep in size):
                raise NotFound()
            path = f"{record.local_path}_{size}"

        if not await self.blobs.exists(path):
            raise NotFound()

        return Content(path=path, media_type=guess_media_type(record))


def _decode_content(data: str) -> bytes:
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Invalid data")


def guess_media_type(record: File) -> str:
    media_type, _ = mimetypes.guess_type(record.name)
    return media_type or DEFAULT_MEDIA_TYPE
