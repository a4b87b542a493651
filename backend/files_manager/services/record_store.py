"""Metadata store for file/folder records, backed by the files table."""
import uuid
from typing import Optional, Protocol, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from files_manager.models.file_record import FileRecord
from files_manager.records import Record, RecordDraft, RecordKind, build_record

# Only visibility is mutable after creation
UPDATABLE_FIELDS = {"is_public"}

# Sentinel for "no parent filter" in scan(); None itself means root.
ANY_PARENT = object()


class RecordStore(Protocol):
    async def insert(self, draft: RecordDraft) -> uuid.UUID: ...

    async def find_by_id(self, record_id: uuid.UUID) -> Optional[Record]: ...

    async def find_by_id_and_owner(
        self, record_id: uuid.UUID, owner_id: str
    ) -> Optional[Record]: ...

    async def scan(
        self, owner_id: str, parent_id=ANY_PARENT, skip: int = 0, limit: int = 20
    ) -> Sequence[Record]: ...

    async def update_field(self, record_id: uuid.UUID, field: str, value) -> None: ...


def to_record(row: FileRecord) -> Record:
    """Convert an ORM row into its record variant."""
    draft = RecordDraft(
        kind=RecordKind(row.kind),
        name=row.name,
        owner_id=row.user_id,
        parent_id=row.parent_id,
        is_public=row.is_public,
        local_path=row.local_path,
    )
    return build_record(row.id, draft)


class SqlRecordStore:
    """RecordStore over an AsyncSession. Each write commits immediately."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def insert(self, draft: RecordDraft) -> uuid.UUID:
        row = FileRecord(
            name=draft.name,
            kind=draft.kind.value,
            user_id=draft.owner_id,
            parent_id=draft.parent_id,
            is_public=draft.is_public,
            local_path=draft.local_path,
        )
        self.db.add(row)
        await self.db.commit()
        await self.db.refresh(row)
        return row.id

    async def find_by_id(self, record_id: uuid.UUID) -> Optional[Record]:
        row = await self.db.get(FileRecord, record_id, populate_existing=True)
        return to_record(row) if row else None

    async def find_by_id_and_owner(
        self, record_id: uuid.UUID, owner_id: str
    ) -> Optional[Record]:
        result = await self.db.execute(
            select(FileRecord)
            .where(FileRecord.id == record_id, FileRecord.user_id == owner_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return to_record(row) if row else None

    async def scan(
        self, owner_id: str, parent_id=ANY_PARENT, skip: int = 0, limit: int = 20
    ) -> Sequence[Record]:
        query = (
            select(FileRecord)
            .where(FileRecord.user_id == owner_id)
            .order_by(FileRecord.created_at, FileRecord.id)
            .offset(skip)
            .limit(limit)
        )
        if parent_id is None:
            query = query.where(FileRecord.parent_id.is_(None))
        elif parent_id is not ANY_PARENT:
            query = query.where(FileRecord.parent_id == parent_id)
        result = await self.db.execute(query)
        return [to_record(row) for row in result.scalars().all()]

    async def update_field(self, record_id: uuid.UUID, field: str, value) -> None:
        if field not in UPDATABLE_FIELDS:
            raise ValueError(f"Field '{field}' is not updatable")
        await self.db.execute(
            update(FileRecord).where(FileRecord.id == record_id).values({field: value})
        )
        await self.db.commit()

