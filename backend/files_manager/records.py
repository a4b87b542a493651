"""In-memory record types used by the file manager core.

A record is one of three closed variants. Only ``File`` and ``Image`` carry a
``local_path``; ``Folder`` has no such attribute, so code that needs bytes must
narrow the type first.

ORM rows (``models.FileRecord``) are converted into these by the record store,
and the API layer serialises them through ``schemas.record.RecordResponse``.
"""
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Union

# Wire value of parentId for top-level records
ROOT_PARENT_ID = 0


class RecordKind(str, Enum):
    FOLDER = "folder"
    FILE = "file"
    IMAGE = "image"


@dataclass(frozen=True)
class Principal:
    """The authenticated identity making a request."""
    id: str
    email: str = ""


@dataclass(frozen=True)
class Folder:
    kind: ClassVar[RecordKind] = RecordKind.FOLDER

    id: uuid.UUID
    name: str
    owner_id: str
    parent_id: Optional[uuid.UUID] = None
    is_public: bool = False


@dataclass(frozen=True)
class File:
    kind: ClassVar[RecordKind] = RecordKind.FILE

    id: uuid.UUID
    name: str
    owner_id: str
    local_path: str
    parent_id: Optional[uuid.UUID] = None
    is_public: bool = False


@dataclass(frozen=True)
class Image(File):
    kind: ClassVar[RecordKind] = RecordKind.IMAGE


Record = Union[Folder, File, Image]


@dataclass(frozen=True)
class RecordDraft:
    """Fields of a record before the store assigns its id."""
    kind: RecordKind
    name: str
    owner_id: str
    parent_id: Optional[uuid.UUID] = None
    is_public: bool = False
    local_path: Optional[str] = None


@dataclass(frozen=True)
class ProcessingJob:
    """Thumbnail job handed to the processing queue after an image upload."""
    owner_id: str
    record_id: uuid.UUID


def build_record(record_id: uuid.UUID, draft: RecordDraft) -> Record:
    """Materialise a draft into its kind-specific variant."""
    if draft.kind == RecordKind.FOLDER:
        return Folder(
            id=record_id,
            name=draft.name,
            owner_id=draft.owner_id,
            parent_id=draft.parent_id,
            is_public=draft.is_public,
        )
    if not draft.local_path:
        raise ValueError(f"{draft.kind.value} record requires a local_path")
    cls = Image if draft.kind == RecordKind.IMAGE else File
    return cls(
        id=record_id,
        name=draft.name,
        owner_id=draft.owner_id,
        local_path=draft.local_path,
        parent_id=draft.parent_id,
        is_public=draft.is_public,
    )


def parse_record_id(value) -> Optional[uuid.UUID]:
    """Parse a caller-supplied id. Returns None for anything malformed."""
    if isinstance(value, uuid.UUID):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


def is_root(parent_id) -> bool:
    """True for the root sentinel in any of its wire forms (None, 0, "0", "")."""
    return parent_id is None or parent_id in (ROOT_PARENT_ID, str(ROOT_PARENT_ID), "")
