"""Shared test fixtures and fakes for backend tests."""
import asyncio
import dataclasses
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from files_manager.database import get_db
from files_manager.dependencies import get_processing_queue, get_storage_root
from files_manager.main import app
from files_manager.models import AuthToken, Base, User
from files_manager.records import Principal, build_record
from files_manager.services.file_manager import FileManager
from files_manager.services.file_storage import FileStorageService
from files_manager.services.record_store import ANY_PARENT


# ── Fakes ────────────────────────────────────────────────────────


class FakeResolver:
    """Resolves tokens from a dict; anything else is unauthenticated."""

    def __init__(self, principals: dict[str, Principal]):
        self.principals = principals

    async def resolve(self, credential):
        return self.principals.get(credential)


class InMemoryRecordStore:
    """RecordStore keeping records in insertion order."""

    def __init__(self):
        self.records = {}

    async def insert(self, draft):
        record_id = uuid.uuid4()
        self.records[record_id] = build_record(record_id, draft)
        return record_id

    async def find_by_id(self, record_id):
        return self.records.get(record_id)

    async def find_by_id_and_owner(self, record_id, owner_id):
        record = self.records.get(record_id)
        return record if record and record.owner_id == owner_id else None

    async def scan(self, owner_id, parent_id=ANY_PARENT, skip=0, limit=20):
        rows = [
            r for r in self.records.values()
            if r.owner_id == owner_id and (parent_id is ANY_PARENT or r.parent_id == parent_id)
        ]
        return rows[skip:skip + limit]

    async def update_field(self, record_id, field, value):
        self.records[record_id] = dataclasses.replace(self.records[record_id], **{field: value})


class RecordingQueue:
    """ProcessingQueue that remembers every submitted job."""

    def __init__(self):
        self.jobs = []

    async def enqueue(self, job):
        self.jobs.append(job)


class FailingQueue:
    async def enqueue(self, job):
        raise ConnectionError("queue unavailable")


class SlowQueue:
    """ProcessingQueue that never answers in time."""

    def __init__(self, delay: float = 5.0):
        self.delay = delay

    async def enqueue(self, job):
        await asyncio.sleep(self.delay)


class FailingBlobStore(FileStorageService):
    async def write(self, path, data):
        raise OSError("disk full")


class PartialWriteBlobStore(FileStorageService):
    """Writes half of the bytes, then fails."""

    async def write(self, path, data):
        await super().write(path, data[: len(data) // 2])
        raise OSError("disk full")


ALICE = Principal(id="user-alice", email="alice@example.com")
BOB = Principal(id="user-bob", email="bob@example.com")


# ── Core fixtures ────────────────────────────────────────────────


@pytest.fixture
def storage_root(tmp_path):
    return str(tmp_path / "files")


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def queue():
    return RecordingQueue()


@pytest.fixture
def resolver():
    return FakeResolver({"alice-token": ALICE, "bob-token": BOB})


@pytest.fixture
def manager(resolver, store, queue, storage_root):
    return FileManager(
        resolver=resolver,
        store=store,
        blobs=FileStorageService(),
        queue=queue,
        storage_root=storage_root,
    )


# ── Database / API fixtures ──────────────────────────────────────


@pytest.fixture
def db_path(tmp_path):
    """SQLite file with the schema created through a plain sync engine."""
    path = tmp_path / "files_manager.db"
    engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(engine)
    engine.dispose()
    return path


@pytest.fixture
def session_factory(db_path):
    """Async sessions on the test database.

    NullPool keeps connections from leaking between the event loops that
    TestClient and pytest-asyncio run on.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def make_user(db_path):
    """Create a user with a fresh token. Returns (user_id, token)."""
    engine = create_engine(f"sqlite:///{db_path}")

    def _make(email: str):
        with Session(engine) as db:
            user = User(id=uuid.uuid4(), email=email)
            token = AuthToken(token=str(uuid.uuid4()), user_id=user.id)
            db.add_all([user, token])
            db.commit()
            return str(user.id), token.token

    yield _make
    engine.dispose()


@pytest.fixture
def api_client(session_factory, queue, storage_root):
    """TestClient wired to the SQLite database, a recording queue and a temp
    storage root."""
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_processing_queue] = lambda: queue
    app.dependency_overrides[get_storage_root] = lambda: storage_root
    yield TestClient(app)
    app.dependency_overrides.clear()
