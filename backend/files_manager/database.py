"""Async SQLAlchemy engine and session factory.

Request handlers get a session through ``get_db``; ``dependencies.py`` builds
the record store and principal resolver on top of it:

    async def get_file_manager(db: AsyncSession = Depends(get_db), ...):
        return FileManager(resolver=TokenPrincipalResolver(db), store=SqlRecordStore(db), ...)

Background work (job queue, worker) opens its own sessions from
``async_session``.
"""
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from files_manager.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_size=10,
    max_overflow=20,
    pool_pre_ping=True,
)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """Yield one session per request; closed when the response is sent."""
    async with async_session() as session:
        yield session
