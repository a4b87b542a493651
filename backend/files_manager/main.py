"""FastAPI application entry point."""
import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from files_manager.config import settings
from files_manager.database import engine, get_db
from files_manager.exceptions import FilesManagerError
from files_manager.models import Base, FileRecord, User
from files_manager.schemas.common import StatsResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup, start background worker."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Put back any jobs a previous crash left in "running"
    from files_manager.services.job_worker import recover_stale_jobs, worker_loop
    await recover_stale_jobs(settings.STALE_JOB_MINUTES)

    # Start background job worker
    worker_task = asyncio.create_task(worker_loop())

    yield

    # Cleanup
    worker_task.cancel()
    await engine.dispose()


app = FastAPI(
    title="Files Manager API",
    version="1.0.0",
    description="Backend API for user file and folder storage.",
    lifespan=lifespan,
)

# CORS
origins = [o.strip() for o in settings.CORS_ORIGINS.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FilesManagerError)
async def files_manager_error_handler(request: Request, exc: FilesManagerError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.get("/api/health")
async def health_check():
    """Verify API and database connectivity."""
    try:
        async for db in get_db():
            await db.execute(text("SELECT 1"))
            return {"status": "ok", "database": "connected"}
    except Exception as e:
        logger.warning(f"Health check failed: {e}")
        return {"status": "error", "database": str(e)}


@app.get("/api/stats", response_model=StatsResponse)
async def stats(db: AsyncSession = Depends(get_db)):
    """Count users and file records."""
    users = await db.execute(select(func.count()).select_from(User))
    files = await db.execute(select(func.count()).select_from(FileRecord))
    return {"users": users.scalar_one(), "files": files.scalar_one()}


# Register routers
from files_manager.routes.files import router as files_router
app.include_router(files_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("files_manager.main:app", host="0.0.0.0", port=settings.API_PORT)
