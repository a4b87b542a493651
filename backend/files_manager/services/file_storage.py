"""Local disk blob store. Records point into it by absolute local path."""
import aiofiles
import aiofiles.os


class FileStorageService:
    """Path-addressed byte storage on the local filesystem."""

    async def exists(self, path: str) -> bool:
        return await aiofiles.os.path.isfile(path)

    async def ensure_dir(self, path: str) -> None:
        """Create ``path`` recursively. Safe to race with concurrent callers."""
        if not await aiofiles.os.path.isdir(path):
            await aiofiles.os.makedirs(path, exist_ok=True)

    async def write(self, path: str, data: bytes) -> None:
        async with aiofiles.open(path, "wb") as f:
            await f.write(data)

    async def read(self, path: str) -> bytes:
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def delete(self, path: str) -> None:
        await aiofiles.os.remove(path)


file_storage = FileStorageService()
