"""Files API routes."""
from typing import Optional
from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import FileResponse

from files_manager.dependencies import get_file_manager
from files_manager.records import ROOT_PARENT_ID, Record
from files_manager.schemas.record import RecordCreate, RecordResponse
from files_manager.services.file_manager import FileManager

router = APIRouter(prefix="/api/files", tags=["files"])


@router.post("", response_model=RecordResponse, status_code=201)
async def upload_file(
    body: RecordCreate,
    x_token: Optional[str] = Header(None),
    manager: FileManager = Depends(get_file_manager),
):
    """Create a folder, or upload a base64-encoded file or image."""
    record = await manager.upload(
        x_token,
        name=body.name,
        kind=body.kind,
        parent_id=body.parent_id,
        is_public=body.is_public,
        data=body.data,
    )
    return _to_response(record)


@router.get("", response_model=list[RecordResponse])
async def list_files(
    parent_id: Optional[str] = Query(None, alias="parentId"),
    page: int = Query(1),
    x_token: Optional[str] = Header(None),
    manager: FileManager = Depends(get_file_manager),
):
    """List the caller's records, 20 per page, optionally under one folder."""
    records = await manager.index(x_token, parent_id=parent_id, page=page)
    return [_to_response(r) for r in records]


@router.get("/{file_id}", response_model=RecordResponse)
async def get_file_metadata(
    file_id: str,
    x_token: Optional[str] = Header(None),
    manager: FileManager = Depends(get_file_manager),
):
    """Get one of the caller's records by ID."""
    return _to_response(await manager.show(x_token, file_id))


@router.put("/{file_id}/publish", response_model=RecordResponse)
async def publish_file(
    file_id: str,
    x_token: Optional[str] = Header(None),
    manager: FileManager = Depends(get_file_manager),
):
    return _to_response(await manager.publish(x_token, file_id))


@router.put("/{file_id}/unpublish", response_model=RecordResponse)
async def unpublish_file(
    file_id: str,
    x_token: Optional[str] = Header(None),
    manager: FileManager = Depends(get_file_manager),
):
    return _to_response(await manager.unpublish(x_token, file_id))


@router.get("/{file_id}/data")
async def download_file(
    file_id: str,
    size: Optional[str] = Query(None),
    x_token: Optional[str] = Header(None),
    manager: FileManager = Depends(get_file_manager),
):
    """Stream a file's bytes, or an image thumbnail when `size` is given."""
    content = await manager.get_content(x_token, file_id, size=size)
    return FileResponse(path=content.path, media_type=content.media_type)


def _to_response(record: Record) -> dict:
    """Convert a record to its public projection."""
    return {
        "id": str(record.id),
        "name": record.name,
        "kind": record.kind.value,
        "parent_id": str(record.parent_id) if record.parent_id else ROOT_PARENT_ID,
        "is_public": record.is_public,
        "owner_id": record.owner_id,
    }
