"""File/folder record request/response schemas."""
from typing import Optional, Union
from pydantic import AliasChoices, Field
from files_manager.schemas.base import CamelModel


class RecordCreate(CamelModel):
    """Upload body. Fields are optional here so the core can report which one
    is missing with its own message instead of a generic 422."""
    name: Optional[str] = None
    kind: Optional[str] = Field(None, validation_alias=AliasChoices("kind", "type"))
    parent_id: Optional[Union[int, str]] = None
    is_public: Optional[bool] = False
    data: Optional[str] = None


class RecordResponse(CamelModel):
    """Public projection of a record. The local path is never part of it."""
    id: str
    name: str
    kind: str
    parent_id: Union[int, str] = 0
    is_public: bool = False
    owner_id: str
