"""Shared Pydantic schemas."""
from pydantic import BaseModel


class StatsResponse(BaseModel):
    users: int = 0
    files: int = 0
