"""Import all models so SQLAlchemy metadata knows about them."""
from files_manager.models.base import Base
from files_manager.models.user import User, AuthToken
from files_manager.models.file_record import FileRecord
from files_manager.models.job import Job

__all__ = [
    "Base",
    "User", "AuthToken", "FileRecord", "Job",
]
