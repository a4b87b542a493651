"""FileRecord model - file/folder metadata (actual bytes on local disk)."""
import uuid
from sqlalchemy import String, Boolean, Uuid, Index
from sqlalchemy.orm import Mapped, mapped_column
from files_manager.models.base import Base, TimestampMixin, UserMixin


class FileRecord(Base, TimestampMixin, UserMixin):
    __tablename__ = "files"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    # NULL is the root folder
    parent_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    local_path: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    __table_args__ = (
        Index("idx_files_user_parent", "user_id", "parent_id"),
    )
