from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base_class import Base

JOB_PENDING = "Pending"
JOB_UPLOADING = "Uploading"
JOB_DONE = "Done"
JOB_FAILED = "Failed"

JOB_STATUSES = (JOB_PENDING, JOB_UPLOADING, JOB_DONE, JOB_FAILED)


class Job(Base):
    __tablename__ = "upload_jobs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # source (Google Drive file, not owned here)
    drive_file_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    # youtube metadata
    title: Mapped[str | None] = mapped_column(String(512), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # JSON list[str]
    hashtags_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # JSON list[str]
    thumbnail: Mapped[str | None] = mapped_column(Text, nullable=True)  # data:image/...;base64,...
    first_comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    # schedule
    scheduled_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # status
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=JOB_PENDING)  # Pending|Uploading|Done|Failed
    youtube_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())

    __table_args__ = (
        Index("idx_upload_jobs_status_time", "status", "scheduled_time"),
    )
