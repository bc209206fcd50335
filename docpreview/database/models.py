from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


CLAIMABLE_STATUSES = (ProcessingStatus.PENDING, ProcessingStatus.FAILED)


@dataclass
class UploadRecord:
    """Represents a row from the file_uploads table."""

    id: str
    file_name: str
    file_size: int
    storage_path: str
    processing_status: ProcessingStatus
    page_count: int | None = None
    dimensions: dict[str, Any] | None = None
    preview_urls: dict[str, str] | None = None
    thumbnail_urls: list[dict[str, Any]] = field(default_factory=list)
    processing_metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "UploadRecord":
        return cls(
            id=str(row["id"]),
            file_name=row["file_name"],
            file_size=row["file_size"],
            storage_path=row["storage_path"],
            processing_status=ProcessingStatus(row["processing_status"]),
            page_count=row.get("page_count"),
            dimensions=row.get("dimensions"),
            preview_urls=row.get("preview_urls"),
            thumbnail_urls=row.get("thumbnail_urls") or [],
            processing_metadata=row.get("processing_metadata") or {},
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass
class ProcessingOutput:
    """Derived fields written together when a record completes."""

    page_count: int
    dimensions: dict[str, Any]
    preview_urls: dict[str, str]
    thumbnail_urls: list[dict[str, Any]]
    metadata: dict[str, Any]
