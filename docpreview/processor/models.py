from dataclasses import dataclass, field
from typing import Any

from docpreview.database.models import ProcessingOutput, ProcessingStatus, UploadRecord

PROCESSING_VERSION = "1.0"
FALLBACK_WARNING = "fallback preview generated"


@dataclass
class ProcessingResult:
    """Structured result returned to the caller of ``Processor.process``."""

    file_id: str
    processing_status: ProcessingStatus
    page_count: int | None
    dimensions: dict[str, Any] | None
    preview_urls: dict[str, str] | None
    thumbnail_urls: list[dict[str, Any]] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    file_name: str | None = None
    file_size: int | None = None
    processed_at: str | None = None
    warning: str | None = None
    success: bool = True

    @classmethod
    def from_record(cls, record: UploadRecord) -> "ProcessingResult":
        return cls(
            file_id=record.id,
            processing_status=record.processing_status,
            page_count=record.page_count,
            dimensions=record.dimensions,
            preview_urls=record.preview_urls,
            thumbnail_urls=record.thumbnail_urls,
            metadata=record.processing_metadata,
            file_name=record.file_name,
            file_size=record.file_size,
            processed_at=record.processing_metadata.get("processedAt"),
            warning=FALLBACK_WARNING if record.processing_metadata.get("fallbackUsed") else None,
        )

    @classmethod
    def from_output(
        cls, upload: UploadRecord, output: ProcessingOutput, warning: str | None
    ) -> "ProcessingResult":
        return cls(
            file_id=upload.id,
            processing_status=ProcessingStatus.COMPLETED,
            page_count=output.page_count,
            dimensions=output.dimensions,
            preview_urls=output.preview_urls,
            thumbnail_urls=output.thumbnail_urls,
            metadata=output.metadata,
            file_name=upload.file_name,
            file_size=upload.file_size,
            processed_at=output.metadata.get("processedAt"),
            warning=warning,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": self.success,
            "file": {
                "id": self.file_id,
                "fileName": self.file_name,
                "fileSize": self.file_size,
                "pageCount": self.page_count,
                "dimensions": self.dimensions,
                "previewUrls": self.preview_urls,
                "thumbnailUrls": self.thumbnail_urls,
                "processingStatus": self.processing_status.value,
                "processedAt": self.processed_at,
                "metadata": self.metadata,
            },
        }
        if self.warning:
            result["warning"] = self.warning
        return result
