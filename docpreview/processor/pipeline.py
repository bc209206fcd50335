from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from docpreview.database.models import ProcessingOutput, UploadRecord
from docpreview.pdf.models import DocumentMetadata, PageDimensions
from docpreview.previews.generator import PreviewSet, ThumbnailRef
from docpreview.rendering.capabilities import ToolCapability
from docpreview.rendering.chain import RenderStrategyChain


@dataclass(slots=True)
class PipelineContext:
    file_id: str
    upload: UploadRecord | None = None
    raw_bytes: bytes = b""
    metadata: DocumentMetadata | None = None
    dimensions: PageDimensions | None = None
    capability: ToolCapability | None = None
    chain: RenderStrategyChain | None = None
    previews: PreviewSet | None = None
    thumbnails: list[ThumbnailRef] = field(default_factory=list)
    output: ProcessingOutput | None = None
    fallback_used: bool = False
    fallback_reason: str = ""
    warning: str | None = None
    error: Exception | None = None


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
