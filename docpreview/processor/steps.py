from collections.abc import Callable
from datetime import datetime, timezone

from docpreview.database.models import ProcessingOutput, ProcessingStatus
from docpreview.database.repositories.upload_repository import UploadRepository
from docpreview.logging.logger import Log
from docpreview.pdf.base import BaseDocumentIntrospector
from docpreview.previews.generator import PreviewGenerator
from docpreview.processor.exceptions import ProcessorError
from docpreview.processor.models import FALLBACK_WARNING, PROCESSING_VERSION
from docpreview.processor.pipeline import PipelineContext, PipelineStep
from docpreview.rendering.capabilities import CapabilityProber, ToolCapability
from docpreview.rendering.chain import RenderStrategyChain
from docpreview.rendering.engine import RenderingEngine
from docpreview.storage.base import BaseObjectStore

ChainFactory = Callable[[ToolCapability], RenderStrategyChain]


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DownloadSourceStep(PipelineStep):
    def __init__(self, store: BaseObjectStore) -> None:
        self._store = store

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.upload is None:
            raise ValueError("PipelineContext.upload must be set before download")
        context.raw_bytes = self._store.download(context.upload.storage_path)
        Log.info("Downloaded source", file_id=context.file_id, bytes=len(context.raw_bytes))
        return context


class ExtractMetadataStep(PipelineStep):
    def __init__(self, introspector: BaseDocumentIntrospector) -> None:
        self._introspector = introspector

    def run(self, context: PipelineContext) -> PipelineContext:
        context.metadata = self._introspector.extract_metadata(context.raw_bytes)
        Log.info("Extracted metadata", file_id=context.file_id, pages=context.metadata.page_count)
        return context


class MeasureDimensionsStep(PipelineStep):
    def __init__(self, introspector: BaseDocumentIntrospector) -> None:
        self._introspector = introspector

    def run(self, context: PipelineContext) -> PipelineContext:
        context.dimensions = self._introspector.get_first_page_dimensions(context.raw_bytes)
        return context


class ProbeCapabilitiesStep(PipelineStep):
    def __init__(self, prober: CapabilityProber) -> None:
        self._prober = prober

    def run(self, context: PipelineContext) -> PipelineContext:
        context.capability = self._prober.probe()
        Log.info("External converter probed", **context.capability.summary())
        return context


class CheckRenderingStep(PipelineStep):
    """Verify the rendering library, then assemble the strategy chain."""

    def __init__(self, engine: RenderingEngine, chain_factory: ChainFactory) -> None:
        self._engine = engine
        self._chain_factory = chain_factory

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.capability is None:
            raise ValueError("PipelineContext.capability must be set before rendering check")
        self._engine.check(context.raw_bytes)
        context.chain = self._chain_factory(context.capability)
        Log.debug("Strategy chain ready", strategies=",".join(context.chain.strategy_names))
        return context


class UseFallbackChainStep(PipelineStep):
    def __init__(self, fallback_chain: RenderStrategyChain) -> None:
        self._fallback_chain = fallback_chain

    def run(self, context: PipelineContext) -> PipelineContext:
        context.chain = self._fallback_chain
        context.fallback_used = True
        context.warning = FALLBACK_WARNING
        return context


class GeneratePreviewsStep(PipelineStep):
    def __init__(self, generator: PreviewGenerator) -> None:
        self._generator = generator

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.chain is None:
            raise ValueError("PipelineContext.chain must be set before preview generation")
        context.previews = self._generator.generate_previews(
            context.raw_bytes, context.file_id, context.chain
        )
        return context


class GenerateThumbnailsStep(PipelineStep):
    def __init__(self, generator: PreviewGenerator) -> None:
        self._generator = generator

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.chain is None or context.metadata is None:
            raise ValueError("PipelineContext.chain and metadata must be set before thumbnails")
        context.thumbnails = self._generator.generate_thumbnails(
            context.raw_bytes, context.file_id, context.metadata.page_count, context.chain
        )
        return context


class PersistResultsStep(PipelineStep):
    def __init__(self, upload_repo: UploadRepository) -> None:
        self._upload_repo = upload_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.metadata is None or context.dimensions is None or context.previews is None:
            raise ValueError("PipelineContext is missing metadata, dimensions or previews")
        if not context.previews.paths or not context.thumbnails:
            raise ValueError("Refusing to complete without previews and thumbnails")
        metadata = {
            **context.metadata.to_dict(),
            "processedAt": utc_now(),
            "processingVersion": PROCESSING_VERSION,
            "strategyUsed": context.previews.strategy,
            "thumbnailStrategies": sorted({ref.strategy for ref in context.thumbnails}),
            "fallbackUsed": context.fallback_used,
            "externalTool": context.capability.summary() if context.capability else None,
            "strategyOutcomes": [outcome.to_dict() for outcome in context.previews.outcomes],
        }
        if context.fallback_used:
            metadata["fallbackReason"] = context.fallback_reason
        context.output = ProcessingOutput(
            page_count=context.metadata.page_count,
            dimensions=context.dimensions.to_dict(),
            preview_urls=context.previews.paths,
            thumbnail_urls=[ref.to_dict() for ref in context.thumbnails],
            metadata=metadata,
        )
        self._upload_repo.set_results(context.file_id, context.output)
        Log.info("Upload completed", file_id=context.file_id, fallback=context.fallback_used)
        return context


class MarkFailedStep(PipelineStep):
    def __init__(self, upload_repo: UploadRepository) -> None:
        self._upload_repo = upload_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        error = context.error
        payload = {
            "errorCode": error.error_code if isinstance(error, ProcessorError) else "PROCESSING_FAILED",
            "errorClass": type(error).__name__ if error else None,
            "message": str(error) if error else "",
            "failedAt": utc_now(),
        }
        if context.fallback_used:
            payload["fallbackAttempted"] = True
        self._upload_repo.set_status(context.file_id, ProcessingStatus.FAILED, payload)
        Log.error("Upload marked as failed", file_id=context.file_id, error=payload["message"])
        return context
