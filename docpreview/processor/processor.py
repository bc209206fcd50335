import functools
from datetime import datetime, timezone
from pathlib import Path

from docpreview.config.settings import Settings
from docpreview.database.models import ProcessingStatus
from docpreview.database.repositories.upload_repository import UploadRepository
from docpreview.logging.logger import Log
from docpreview.pdf.factory import IntrospectorFactory
from docpreview.previews.generator import PreviewGenerator
from docpreview.processor.exceptions import AlreadyProcessingError, UploadNotFoundError
from docpreview.processor.models import ProcessingResult
from docpreview.processor.pipeline import PipelineContext, PipelineStep
from docpreview.processor.steps import (
    CheckRenderingStep,
    DownloadSourceStep,
    ExtractMetadataStep,
    GeneratePreviewsStep,
    GenerateThumbnailsStep,
    MarkFailedStep,
    MeasureDimensionsStep,
    PersistResultsStep,
    ProbeCapabilitiesStep,
    UseFallbackChainStep,
)
from docpreview.rendering.capabilities import CapabilityProber
from docpreview.rendering.engine import RenderingEngine
from docpreview.rendering.exceptions import RenderingUnavailableError
from docpreview.rendering.factory import build_fallback_chain, build_strategy_chain
from docpreview.storage.base import BaseObjectStore
from docpreview.storage.local_store import LocalObjectStore
from docpreview.surface.factory import SurfaceFactory


class Processor:
    """Drives one upload through pending -> processing -> completed | failed.

    The claim is a compare-and-set on the persisted status, so concurrent
    invocations for the same upload cannot both run the pipeline. When the
    rendering library turns out to be unusable, ``fallback_steps`` get one
    chance to produce placeholder previews before the upload is marked failed.
    """

    def __init__(
        self,
        upload_repo: UploadRepository,
        steps: list[PipelineStep],
        failed_step: PipelineStep,
        fallback_steps: list[PipelineStep] | None = None,
    ) -> None:
        self._upload_repo = upload_repo
        self._steps = steps
        self._failed_step = failed_step
        self._fallback_steps = fallback_steps or []

    def process(self, file_id: str) -> ProcessingResult:
        """Process an upload, or return the stored result if it already completed.

        Raises:
            UploadNotFoundError: if the upload does not exist.
            AlreadyProcessingError: if another invocation holds the claim.
            ProcessorError: any pipeline failure, after the upload is marked failed.
        """
        upload = self._upload_repo.get_upload(file_id)
        if upload is None:
            raise UploadNotFoundError(f"Upload {file_id} not found")
        if upload.processing_status == ProcessingStatus.COMPLETED:
            Log.info("Upload already completed, returning stored result", file_id=file_id)
            return ProcessingResult.from_record(upload)
        if upload.processing_status == ProcessingStatus.PROCESSING:
            raise AlreadyProcessingError(f"Upload {file_id} is already being processed")
        if not self._upload_repo.claim_for_processing(file_id):
            raise AlreadyProcessingError(f"Upload {file_id} was claimed by another invocation")

        Log.info("Processing upload", file_id=file_id, file_name=upload.file_name)
        context = PipelineContext(file_id=file_id, upload=upload)
        try:
            context = self._run(self._steps, context)
        except RenderingUnavailableError as exc:
            context = self._fallback_or_fail(context, exc)
        except Exception as exc:
            self._fail(context, exc)
            raise

        if context.output is None:
            raise RuntimeError("Pipeline finished without producing output")
        return ProcessingResult.from_output(upload, context.output, context.warning)

    def reset(self, file_id: str, reason: str = "manual reset") -> ProcessingStatus:
        """Return an upload to 'pending', e.g. after an abandoned run left it 'processing'.

        Returns the status the upload had before the reset.
        """
        upload = self._upload_repo.get_upload(file_id)
        if upload is None:
            raise UploadNotFoundError(f"Upload {file_id} not found")
        previous = upload.processing_status
        metadata = {
            **upload.processing_metadata,
            "resetAt": datetime.now(timezone.utc).isoformat(),
            "resetReason": reason,
            "previousStatus": previous.value,
        }
        self._upload_repo.set_status(file_id, ProcessingStatus.PENDING, metadata)
        Log.warning("Upload reset to pending", file_id=file_id, previous=previous.value, reason=reason)
        return previous

    @staticmethod
    def _run(steps: list[PipelineStep], context: PipelineContext) -> PipelineContext:
        for step in steps:
            context = step.run(context)
        return context

    def _fallback_or_fail(self, context: PipelineContext, exc: RenderingUnavailableError) -> PipelineContext:
        if not self._fallback_steps:
            self._fail(context, exc)
            raise exc
        Log.warning("Rendering unavailable, generating placeholder previews", file_id=context.file_id, error=exc)
        context.fallback_reason = str(exc)
        try:
            return self._run(self._fallback_steps, context)
        except Exception as fallback_exc:
            Log.error("Placeholder fallback failed", file_id=context.file_id, error=fallback_exc)
            self._fail(context, exc)
            raise exc from fallback_exc

    def _fail(self, context: PipelineContext, exc: Exception) -> None:
        context.error = exc
        try:
            self._failed_step.run(context)
        except Exception as mark_exc:
            Log.error("Could not mark upload as failed", file_id=context.file_id, error=mark_exc)


def build_processor(
    settings: Settings,
    store: BaseObjectStore | None = None,
    upload_repo: UploadRepository | None = None,
) -> Processor:
    """Build a Processor with all required adapters."""
    store = store if store is not None else LocalObjectStore(Path(settings.storage_root))
    upload_repo = upload_repo if upload_repo is not None else UploadRepository()
    introspector = IntrospectorFactory.create(settings)
    surface_factory = SurfaceFactory(max_pixels=settings.max_surface_pixels)
    engine = RenderingEngine(surface_factory)
    prober = CapabilityProber(
        settings.external_tool_candidates,
        timeout_seconds=settings.probe_timeout_seconds,
        enabled=settings.external_tool_enabled,
    )
    generator = PreviewGenerator(
        store,
        preview_scale=settings.preview_scale,
        thumbnail_scale=settings.thumbnail_scale,
        max_thumbnails=settings.max_thumbnails,
        preview_quality=settings.preview_jpeg_quality,
        thumbnail_quality=settings.thumbnail_jpeg_quality,
    )
    chain_factory = functools.partial(build_strategy_chain, settings, engine=engine)
    steps: list[PipelineStep] = [
        DownloadSourceStep(store),
        ExtractMetadataStep(introspector),
        MeasureDimensionsStep(introspector),
        ProbeCapabilitiesStep(prober),
        CheckRenderingStep(engine, chain_factory),
        GeneratePreviewsStep(generator),
        GenerateThumbnailsStep(generator),
        PersistResultsStep(upload_repo),
    ]
    fallback_steps: list[PipelineStep] = [
        UseFallbackChainStep(build_fallback_chain(settings, surface_factory)),
        GeneratePreviewsStep(generator),
        GenerateThumbnailsStep(generator),
        PersistResultsStep(upload_repo),
    ]
    return Processor(
        upload_repo=upload_repo,
        steps=steps,
        failed_step=MarkFailedStep(upload_repo),
        fallback_steps=fallback_steps,
    )
