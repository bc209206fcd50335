import time
from dataclasses import dataclass, field

from docpreview.logging.logger import Log
from docpreview.processor.exceptions import InvalidDocumentError
from docpreview.rendering.base import BaseRenderStrategy
from docpreview.rendering.exceptions import AllStrategiesExhaustedError
from docpreview.rendering.raster import RasterCandidate, validate_raster

DEFAULT_SCALE = 2.0
MAX_SCALE = 5.0


@dataclass
class StrategyOutcome:
    """One strategy attempt, kept for diagnostics."""

    strategy: str
    success: bool
    elapsed_ms: float
    byte_size: int | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "strategy": self.strategy,
            "success": self.success,
            "elapsedMs": round(self.elapsed_ms, 1),
            "byteSize": self.byte_size,
            "error": self.error,
        }


@dataclass
class ChainResult:
    raster: RasterCandidate
    strategy: str
    outcomes: list[StrategyOutcome] = field(default_factory=list)


def normalize_scale(scale: float) -> float:
    if scale <= 0 or scale > MAX_SCALE:
        Log.warning("Invalid render scale, using default", scale=scale, default=DEFAULT_SCALE)
        return DEFAULT_SCALE
    return scale


class RenderStrategyChain:
    """Tries rendering strategies in order and returns the first valid raster."""

    def __init__(self, strategies: list[BaseRenderStrategy], min_raster_bytes: int) -> None:
        if not strategies:
            raise ValueError("RenderStrategyChain requires at least one strategy")
        self._strategies = list(strategies)
        self._min_raster_bytes = min_raster_bytes

    @property
    def strategy_names(self) -> list[str]:
        return [strategy.name for strategy in self._strategies]

    def render(self, pdf_bytes: bytes, page_number: int, scale: float) -> ChainResult:
        """Rasterize one page with the first strategy that succeeds.

        Raises:
            InvalidDocumentError: if ``pdf_bytes`` is empty.
            AllStrategiesExhaustedError: if every strategy fails.
        """
        if not pdf_bytes:
            raise InvalidDocumentError("Cannot render an empty document")
        scale = normalize_scale(scale)
        outcomes: list[StrategyOutcome] = []

        for strategy in self._strategies:
            Log.debug("Trying render strategy", strategy=strategy.name, page=page_number, scale=scale)
            started = time.perf_counter()
            try:
                raster = strategy.render(pdf_bytes, page_number, scale)
                suspect = validate_raster(raster, self._min_raster_bytes)
            except Exception as exc:
                elapsed_ms = (time.perf_counter() - started) * 1000
                outcomes.append(
                    StrategyOutcome(
                        strategy=strategy.name,
                        success=False,
                        elapsed_ms=elapsed_ms,
                        error=f"{type(exc).__name__}: {exc}",
                    )
                )
                Log.warning(
                    "Render strategy failed",
                    strategy=strategy.name,
                    page=page_number,
                    elapsed_ms=f"{elapsed_ms:.1f}",
                    error=exc,
                )
                continue

            elapsed_ms = (time.perf_counter() - started) * 1000
            if suspect:
                Log.warning(
                    "Raster smaller than expected, accepting",
                    strategy=strategy.name,
                    page=page_number,
                    bytes=raster.byte_size,
                    minimum=self._min_raster_bytes,
                )
            outcomes.append(
                StrategyOutcome(
                    strategy=strategy.name,
                    success=True,
                    elapsed_ms=elapsed_ms,
                    byte_size=raster.byte_size,
                )
            )
            Log.info(
                "Render strategy succeeded",
                strategy=strategy.name,
                page=page_number,
                elapsed_ms=f"{elapsed_ms:.1f}",
                bytes=raster.byte_size,
            )
            return ChainResult(raster=raster, strategy=strategy.name, outcomes=outcomes)

        Log.critical(
            "All render strategies failed",
            page=page_number,
            attempted=",".join(outcome.strategy for outcome in outcomes),
        )
        raise AllStrategiesExhaustedError(
            f"All {len(outcomes)} render strategies failed for page {page_number}"
        )
