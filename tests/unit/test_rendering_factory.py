from pathlib import Path

from docpreview.config.settings import Settings
from docpreview.rendering.capabilities import ToolCapability
from docpreview.rendering.engine import RenderingEngine
from docpreview.rendering.factory import build_fallback_chain, build_strategy_chain
from docpreview.surface.factory import SurfaceFactory


def _settings(tmp_path: Path) -> Settings:
    return Settings(temp_dir=str(tmp_path))


def _engine() -> RenderingEngine:
    return RenderingEngine(SurfaceFactory(max_pixels=1_000_000))


class TestBuildStrategyChain:
    def test_includes_external_tool_when_pdf_capable(self, tmp_path: Path) -> None:
        capability = ToolCapability(available=True, binary="/usr/bin/magick", supports_pdf=True)

        chain = build_strategy_chain(_settings(tmp_path), capability, _engine())

        assert chain.strategy_names == [
            "external-tool",
            "full-render",
            "simplified-render",
            "synthetic-layout",
            "minimal-placeholder",
        ]

    def test_skips_external_tool_without_pdf_support(self, tmp_path: Path) -> None:
        capability = ToolCapability(available=True, binary="/usr/bin/convert", supports_pdf=False)

        chain = build_strategy_chain(_settings(tmp_path), capability, _engine())

        assert chain.strategy_names[0] == "full-render"

    def test_skips_external_tool_when_unavailable(self, tmp_path: Path) -> None:
        chain = build_strategy_chain(_settings(tmp_path), ToolCapability(available=False), _engine())

        assert "external-tool" not in chain.strategy_names
        assert len(chain.strategy_names) == 4


class TestBuildFallbackChain:
    def test_only_library_free_strategies(self, tmp_path: Path) -> None:
        chain = build_fallback_chain(_settings(tmp_path), SurfaceFactory(max_pixels=1_000_000))

        assert chain.strategy_names == ["synthetic-layout", "minimal-placeholder"]
