from unittest.mock import patch

import pytest

from docpreview.surface.fonts import FontSpec, fallback_metrics, measure, parse_font


class TestParseFont:
    def test_parses_size_and_family(self) -> None:
        spec = parse_font("48px Arial")
        assert spec == FontSpec(size=48.0, family="Arial", bold=False)

    def test_parses_bold_prefix(self) -> None:
        assert parse_font("bold 12px sans-serif").bold is True

    def test_uses_first_family_of_list(self) -> None:
        assert parse_font("10px 'Times New Roman', serif").family == "Times New Roman"

    def test_rejects_missing_size(self) -> None:
        with pytest.raises(ValueError, match="Unparseable font"):
            parse_font("Arial")


class TestGenericFamily:
    @pytest.mark.parametrize(
        ("family", "expected"),
        [
            ("Helvetica", "sans-serif"),
            ("Times-Roman", "serif"),
            ("Courier", "monospace"),
            ("DejaVu Sans", "sans-serif"),
        ],
    )
    def test_maps_pdf_font_names(self, family: str, expected: str) -> None:
        assert FontSpec(family=family).generic_family == expected


class TestMeasure:
    def test_fallback_metrics_use_half_size_per_char(self) -> None:
        metrics = fallback_metrics(FontSpec(size=20), "abcd")
        assert metrics.width == 40
        assert metrics.fallback is True

    def test_measure_falls_back_without_font_engine(self) -> None:
        with patch("docpreview.surface.fonts.load_font", return_value=None):
            metrics = measure(FontSpec(size=10), "abc")
        assert metrics.width == 15
        assert metrics.fallback is True
