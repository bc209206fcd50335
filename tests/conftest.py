import io

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def three_page_pdf_bytes() -> bytes:
    """Three pages with text, a filled box and a line on each."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.setTitle("Quarterly Report")
    c.setAuthor("Finance Team")
    c.setSubject("Q3 figures")
    for page in range(1, 4):
        c.drawString(72, 720, f"Report page {page}")
        c.setFillColorRGB(0.2, 0.3, 0.8)
        c.rect(72, 400, 300, 200, fill=1)
        c.line(72, 380, 540, 380)
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def many_page_pdf_bytes() -> bytes:
    """Eight short pages, more than the thumbnail cap."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    for page in range(1, 9):
        c.drawString(72, 720, f"Page {page}")
        c.showPage()
    c.save()
    return buf.getvalue()
