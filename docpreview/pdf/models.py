import re
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

_PDF_DATE_RE = re.compile(
    r"^D:(?P<year>\d{4})(?P<month>\d{2})?(?P<day>\d{2})?"
    r"(?P<hour>\d{2})?(?P<minute>\d{2})?(?P<second>\d{2})?"
    r"(?P<tz>[Zz]|[+-]\d{2}'?\d{2}'?)?"
)


@dataclass(frozen=True)
class DocumentMetadata:
    """Descriptive information and a leading text excerpt of a PDF."""

    page_count: int
    title: str | None = None
    author: str | None = None
    subject: str | None = None
    keywords: str | None = None
    creator: str | None = None
    producer: str | None = None
    created_at: str | None = None
    modified_at: str | None = None
    text_excerpt: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        return {
            "pageCount": data["page_count"],
            "title": data["title"],
            "author": data["author"],
            "subject": data["subject"],
            "keywords": data["keywords"],
            "creator": data["creator"],
            "producer": data["producer"],
            "createdAt": data["created_at"],
            "modifiedAt": data["modified_at"],
            "textContent": data["text_excerpt"],
        }


@dataclass(frozen=True)
class PageDimensions:
    """Page size in PDF points."""

    width: float
    height: float

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height else 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "width": round(self.width, 2),
            "height": round(self.height, 2),
            "aspectRatio": round(self.aspect_ratio, 4),
        }


def normalize_pdf_date(value: Any) -> str | None:
    """Convert a PDF date string (``D:YYYYMMDDHHmmSSOHH'mm'``) to ISO-8601.

    Unparseable values are returned unchanged.
    """
    text = clean_info_value(value)
    if text is None:
        return None
    match = _PDF_DATE_RE.match(text)
    if match is None:
        return text
    parts = match.groupdict()
    try:
        moment = datetime(
            int(parts["year"]),
            int(parts["month"] or 1),
            int(parts["day"] or 1),
            int(parts["hour"] or 0),
            int(parts["minute"] or 0),
            int(parts["second"] or 0),
            tzinfo=_parse_offset(parts["tz"]),
        )
    except ValueError:
        return text
    return moment.isoformat()


def _parse_offset(raw: str | None) -> timezone | None:
    if raw is None:
        return None
    if raw in ("Z", "z"):
        return timezone.utc
    digits = raw[1:].replace("'", "")
    offset = timedelta(hours=int(digits[:2]), minutes=int(digits[2:4] or 0))
    return timezone(-offset if raw[0] == "-" else offset)


def clean_info_value(value: Any) -> str | None:
    """Normalize a document-info entry to a stripped string or None."""
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    text = str(value).replace("\x00", "").strip()
    return text or None


def build_excerpt(page_texts: Iterable[str], limit: int) -> str | None:
    """Join page texts until ``limit`` characters are collected."""
    collected: list[str] = []
    length = 0
    for text in page_texts:
        if length >= limit:
            break
        text = text or ""
        collected.append(text)
        length += len(text) + 1
    excerpt = "\n".join(collected).strip()[:limit]
    return excerpt or None


def build_metadata(
    info: Mapping[str, Any],
    page_count: int,
    excerpt: str | None,
) -> DocumentMetadata:
    """Map an info dictionary with PDF key names (``Title``, ``CreationDate``...)."""
    return DocumentMetadata(
        page_count=page_count,
        title=clean_info_value(info.get("Title")),
        author=clean_info_value(info.get("Author")),
        subject=clean_info_value(info.get("Subject")),
        keywords=clean_info_value(info.get("Keywords")),
        creator=clean_info_value(info.get("Creator")),
        producer=clean_info_value(info.get("Producer")),
        created_at=normalize_pdf_date(info.get("CreationDate")),
        modified_at=normalize_pdf_date(info.get("ModDate")),
        text_excerpt=excerpt,
    )
