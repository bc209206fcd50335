import os
import uuid
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from docpreview.config.settings import Settings
from docpreview.database.connection import close_pool, get_connection, init_pool
from docpreview.database.models import ProcessingStatus

SCHEMA = """
CREATE TABLE IF NOT EXISTS file_uploads (
    id TEXT PRIMARY KEY,
    file_name TEXT NOT NULL,
    file_size BIGINT NOT NULL,
    storage_path TEXT NOT NULL,
    processing_status TEXT NOT NULL DEFAULT 'pending',
    page_count INTEGER,
    dimensions JSONB,
    preview_urls JSONB,
    thumbnail_urls JSONB,
    processing_metadata JSONB,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docpreview_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
    except Exception as e:
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to point at a test database")
    try:
        with get_connection() as conn:
            conn.execute(SCHEMA)
            conn.commit()
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[list[str], None, None]:
    cleanup: list[str] = []
    yield cleanup
    if not cleanup:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            for file_id in cleanup:
                cur.execute("DELETE FROM file_uploads WHERE id = %s", (file_id,))
        conn.commit()


@pytest.fixture
def seed_upload(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[str],
) -> str:
    """Insert a pending upload and return its ID."""
    file_id = str(uuid.uuid4())
    with db_conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO file_uploads (id, file_name, file_size, storage_path, processing_status)
            VALUES (%s, %s, %s, %s, %s)
            """,
            (file_id, "report.pdf", 2048, f"uploads/{file_id}/report.pdf", ProcessingStatus.PENDING.value),
        )
    db_conn.commit()
    integration_cleanup.append(file_id)
    return file_id


@pytest.fixture
def files_root(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def uploaded_pdf(seed_upload: str, files_root: Path, three_page_pdf_bytes: bytes) -> tuple[str, Path]:
    """A pending upload whose source document exists in the local store."""
    path = files_root / "uploads" / seed_upload / "report.pdf"
    path.parent.mkdir(parents=True)
    path.write_bytes(three_page_pdf_bytes)
    return seed_upload, files_root
