from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from docpreview.database.connection import get_connection
from docpreview.database.models import (
    CLAIMABLE_STATUSES,
    ProcessingOutput,
    ProcessingStatus,
    UploadRecord,
)
from docpreview.processor.exceptions import UploadNotFoundError

_COLUMNS = """
    id, file_name, file_size, storage_path, processing_status, page_count,
    dimensions, preview_urls, thumbnail_urls, processing_metadata,
    created_at, updated_at
"""


class UploadRepository:
    """Database operations for the file_uploads table."""

    def get_upload(self, file_id: str) -> UploadRecord | None:
        """Find an upload by ID, or None when it does not exist."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM file_uploads WHERE id = %s",
                    (file_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return UploadRecord.from_row(row)

    def claim_for_processing(self, file_id: str) -> bool:
        """Compare-and-set the status to 'processing'.

        Only a pending or failed record can be claimed; returns False when
        another invocation got there first.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE file_uploads
                    SET processing_status = %s, updated_at = NOW()
                    WHERE id = %s
                      AND processing_status IN (%s, %s)
                    RETURNING id
                    """,
                    (
                        ProcessingStatus.PROCESSING.value,
                        file_id,
                        *(status.value for status in CLAIMABLE_STATUSES),
                    ),
                )
                claimed = cur.fetchone() is not None
            conn.commit()
        return claimed

    def set_status(
        self,
        file_id: str,
        status: ProcessingStatus,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Write a status, replacing processing_metadata when one is given.

        Raises:
            UploadNotFoundError: if no upload with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                if metadata is None:
                    cur.execute(
                        """
                        UPDATE file_uploads
                        SET processing_status = %s, updated_at = NOW()
                        WHERE id = %s
                        """,
                        (status.value, file_id),
                    )
                else:
                    cur.execute(
                        """
                        UPDATE file_uploads
                        SET processing_status = %s,
                            processing_metadata = %s,
                            updated_at = NOW()
                        WHERE id = %s
                        """,
                        (status.value, Jsonb(metadata), file_id),
                    )
                if cur.rowcount == 0:
                    raise UploadNotFoundError(f"Upload {file_id} not found")
            conn.commit()

    def set_results(self, file_id: str, output: ProcessingOutput) -> None:
        """Persist all derived fields and mark the upload completed in one UPDATE.

        Raises:
            UploadNotFoundError: if no upload with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE file_uploads
                    SET processing_status = %s,
                        page_count = %s,
                        dimensions = %s,
                        preview_urls = %s,
                        thumbnail_urls = %s,
                        processing_metadata = %s,
                        updated_at = NOW()
                    WHERE id = %s
                    """,
                    (
                        ProcessingStatus.COMPLETED.value,
                        output.page_count,
                        Jsonb(output.dimensions),
                        Jsonb(output.preview_urls),
                        Jsonb(output.thumbnail_urls),
                        Jsonb(output.metadata),
                        file_id,
                    ),
                )
                if cur.rowcount == 0:
                    raise UploadNotFoundError(f"Upload {file_id} not found")
            conn.commit()
