class ProcessorError(Exception):
    """Base exception for all processor-related errors.

    Subclasses set ``error_code``; ``to_dict`` renders the structured error
    returned to callers.
    """

    error_code: str = "PROCESSING_FAILED"

    def to_dict(self) -> dict[str, object]:
        return {
            "success": False,
            "error": {"code": self.error_code, "message": str(self)},
        }


class UploadNotFoundError(ProcessorError):
    """Raised when an upload record cannot be found in the database."""

    error_code = "NOT_FOUND"


class AlreadyProcessingError(ProcessorError):
    """Raised when another invocation already holds the processing claim."""

    error_code = "ALREADY_PROCESSING"


class InvalidDocumentError(ProcessorError):
    """Raised when the source bytes cannot be parsed as a PDF document."""

    error_code = "INVALID_DOCUMENT"


class StorageError(ProcessorError):
    """Raised when a download from or upload to the object store fails."""

    error_code = "STORAGE_ERROR"
