from abc import ABC, abstractmethod


class BaseObjectStore(ABC):
    """Contract for the object store holding source documents and generated images."""

    @abstractmethod
    def download(self, path: str) -> bytes:
        """Read an object.

        Raises:
            StorageError: if the object is missing or cannot be read.
        """

    @abstractmethod
    def upload(self, data: bytes, path: str, content_type: str) -> str:
        """Write (or overwrite) an object and return its storage path.

        Raises:
            StorageError: if the object cannot be written.
        """

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Return True when an object is stored at ``path``."""
