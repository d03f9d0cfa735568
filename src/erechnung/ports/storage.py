"""Storage port - interface for per-session file storage."""

from abc import ABC, abstractmethod
from pathlib import Path


class StoragePort(ABC):
    """Interface for session file storage."""

    @abstractmethod
    def save_upload(self, session_id: str, content: bytes) -> Path:
        """Persist uploaded bytes in the session's own directory.

        Returns path to stored file.
        """
        pass

    @abstractmethod
    def prepare_output_dir(self, session_id: str) -> Path:
        """Create and return the session's output directory."""
        pass

    @abstractmethod
    def delete_session_files(self, session_id: str) -> None:
        """Recursively remove all files of a session."""
        pass
