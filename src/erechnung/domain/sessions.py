"""In-memory session store - single source of truth for session status."""

import logging
import secrets
import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from ..errors import (
    InvalidStateError,
    SessionNotFoundError,
    StorageIOError,
    UploadValidationError,
)
from ..ports.storage import StoragePort
from .models import Upload
from .status import Status, Uploaded, status_name, utcnow

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
PDF_MAGIC = b"%PDF-"
DEFAULT_FILENAME = "upload.pdf"
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


def new_session_id() -> str:
    """128 random bits rendered as hex."""
    return secrets.token_hex(16)


class SessionStore:
    """Thread-safe mapping of session id to current status.

    Only dictionary access happens under the lock; file I/O for uploads and
    deletions runs outside it. Statuses are immutable and replaced wholesale.
    """

    def __init__(
        self,
        storage: StoragePort,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.storage = storage
        self.max_file_size = max_file_size
        self.clock = clock
        self._sessions: dict[str, Status] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def create(self, upload: Upload) -> str:
        """Validate and store an upload, registering it as Uploaded."""
        self._validate(upload)

        session_id = new_session_id()
        filename = upload.filename or DEFAULT_FILENAME

        try:
            path = self.storage.save_upload(session_id, upload.content)
        except OSError as e:
            logger.error(f"Failed to store upload for session {session_id}: {e}")
            self._remove_files(session_id)
            raise StorageIOError("Failed to store the uploaded file", str(e)) from e

        status = Uploaded(
            session_id=session_id,
            timestamp=self.clock(),
            original_path=path,
            original_filename=filename,
            file_size=upload.size,
        )
        with self._lock:
            self._sessions[session_id] = status

        logger.info(f"Created session {session_id} for {filename} ({upload.size} bytes)")
        return session_id

    def _validate(self, upload: Upload) -> None:
        if upload.size == 0:
            raise UploadValidationError.empty_file()
        if upload.size > self.max_file_size:
            raise UploadValidationError.file_too_large(upload.size, self.max_file_size)
        if upload.content_type != PDF_CONTENT_TYPE:
            raise UploadValidationError.invalid_file_type(upload.content_type)
        if not upload.content.startswith(PDF_MAGIC):
            raise UploadValidationError.invalid_file_type("content without PDF header")

    def get(self, session_id: str) -> Status | None:
        with self._lock:
            return self._sessions.get(session_id)

    def get_or_fail(self, session_id: str) -> Status:
        status = self.get(session_id)
        if status is None:
            raise SessionNotFoundError(session_id)
        return status

    def update(self, session_id: str, status: Status) -> Status:
        """Replace the status of an existing session.

        Returns the stored status, whose timestamp is never older than the
        one it replaces.
        """
        with self._lock:
            current = self._sessions.get(session_id)
            if current is None:
                raise SessionNotFoundError(session_id)
            stored = self._put(session_id, current, status)

        logger.debug(f"Updated session {session_id} status to: {status_name(stored)}")
        return stored

    def transition(
        self,
        session_id: str,
        expected: type | tuple[type, ...],
        factory: Callable[[Status], Status],
        error: type[InvalidStateError] = InvalidStateError,
    ) -> tuple[Status, Status]:
        """Atomically replace the status if it is an instance of ``expected``.

        ``factory`` receives the current status and builds its successor.
        Raises ``error`` (an InvalidStateError) without touching the store
        otherwise.
        Returns ``(previous, stored)``.
        """
        with self._lock:
            current = self._sessions.get(session_id)
            if current is None:
                raise SessionNotFoundError(session_id)
            if not isinstance(current, expected):
                raise error(
                    "Invalid status for the requested operation",
                    f"Current status: {status_name(current)}",
                )
            stored = self._put(session_id, current, factory(current))

        logger.debug(
            f"Session {session_id}: {status_name(current)} -> {status_name(stored)}"
        )
        return current, stored

    def _put(self, session_id: str, current: Status, status: Status) -> Status:
        # caller holds the lock
        if status.timestamp < current.timestamp:
            status = replace(status, timestamp=current.timestamp)
        self._sessions[session_id] = status
        return status

    def delete(self, session_id: str) -> bool:
        """Remove a session and its files.

        Returns False if the session was already gone. File removal errors
        are logged only.
        """
        with self._lock:
            existed = self._sessions.pop(session_id, None) is not None

        self._remove_files(session_id)
        if existed:
            logger.info(f"Deleted session: {session_id}")
        return existed

    def delete_if(
        self, session_id: str, predicate: Callable[[Status], bool]
    ) -> Status | None:
        """Remove a session only if ``predicate`` holds for its current status.

        The check and the removal happen under one lock acquisition, so a
        concurrent transition is either seen by the predicate or not
        affected at all. Returns the removed status, or None.
        """
        with self._lock:
            current = self._sessions.get(session_id)
            if current is None or not predicate(current):
                return None
            del self._sessions[session_id]

        self._remove_files(session_id)
        logger.info(f"Deleted session: {session_id}")
        return current

    def _remove_files(self, session_id: str) -> None:
        try:
            self.storage.delete_session_files(session_id)
        except OSError as e:
            logger.warning(f"Could not remove files of session {session_id}: {e}")

    def list_ids(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._sessions)
