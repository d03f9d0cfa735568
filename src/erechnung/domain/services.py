"""Domain services - orchestrate the e-invoice workflow."""

import logging
import re
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from ..errors import (
    InternalError,
    InvoiceToolError,
    NotCompletedError,
    SessionNotFoundError,
    StorageIOError,
)
from ..ports.converter import PdfAConverterPort
from ..ports.embedder import InvoiceEmbedderPort
from ..ports.validator import ValidatorPort
from .invoice import InvoiceMetadata
from .models import Upload, ValidationResult
from .sessions import SessionStore
from .status import (
    Completed,
    Downloaded,
    Failed,
    Processing,
    Status,
    Uploaded,
    can_download,
    status_name,
    utcnow,
)

logger = logging.getLogger(__name__)

OUTPUT_NAME = "e-invoice.pdf"
FALLBACK_DOWNLOAD_NAME = "e-rechnung.pdf"
SESSION_REMOVED = "Session was removed during generation"
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


class InvoiceService:
    """Drives sessions through the state machine.

    Pipeline (generate):
        1. Uploaded -> Processing
        2. PDF/A-3 conversion
        3. Structured invoice embedding
        4. Conformance validation (optional)
        5. Processing -> Completed

    Any failure in steps 2-4 ends in Failed instead of an exception.
    """

    def __init__(
        self,
        store: SessionStore,
        converter: PdfAConverterPort,
        embedder: InvoiceEmbedderPort,
        validator: ValidatorPort,
        validate_on_generation: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.converter = converter
        self.embedder = embedder
        self.validator = validator
        self.validate_on_generation = validate_on_generation
        self.clock = clock

    def create_session(self, upload: Upload) -> str:
        return self.store.create(upload)

    def get_status(self, session_id: str) -> Status:
        return self.store.get_or_fail(session_id)

    def can_download(self, session_id: str) -> bool:
        status = self.store.get(session_id)
        return status is not None and can_download(status)

    def generate(self, session_id: str, metadata: InvoiceMetadata) -> Status:
        """Generate the e-invoice for an uploaded PDF.

        Raises SessionNotFoundError or InvalidStateError if the session is
        unknown or not Uploaded. Everything after that resolves to a
        returned Completed or Failed status.
        """
        logger.info(f"Starting invoice generation for session: {session_id}")

        previous, _ = self.store.transition(
            session_id,
            Uploaded,
            lambda current: Processing(session_id, self.clock(), metadata),
        )
        if not isinstance(previous, Uploaded):
            raise InternalError(
                "Unexpected status before generation", status_name(previous)
            )

        try:
            output_path, validation = self._run_pipeline(session_id, previous, metadata)
        except InvoiceToolError as e:
            logger.error(f"Invoice generation failed for session {session_id}: {e}")
            return self._fail(session_id, e)
        except OSError as e:
            logger.exception(f"I/O error during invoice generation: {e}")
            return self._fail(
                session_id,
                StorageIOError("I/O error during invoice generation", str(e)),
            )
        except Exception as e:
            logger.exception(f"Unexpected error during invoice generation: {e}")
            return self._fail(
                session_id,
                InternalError("Unexpected error during invoice generation", str(e)),
            )

        completed = Completed(session_id, self.clock(), output_path, validation, metadata)
        try:
            stored = self.store.update(session_id, completed)
        except SessionNotFoundError:
            return self._discard(session_id)

        logger.info(
            f"Invoice generation completed for session: {session_id} "
            f"(valid: {validation.valid})"
        )
        return stored

    def _run_pipeline(
        self, session_id: str, uploaded: Uploaded, metadata: InvoiceMetadata
    ) -> tuple[Path, ValidationResult]:
        original = uploaded.original_path

        pdfa_path = self.converter.convert(original)

        output_dir = self.store.storage.prepare_output_dir(session_id)
        output_path = output_dir / OUTPUT_NAME
        self.embedder.embed(pdfa_path, output_path, metadata)

        if pdfa_path != original:
            pdfa_path.unlink(missing_ok=True)

        if self.validate_on_generation:
            validation = self.validator.validate(output_path)
        else:
            validation = ValidationResult.skipped()
        return output_path, validation

    def _fail(self, session_id: str, error: InvoiceToolError) -> Failed:
        failed = Failed(session_id, self.clock(), error.message, error.details)
        try:
            return self.store.update(session_id, failed)
        except SessionNotFoundError:
            return self._discard(session_id)

    def _discard(self, session_id: str) -> Failed:
        """Handle a session deleted while its pipeline was running.

        The pipeline may have recreated the output directory after the
        deletion; those files belong to no session and are removed here.
        The returned Failed status is not stored.
        """
        logger.warning(f"Session {session_id} was removed during generation")
        try:
            self.store.storage.delete_session_files(session_id)
        except OSError as e:
            logger.warning(f"Could not remove files of session {session_id}: {e}")
        return Failed(session_id, self.clock(), SESSION_REMOVED)

    def download(self, session_id: str) -> bytes:
        """Read the generated e-invoice and mark the session Downloaded.

        Only the first download succeeds; afterwards the session is no
        longer Completed and NotCompletedError is raised.
        """
        status = self.store.get_or_fail(session_id)
        if not isinstance(status, Completed):
            raise NotCompletedError(
                "E-invoice has not been created yet",
                f"Current status: {status_name(status)}",
            )

        try:
            content = status.output_path.read_bytes()
        except OSError as e:
            logger.error(f"Failed to read generated invoice for {session_id}: {e}")
            raise StorageIOError("Failed to read the e-invoice", str(e)) from e

        self.store.transition(
            session_id,
            Completed,
            lambda current: Downloaded(session_id, self.clock(), status.output_path),
            error=NotCompletedError,
        )
        logger.info(f"Session {session_id} marked as downloaded")
        return content

    def download_filename(self, session_id: str) -> str:
        status = self.store.get_or_fail(session_id)
        if isinstance(status, Completed):
            safe_number = _UNSAFE_CHARS.sub("_", status.metadata.invoice_number)
            return f"E-Rechnung_{safe_number}.pdf"
        return FALLBACK_DOWNLOAD_NAME

    def cleanup(self, session_id: str) -> None:
        """Delete a session and all of its files. Unknown ids are ignored."""
        self.store.delete(session_id)
