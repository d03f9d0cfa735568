"""Error kinds raised by the session store, the services and the adapters."""


class InvoiceToolError(Exception):
    """Base error carrying an operator-facing message and optional details."""

    code = "PROCESSING_ERROR"

    def __init__(
        self, message: str, details: str | None = None, code: str | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


class UploadValidationError(InvoiceToolError):
    """Rejected upload: empty, oversized or not a PDF."""

    code = "UPLOAD_INVALID"

    @classmethod
    def empty_file(cls) -> "UploadValidationError":
        return cls("No file uploaded", code="EMPTY_FILE")

    @classmethod
    def file_too_large(cls, size: int, max_size: int) -> "UploadValidationError":
        return cls(
            "File is too large",
            f"Maximum size: {max_size // 1024 // 1024} MB, "
            f"uploaded: {size // 1024 // 1024} MB",
            code="FILE_TOO_LARGE",
        )

    @classmethod
    def invalid_file_type(cls, content_type: str | None) -> "UploadValidationError":
        return cls(
            "Invalid file type",
            f"Expected: application/pdf, received: {content_type}",
            code="INVALID_FILE_TYPE",
        )


class InvalidStateError(InvoiceToolError):
    """Requested transition is not allowed from the current status."""

    code = "INVALID_STATE"


class NotCompletedError(InvalidStateError):
    """Download requested before the e-invoice was completed."""

    code = "NOT_COMPLETED"


class SessionNotFoundError(InvoiceToolError):
    code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Session not found: {session_id}",
            "The session has expired or does not exist.",
        )
        self.session_id = session_id


class ConversionError(InvoiceToolError):
    """PDF/A-3 conversion failed."""

    code = "PDF_CONVERSION_ERROR"


class GenerationError(InvoiceToolError):
    """Structured invoice could not be built or embedded."""

    code = "ZUGFERD_GENERATION_ERROR"


class StorageIOError(InvoiceToolError):
    code = "IO_ERROR"


class ConformanceError(InvoiceToolError):
    """The conformance validator itself could not run on the file."""

    code = "VALIDATION_ERROR"


class InternalError(InvoiceToolError):
    code = "INTERNAL_ERROR"
