"""Session status: a closed set of variants forming the processing state machine.

    Uploaded --generate--> Processing --+--> Completed --download--> Downloaded
                                        +--> Failed

Every helper matches all five variants and ends in ``assert_never`` so a new
variant cannot be added without handling it everywhere.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import assert_never

from .invoice import InvoiceMetadata
from .models import ValidationResult


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Uploaded:
    """PDF stored, waiting for invoice metadata."""

    session_id: str
    timestamp: datetime
    original_path: Path
    original_filename: str
    file_size: int


@dataclass(frozen=True)
class Processing:
    session_id: str
    timestamp: datetime
    metadata: InvoiceMetadata


@dataclass(frozen=True)
class Completed:
    """E-invoice generated and ready for download."""

    session_id: str
    timestamp: datetime
    output_path: Path
    validation: ValidationResult
    metadata: InvoiceMetadata


@dataclass(frozen=True)
class Failed:
    session_id: str
    timestamp: datetime
    error_message: str
    error_details: str | None = None


@dataclass(frozen=True)
class Downloaded:
    """Artifact delivered; the session only waits for eviction."""

    session_id: str
    timestamp: datetime
    downloaded_path: Path


Status = Uploaded | Processing | Completed | Failed | Downloaded


def status_name(status: Status) -> str:
    match status:
        case Uploaded():
            return "Uploaded"
        case Processing():
            return "Processing"
        case Completed():
            return "Completed"
        case Failed():
            return "Failed"
        case Downloaded():
            return "Downloaded"
        case _:
            assert_never(status)


def describe(status: Status) -> str:
    """Human-readable description of a status."""
    match status:
        case Uploaded(original_filename=name):
            return f"PDF uploaded: {name}"
        case Processing():
            return "Processing..."
        case Completed(validation=validation):
            if validation.valid:
                return "E-invoice created successfully"
            return "E-invoice created (with validation warnings)"
        case Failed(error_message=message):
            return f"Error: {message}"
        case Downloaded():
            return "Downloaded"
        case _:
            assert_never(status)


def is_terminal(status: Status) -> bool:
    match status:
        case Failed() | Downloaded():
            return True
        case Uploaded() | Processing() | Completed():
            return False
        case _:
            assert_never(status)


def can_download(status: Status) -> bool:
    match status:
        case Completed():
            return True
        case Uploaded() | Processing() | Failed() | Downloaded():
            return False
        case _:
            assert_never(status)
