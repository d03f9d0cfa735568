"""Domain layer - session lifecycle and invoice aggregation."""

from .invoice import InvoiceMetadata, LineItem
from .models import Upload, ValidationResult
from .status import Completed, Downloaded, Failed, Processing, Status, Uploaded

__all__ = [
    "Completed",
    "Downloaded",
    "Failed",
    "InvoiceMetadata",
    "LineItem",
    "Processing",
    "Status",
    "Upload",
    "Uploaded",
    "ValidationResult",
]
