"""Ports - interfaces for external dependencies."""

from .converter import PdfAConverterPort
from .embedder import InvoiceEmbedderPort
from .storage import StoragePort
from .validator import ValidatorPort

__all__ = ["InvoiceEmbedderPort", "PdfAConverterPort", "StoragePort", "ValidatorPort"]
