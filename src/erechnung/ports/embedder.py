"""Embedder port - interface for structured invoice embedding."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.invoice import InvoiceMetadata


class InvoiceEmbedderPort(ABC):
    """Interface for embedding invoice XML into a PDF/A-3 file."""

    @abstractmethod
    def embed(self, input_path: Path, output_path: Path, metadata: "InvoiceMetadata") -> None:
        """Write the e-invoice to output_path. Raises GenerationError."""
        pass
