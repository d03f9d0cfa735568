"""Converter port - interface for PDF/A-3 conversion."""

from abc import ABC, abstractmethod
from pathlib import Path


class PdfAConverterPort(ABC):
    """Interface for archival PDF conversion."""

    @abstractmethod
    def convert(self, path: Path) -> Path:
        """Convert a PDF to PDF/A-3.

        Returns path to the converted file, which may be the input itself
        if it already conforms. Raises ConversionError on failure.
        """
        pass
