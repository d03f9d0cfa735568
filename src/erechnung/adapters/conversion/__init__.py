"""PDF/A conversion adapters."""

from .ocrmypdf_adapter import OcrMyPdfAdapter, is_pdfa3

__all__ = ["OcrMyPdfAdapter", "is_pdfa3"]
