"""Conformance validation adapters."""

from .verapdf import VeraPdfAdapter, is_valid_pdf, parse_report

__all__ = ["VeraPdfAdapter", "is_valid_pdf", "parse_report"]
