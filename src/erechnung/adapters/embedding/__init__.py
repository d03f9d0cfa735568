"""Structured invoice embedding adapters."""

from .cii import build_cii_xml
from .pikepdf import PikePdfEmbedder
from .xmp import build_xmp

__all__ = ["PikePdfEmbedder", "build_cii_xml", "build_xmp"]
