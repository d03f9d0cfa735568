"""Embedding adapter attaching CII XML to a PDF/A-3 file with pikepdf."""

import logging
from pathlib import Path

import pikepdf
from pikepdf import Name

from ...domain.invoice import InvoiceMetadata
from ...errors import GenerationError
from ...ports.embedder import InvoiceEmbedderPort
from .cii import build_cii_xml
from .xmp import build_xmp

logger = logging.getLogger(__name__)

XML_FILENAME = "factur-x.xml"
XML_MIME_TYPE = "text/xml"
CREATOR = "erechnung"


class PikePdfEmbedder(InvoiceEmbedderPort):
    """Factur-X / ZUGFeRD embedding using pikepdf.

    The XML is attached with relationship /Alternative and referenced from
    the catalog /AF array; the XMP packet is replaced to declare PDF/A-3B
    and the Factur-X schema.
    """

    def __init__(self, profile: str = "EN16931", version: str = "2.3") -> None:
        self.profile = profile
        self.version = version

    @property
    def producer(self) -> str:
        return f"{CREATOR} (ZUGFeRD {self.version}, {self.profile}) - pikepdf"

    def embed(self, input_path: Path, output_path: Path, metadata: InvoiceMetadata) -> None:
        logger.info(f"Generating e-invoice: {input_path.name} -> {output_path}")

        try:
            xml = build_cii_xml(metadata, self.profile)
            output_path.parent.mkdir(parents=True, exist_ok=True)

            with pikepdf.open(input_path) as pdf:
                self._attach_xml(pdf, xml, metadata)
                self._write_metadata(pdf, metadata)
                pdf.save(output_path)

        except (pikepdf.PdfError, OSError, ValueError) as e:
            logger.error(f"Failed to generate e-invoice: {e}")
            raise GenerationError("ZUGFeRD generation failed", str(e)) from e

        logger.info(f"Generated e-invoice: {output_path.name}")

    def _attach_xml(self, pdf: pikepdf.Pdf, xml: bytes, metadata: InvoiceMetadata) -> None:
        filespec = pikepdf.AttachedFileSpec(
            pdf,
            xml,
            description=f"Invoice {metadata.invoice_number} ({self.profile})",
            filename=XML_FILENAME,
            mime_type=XML_MIME_TYPE,
            relationship=Name.Alternative,
        )
        pdf.attachments[XML_FILENAME] = filespec
        pdf.Root.AF = pikepdf.Array([filespec.obj])

    def _write_metadata(self, pdf: pikepdf.Pdf, metadata: InvoiceMetadata) -> None:
        title = f"Invoice {metadata.invoice_number}"
        description = f"Electronic invoice from {metadata.seller.name}"

        xmp = build_xmp(
            title=title,
            creator=metadata.seller.name,
            description=description,
            producer=self.producer,
            creator_tool=CREATOR,
            document_file_name=XML_FILENAME,
            profile=self.profile,
        )
        pdf.Root.Metadata = pdf.make_stream(
            xmp.encode("utf-8"), Type=Name.Metadata, Subtype=Name.XML
        )

        # Document info must agree with the XMP packet; dates live in XMP only
        for key in ("/CreationDate", "/ModDate"):
            if key in pdf.docinfo:
                del pdf.docinfo[key]
        pdf.docinfo["/Title"] = title
        pdf.docinfo["/Author"] = metadata.seller.name
        pdf.docinfo["/Subject"] = description
        pdf.docinfo["/Creator"] = CREATOR
        pdf.docinfo["/Producer"] = self.producer
