"""PDF/A-3 conversion adapter using ocrmypdf."""

import logging
import subprocess
from pathlib import Path

import pikepdf

from ...errors import ConversionError
from ...ports.converter import PdfAConverterPort

logger = logging.getLogger(__name__)


def is_pdfa3(path: Path) -> bool:
    """Check whether the PDF's XMP metadata claims PDF/A-3 conformance."""
    try:
        with pikepdf.open(path) as pdf:
            meta = pdf.open_metadata()
            return str(meta.pdfa_status or "").startswith("3")
    except (pikepdf.PdfError, OSError) as e:
        logger.warning(f"Could not check PDF/A-3 conformance of {path.name}: {e}")
        return False


class OcrMyPdfAdapter(PdfAConverterPort):
    """Conversion implementation using ocrmypdf.

    Pages that already contain text are left alone; the file is rewritten
    as PDF/A-3 next to the input as ``pdfa3_<name>``.
    """

    def __init__(self, executable: str = "ocrmypdf") -> None:
        self.executable = executable

    def convert(self, path: Path) -> Path:
        if is_pdfa3(path):
            logger.info(f"Already PDF/A-3, skipping conversion: {path.name}")
            return path

        output = path.with_name(f"pdfa3_{path.name}")
        logger.info(f"Converting PDF to PDF/A-3: {path.name}")

        try:
            subprocess.run(
                [
                    self.executable,
                    "--quiet",
                    "--skip-text",
                    "--output-type", "pdfa-3",
                    str(path),
                    str(output),
                ],
                check=True,
                capture_output=True,
                text=True,
            )
        except subprocess.CalledProcessError as e:
            output.unlink(missing_ok=True)
            raise ConversionError(
                "PDF/A-3 conversion failed", (e.stderr or str(e)).strip()
            ) from e
        except FileNotFoundError as e:
            raise ConversionError(
                "PDF/A-3 conversion failed", f"{self.executable} not found"
            ) from e

        logger.info(f"Converted to PDF/A-3: {output.name}")
        return output
