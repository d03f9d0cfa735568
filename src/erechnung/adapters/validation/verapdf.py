"""Validation adapter using the veraPDF command line."""

import logging
import subprocess
import time
from pathlib import Path
from xml.etree import ElementTree as ET

from ...domain.models import ValidationIssue, ValidationResult, ValidationWarning
from ...errors import ConformanceError
from ...ports.validator import ValidatorPort

logger = logging.getLogger(__name__)

FLAVOUR = "3b"
DEFAULT_PROFILE_NAME = "PDF/A-3B"
PDF_HEADER = b"%PDF-"
TIMEOUT = 300  # seconds


def is_valid_pdf(path: Path) -> bool:
    """Quick check for the %PDF- header."""
    try:
        with open(path, "rb") as f:
            return f.read(len(PDF_HEADER)) == PDF_HEADER
    except OSError as e:
        logger.warning(f"Could not verify PDF header: {e}")
        return False


def _text(elem: ET.Element | None) -> str | None:
    if elem is None or elem.text is None:
        return None
    return elem.text.strip() or None


def parse_report(xml: str, elapsed_ms: int) -> ValidationResult:
    """Turn a veraPDF machine-readable report (``--format mrr``) into a result.

    Raises ConformanceError if the report holds no validation result, e.g.
    for encrypted or unparseable files.
    """
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as e:
        raise ConformanceError("Unreadable veraPDF report", str(e)) from e

    report = root.find(".//validationReport")
    if report is None:
        reason = _text(root.find(".//exceptionMessage"))
        summary = root.find(".//batchSummary")
        if reason is None and summary is not None and summary.get("encrypted", "0") != "0":
            reason = "PDF is encrypted and cannot be validated"
        raise ConformanceError(
            "PDF could not be validated", reason or "No validation report produced"
        )

    profile_name = report.get("profileName", DEFAULT_PROFILE_NAME)
    if report.get("isCompliant") == "true":
        return ValidationResult.success(profile_name, elapsed_ms)

    errors: list[ValidationIssue] = []
    warnings: list[ValidationWarning] = []
    for rule in report.iter("rule"):
        clause = rule.get("clause", "")
        rule_id = f"{clause}-{rule.get('testNumber', '0')}"
        description = _text(rule.find("description")) or ""
        status = rule.get("status")

        if status == "failed":
            check = rule.find("check[@status='failed']")
            errors.append(
                ValidationIssue(
                    rule_id=rule_id,
                    specification=rule.get("specification", ""),
                    clause=clause,
                    description=description,
                    context=_text(check.find("context")) if check is not None else None,
                )
            )
        elif status != "passed":
            warnings.append(ValidationWarning(rule_id=rule_id, message=description))

    return ValidationResult.failure(profile_name, errors, warnings, elapsed_ms)


class VeraPdfAdapter(ValidatorPort):
    """PDF/A-3B validation via the ``verapdf`` executable."""

    def __init__(self, executable: str = "verapdf", timeout: int = TIMEOUT) -> None:
        self.executable = executable
        self.timeout = timeout

    def validate(self, path: Path) -> ValidationResult:
        logger.info(f"Validating PDF/A-3 conformance: {path.name}")

        if not is_valid_pdf(path):
            raise ConformanceError("PDF could not be validated", f"Not a PDF file: {path.name}")

        start = time.monotonic()
        try:
            # exit code 1 only means "not compliant"; the report decides
            result = subprocess.run(
                [self.executable, "--flavour", FLAVOUR, "--format", "mrr", str(path)],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise ConformanceError(
                "PDF could not be validated", f"{self.executable} not found"
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ConformanceError(
                "PDF could not be validated", f"veraPDF timed out after {self.timeout}s"
            ) from e

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if not result.stdout.strip():
            raise ConformanceError(
                "PDF could not be validated",
                result.stderr.strip() or f"veraPDF exited with {result.returncode}",
            )

        validation = parse_report(result.stdout, elapsed_ms)
        if validation.valid:
            logger.info(f"PDF/A-3 validation successful in {elapsed_ms}ms")
        else:
            logger.warning(
                f"PDF/A-3 validation failed with {validation.error_count} errors "
                f"and {validation.warning_count} warnings"
            )
        return validation
