"""BDD step definitions for the e-invoice session lifecycle."""

from datetime import timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from pytest_bdd import given, parsers, scenario, then, when

from erechnung.adapters.storage import FilesystemAdapter
from erechnung.cleanup import run_cleanup
from erechnung.domain.invoice import InvoiceMetadata
from erechnung.domain.models import Upload, ValidationResult
from erechnung.domain.services import InvoiceService
from erechnung.domain.sessions import SessionStore
from erechnung.domain.status import describe, status_name
from erechnung.errors import ConversionError, InvoiceToolError, SessionNotFoundError
from erechnung.ports.converter import PdfAConverterPort
from erechnung.ports.embedder import InvoiceEmbedderPort
from erechnung.ports.validator import ValidatorPort

RETENTION = timedelta(minutes=30)


@scenario("features/lifecycle.feature", "Successful e-invoice generation")
def test_successful_generation() -> None:
    pass


@scenario("features/lifecycle.feature", "Failed PDF/A conversion")
def test_failed_conversion() -> None:
    pass


@scenario("features/lifecycle.feature", "Generating twice is rejected")
def test_generate_twice() -> None:
    pass


@scenario("features/lifecycle.feature", "Downloaded session is evicted on the next sweep")
def test_download_then_evict() -> None:
    pass


@scenario("features/lifecycle.feature", "Abandoned upload expires after the retention period")
def test_abandoned_upload_expires() -> None:
    pass


@scenario("features/lifecycle.feature", "Recent upload survives the sweep")
def test_recent_upload_kept() -> None:
    pass


@pytest.fixture
def context(tmp_path: Path) -> dict:
    """Shared test context with temp directory."""
    return {"tmp_path": tmp_path}


@given("an invoice service with mock adapters")
def setup_service(context: dict, clock) -> None:
    tmp_path = context["tmp_path"]

    def embed(input_path: Path, output_path: Path, metadata: InvoiceMetadata) -> None:
        output_path.write_bytes(input_path.read_bytes())

    context["converter"] = MagicMock(spec=PdfAConverterPort)
    context["converter"].convert.side_effect = lambda path: path
    context["embedder"] = MagicMock(spec=InvoiceEmbedderPort)
    context["embedder"].embed.side_effect = embed
    context["validator"] = MagicMock(spec=ValidatorPort)
    context["validator"].validate.return_value = ValidationResult.success("PDF/A-3B", 1)

    context["clock"] = clock
    context["store"] = SessionStore(
        FilesystemAdapter(tmp_path / "uploads", tmp_path / "output"), clock=clock
    )
    context["service"] = InvoiceService(
        store=context["store"],
        converter=context["converter"],
        embedder=context["embedder"],
        validator=context["validator"],
        clock=clock,
    )


@given(parsers.parse('an uploaded PDF "{name}"'))
def uploaded_pdf(context: dict, name: str) -> None:
    upload = Upload(name, b"%PDF-1.4\n%content\n%%EOF\n")
    context["session_id"] = context["service"].create_session(upload)


@given(parsers.parse('the PDF/A conversion fails with "{message}"'))
def conversion_fails(context: dict, message: str) -> None:
    context["converter"].convert.side_effect = ConversionError(message, "exit status 2")


@when(parsers.parse('I generate the e-invoice for invoice number "{number}"'))
def generate(context: dict, sample_metadata: InvoiceMetadata, number: str) -> None:
    metadata = sample_metadata.model_copy(update={"invoice_number": number})
    context["metadata"] = metadata
    context["status"] = context["service"].generate(context["session_id"], metadata)


@when("I download the e-invoice")
def download(context: dict) -> None:
    context["content"] = context["service"].download(context["session_id"])


@when(parsers.parse("{minutes:d} minutes pass"))
def time_passes(context: dict, minutes: int) -> None:
    context["clock"].advance(minutes=minutes)


@when("the cleanup sweep runs")
def sweep(context: dict) -> None:
    context["removed"] = run_cleanup(context["store"], RETENTION, context["clock"]())


@then(parsers.parse('the session status should be "{name}"'))
def status_is(context: dict, name: str) -> None:
    status = context["service"].get_status(context["session_id"])
    assert status_name(status) == name, f"Expected {name}, got {describe(status)}"


@then(parsers.parse('the status should read "{text}"'))
def status_reads(context: dict, text: str) -> None:
    assert describe(context["service"].get_status(context["session_id"])) == text


@then(parsers.parse('the download filename should be "{filename}"'))
def download_filename(context: dict, filename: str) -> None:
    assert context["service"].download_filename(context["session_id"]) == filename


@then(parsers.parse('downloading should fail with "{code}"'))
def download_fails(context: dict, code: str) -> None:
    with pytest.raises(InvoiceToolError) as exc:
        context["service"].download(context["session_id"])
    assert exc.value.code == code


@then(parsers.parse('generating again should fail with "{code}"'))
def generate_again_fails(context: dict, code: str) -> None:
    with pytest.raises(InvoiceToolError) as exc:
        context["service"].generate(context["session_id"], context["metadata"])
    assert exc.value.code == code
    assert context["converter"].convert.call_count == 1


@then("the session should be gone")
def session_gone(context: dict) -> None:
    assert context["removed"] == 1
    with pytest.raises(SessionNotFoundError):
        context["service"].get_status(context["session_id"])
    assert not (context["tmp_path"] / "uploads" / context["session_id"]).exists()
