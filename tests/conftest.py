"""Shared test fixtures."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from erechnung.adapters.storage import FilesystemAdapter
from erechnung.domain.invoice import Address, BankDetails, InvoiceMetadata, LineItem, Party
from erechnung.domain.models import Upload, ValidationResult
from erechnung.domain.services import InvoiceService
from erechnung.domain.sessions import SessionStore
from erechnung.ports.converter import PdfAConverterPort
from erechnung.ports.embedder import InvoiceEmbedderPort
from erechnung.ports.validator import ValidatorPort

PDF_BYTES = b"%PDF-1.4\n%test content\n%%EOF\n"


class FakeClock:
    """Controllable clock; advance it to age sessions."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def make_party(name: str, city: str = "Berlin") -> Party:
    return Party(
        name=name,
        address=Address(
            street="Hauptstraße 1", city=city, postal_code="10115", country_code="de"
        ),
        vat_id="DE 123 456 789",
        email="billing@example.com",
    )


@pytest.fixture
def sample_metadata() -> InvoiceMetadata:
    """Invoice with two 19% items: net 350.00, tax 66.50."""
    return InvoiceMetadata(
        invoice_number="RE-2024/001",
        issue_date=date(2024, 3, 15),
        due_date=date(2024, 4, 14),
        seller=make_party("Acme GmbH"),
        buyer=make_party("Kunde AG", city="München"),
        items=[
            LineItem(
                description="Consulting", quantity=Decimal("2"),
                unit_price=Decimal("100.00"), tax_rate=Decimal("19"), unit="HUR",
            ),
            LineItem(
                description="Support", quantity=Decimal("3"),
                unit_price=Decimal("50.00"), tax_rate=Decimal("19"),
            ),
        ],
        bank_details=BankDetails(iban="de89 3704 0044 0532 0130 00", bic="COBADEFFXXX"),
        payment_terms="30 days net",
    )


@pytest.fixture
def sample_upload() -> Upload:
    return Upload("invoice.pdf", PDF_BYTES)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage(tmp_path: Path) -> FilesystemAdapter:
    return FilesystemAdapter(tmp_path / "uploads", tmp_path / "output")


@pytest.fixture
def store(storage: FilesystemAdapter, clock: FakeClock) -> SessionStore:
    return SessionStore(storage, max_file_size=1024 * 1024, clock=clock)


@pytest.fixture
def mock_converter() -> MagicMock:
    """Mock converter returning the input unchanged."""
    mock = MagicMock(spec=PdfAConverterPort)
    mock.convert.side_effect = lambda path: path
    return mock


@pytest.fixture
def mock_embedder() -> MagicMock:
    """Mock embedder copying the input to the output path."""
    mock = MagicMock(spec=InvoiceEmbedderPort)

    def embed(input_path: Path, output_path: Path, metadata: InvoiceMetadata) -> None:
        output_path.write_bytes(input_path.read_bytes() + b"%e-invoice\n")

    mock.embed.side_effect = embed
    return mock


@pytest.fixture
def mock_validator() -> MagicMock:
    mock = MagicMock(spec=ValidatorPort)
    mock.validate.return_value = ValidationResult.success("PDF/A-3B", 42)
    return mock


@pytest.fixture
def service(
    store: SessionStore,
    mock_converter: MagicMock,
    mock_embedder: MagicMock,
    mock_validator: MagicMock,
    clock: FakeClock,
) -> InvoiceService:
    return InvoiceService(
        store=store,
        converter=mock_converter,
        embedder=mock_embedder,
        validator=mock_validator,
        clock=clock,
    )
