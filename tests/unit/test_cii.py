"""Unit tests for CII XML generation."""

from decimal import Decimal
from xml.etree import ElementTree as ET

import pytest

from erechnung.adapters.embedding.cii import GUIDELINES, NS, build_cii_xml
from erechnung.domain.invoice import InvoiceMetadata, LineItem


def parse(metadata: InvoiceMetadata, profile: str = "EN16931") -> ET.Element:
    return ET.fromstring(build_cii_xml(metadata, profile))


def text(root: ET.Element, path: str) -> str | None:
    elem = root.find(path, NS)
    return elem.text if elem is not None else None


SETTLEMENT = "rsm:SupplyChainTradeTransaction/ram:ApplicableHeaderTradeSettlement"
SUMMATION = f"{SETTLEMENT}/ram:SpecifiedTradeSettlementHeaderMonetarySummation"
AGREEMENT = "rsm:SupplyChainTradeTransaction/ram:ApplicableHeaderTradeAgreement"


class TestBuildCiiXml:
    def test_xml_declaration(self, sample_metadata: InvoiceMetadata) -> None:
        assert build_cii_xml(sample_metadata).startswith(b"<?xml")

    def test_header(self, sample_metadata: InvoiceMetadata) -> None:
        root = parse(sample_metadata)

        assert text(root, "rsm:ExchangedDocument/ram:ID") == "RE-2024/001"
        assert text(root, "rsm:ExchangedDocument/ram:TypeCode") == "380"
        assert text(root, "rsm:ExchangedDocument/ram:IssueDateTime/udt:DateTimeString") == "20240315"
        assert (
            text(root, "rsm:ExchangedDocumentContext/ram:GuidelineSpecifiedDocumentContextParameter/ram:ID")
            == GUIDELINES["EN16931"]
        )

    def test_profile_guideline(self, sample_metadata: InvoiceMetadata) -> None:
        root = parse(sample_metadata, "extended")
        param = "rsm:ExchangedDocumentContext/ram:GuidelineSpecifiedDocumentContextParameter/ram:ID"
        assert text(root, param) == GUIDELINES["EXTENDED"]

    def test_unknown_profile(self, sample_metadata: InvoiceMetadata) -> None:
        with pytest.raises(ValueError, match="Unknown invoice profile"):
            build_cii_xml(sample_metadata, "XRECHNUNG")

    def test_line_items(self, sample_metadata: InvoiceMetadata) -> None:
        root = parse(sample_metadata)
        lines = root.findall("rsm:SupplyChainTradeTransaction/ram:IncludedSupplyChainTradeLineItem", NS)

        assert len(lines) == 2
        first = lines[0]
        assert text(first, "ram:AssociatedDocumentLineDocument/ram:LineID") == "1"
        assert text(first, "ram:SpecifiedTradeProduct/ram:Name") == "Consulting"
        quantity = first.find("ram:SpecifiedLineTradeDelivery/ram:BilledQuantity", NS)
        assert quantity.text == "2"
        assert quantity.get("unitCode") == "HUR"
        assert (
            text(first, "ram:SpecifiedLineTradeSettlement/ram:SpecifiedTradeSettlementLineMonetarySummation/ram:LineTotalAmount")
            == "200.00"
        )

    def test_parties(self, sample_metadata: InvoiceMetadata) -> None:
        root = parse(sample_metadata)
        seller = f"{AGREEMENT}/ram:SellerTradeParty"

        assert text(root, f"{seller}/ram:Name") == "Acme GmbH"
        assert text(root, f"{seller}/ram:PostalTradeAddress/ram:CountryID") == "DE"
        vat = root.find(f"{seller}/ram:SpecifiedTaxRegistration/ram:ID", NS)
        assert vat.text == "DE123456789"
        assert vat.get("schemeID") == "VA"
        assert text(root, f"{AGREEMENT}/ram:BuyerTradeParty/ram:PostalTradeAddress/ram:CityName") == "München"

    def test_totals(self, sample_metadata: InvoiceMetadata) -> None:
        root = parse(sample_metadata)

        assert text(root, f"{SUMMATION}/ram:LineTotalAmount") == "350.00"
        assert text(root, f"{SUMMATION}/ram:TaxTotalAmount") == "66.50"
        assert text(root, f"{SUMMATION}/ram:GrandTotalAmount") == "416.50"
        assert text(root, f"{SUMMATION}/ram:DuePayableAmount") == "416.50"
        assert root.find(f"{SUMMATION}/ram:TaxTotalAmount", NS).get("currencyID") == "EUR"

    def test_tax_groups(self, sample_metadata: InvoiceMetadata) -> None:
        items = (
            LineItem(description="Book", quantity=Decimal(1), unit_price=Decimal(100), tax_rate=Decimal(7)),
            LineItem(description="Pen", quantity=Decimal(1), unit_price=Decimal(100), tax_rate=Decimal(19)),
            LineItem(description="Export", quantity=Decimal(1), unit_price=Decimal(10), tax_rate=Decimal(0)),
        )
        root = parse(sample_metadata.model_copy(update={"items": items}))
        taxes = root.findall(f"{SETTLEMENT}/ram:ApplicableTradeTax", NS)

        assert [text(t, "ram:RateApplicablePercent") for t in taxes] == ["7.00", "19.00", "0.00"]
        assert [text(t, "ram:CalculatedAmount") for t in taxes] == ["7.00", "19.00", "0.00"]
        assert [text(t, "ram:CategoryCode") for t in taxes] == ["S", "S", "Z"]

    def test_payment_means(self, sample_metadata: InvoiceMetadata) -> None:
        root = parse(sample_metadata)
        means = f"{SETTLEMENT}/ram:SpecifiedTradeSettlementPaymentMeans"

        assert text(root, f"{means}/ram:TypeCode") == "58"
        assert text(root, f"{means}/ram:PayeePartyCreditorFinancialAccount/ram:IBANID") == "DE89370400440532013000"
        assert text(root, f"{means}/ram:PayeeSpecifiedCreditorFinancialInstitution/ram:BICID") == "COBADEFFXXX"

    def test_no_payment_means_without_bank(self, sample_metadata: InvoiceMetadata) -> None:
        root = parse(sample_metadata.model_copy(update={"bank_details": None}))
        assert root.find(f"{SETTLEMENT}/ram:SpecifiedTradeSettlementPaymentMeans", NS) is None

    def test_payment_terms(self, sample_metadata: InvoiceMetadata) -> None:
        root = parse(sample_metadata)
        terms = f"{SETTLEMENT}/ram:SpecifiedTradePaymentTerms"

        assert text(root, f"{terms}/ram:Description") == "30 days net"
        assert text(root, f"{terms}/ram:DueDateDateTime/udt:DateTimeString") == "20240414"

    def test_references(self, sample_metadata: InvoiceMetadata) -> None:
        metadata = sample_metadata.model_copy(
            update={"buyer_reference": "04011000-12345-67", "order_reference": "PO-77"}
        )
        root = parse(metadata)

        assert text(root, f"{AGREEMENT}/ram:BuyerReference") == "04011000-12345-67"
        assert text(root, f"{AGREEMENT}/ram:BuyerOrderReferencedDocument/ram:IssuerAssignedID") == "PO-77"

    @pytest.mark.parametrize(
        ("unit_price", "charge", "line_total"),
        [
            ("0.333", "0.333", "1.00"),
            ("100", "100.00", "300.00"),
            ("12.5", "12.50", "37.50"),
        ],
    )
    def test_unit_price_keeps_precision(
        self, sample_metadata: InvoiceMetadata, unit_price, charge, line_total
    ) -> None:
        item = LineItem(
            description="Screws", quantity=Decimal("3"),
            unit_price=Decimal(unit_price), tax_rate=Decimal("19"),
        )
        root = parse(sample_metadata.model_copy(update={"items": [item]}))
        line = root.find("rsm:SupplyChainTradeTransaction/ram:IncludedSupplyChainTradeLineItem", NS)

        price = "ram:SpecifiedLineTradeAgreement/ram:NetPriceProductTradePrice/ram:ChargeAmount"
        assert text(line, price) == charge
        assert (
            text(line, "ram:SpecifiedLineTradeSettlement/ram:SpecifiedTradeSettlementLineMonetarySummation/ram:LineTotalAmount")
            == line_total
        )
