"""UN/CEFACT Cross Industry Invoice (CII) XML generation."""

from datetime import date
from decimal import Decimal
from xml.etree import ElementTree as ET

from ...domain.invoice import InvoiceMetadata, LineItem, Party, round_amount

NS = {
    "rsm": "urn:un:unece:uncefact:data:standard:CrossIndustryInvoice:100",
    "ram": "urn:un:unece:uncefact:data:standard:ReusableAggregateBusinessInformationEntity:100",
    "qdt": "urn:un:unece:uncefact:data:standard:QualifiedDataType:100",
    "udt": "urn:un:unece:uncefact:data:standard:UnqualifiedDataType:100",
}

for prefix, uri in NS.items():
    ET.register_namespace(prefix, uri)

# Guideline identifiers per Factur-X / ZUGFeRD profile
GUIDELINES = {
    "BASIC": "urn:cen.eu:en16931:2017#compliant#urn:factur-x.eu:1p0:basic",
    "EN16931": "urn:cen.eu:en16931:2017",
    "EXTENDED": "urn:cen.eu:en16931:2017#conformant#urn:factur-x.eu:1p0:extended",
}

COMMERCIAL_INVOICE = "380"
SEPA_CREDIT_TRANSFER = "58"
DATE_FORMAT = "102"  # YYYYMMDD


def _tag(ns: str, name: str) -> str:
    return f"{{{NS[ns]}}}{name}"


def _sub(parent: ET.Element, name: str, text: str | None = None, **attrs: str) -> ET.Element:
    """Add a ram: child element."""
    elem = ET.SubElement(parent, _tag("ram", name), attrs)
    if text is not None:
        elem.text = text
    return elem


def _amount(value: Decimal) -> str:
    return f"{value:.2f}"


def _price(value: Decimal) -> str:
    # unit prices keep sub-cent precision; line totals are computed from it
    if value == round_amount(value):
        return _amount(value)
    return format(value.normalize(), "f")


def _quantity(value: Decimal) -> str:
    return format(value.normalize(), "f")


def _date(parent: ET.Element, name: str, value: date) -> None:
    elem = _sub(parent, name)
    ET.SubElement(elem, _tag("udt", "DateTimeString"), format=DATE_FORMAT).text = (
        value.strftime("%Y%m%d")
    )


def _tax_category(rate: Decimal) -> str:
    # S = standard rate, Z = zero rated
    return "S" if rate > 0 else "Z"


def _add_party(parent: ET.Element, name: str, party: Party) -> None:
    elem = _sub(parent, name)
    _sub(elem, "Name", party.name)

    if party.contact_name or party.phone or party.email:
        contact = _sub(elem, "DefinedTradeContact")
        if party.contact_name:
            _sub(contact, "PersonName", party.contact_name)
        if party.phone:
            phone = _sub(contact, "TelephoneUniversalCommunication")
            _sub(phone, "CompleteNumber", party.phone)
        if party.email:
            mail = _sub(contact, "EmailURIUniversalCommunication")
            _sub(mail, "URIID", party.email)

    address = _sub(elem, "PostalTradeAddress")
    _sub(address, "PostcodeCode", party.address.postal_code)
    _sub(address, "LineOne", party.address.street)
    _sub(address, "CityName", party.address.city)
    _sub(address, "CountryID", party.address.country_code)

    if party.email:
        uri = _sub(elem, "URIUniversalCommunication")
        _sub(uri, "URIID", party.email, schemeID="EM")

    if party.has_vat_id:
        registration = _sub(elem, "SpecifiedTaxRegistration")
        _sub(registration, "ID", party.vat_id, schemeID="VA")


def _add_line_item(parent: ET.Element, position: int, item: LineItem) -> None:
    line = _sub(parent, "IncludedSupplyChainTradeLineItem")

    document = _sub(line, "AssociatedDocumentLineDocument")
    _sub(document, "LineID", str(position))

    product = _sub(line, "SpecifiedTradeProduct")
    _sub(product, "Name", item.description)

    agreement = _sub(line, "SpecifiedLineTradeAgreement")
    price = _sub(agreement, "NetPriceProductTradePrice")
    _sub(price, "ChargeAmount", _price(item.unit_price))

    delivery = _sub(line, "SpecifiedLineTradeDelivery")
    _sub(delivery, "BilledQuantity", _quantity(item.quantity), unitCode=item.unit)

    settlement = _sub(line, "SpecifiedLineTradeSettlement")
    tax = _sub(settlement, "ApplicableTradeTax")
    _sub(tax, "TypeCode", "VAT")
    _sub(tax, "CategoryCode", _tax_category(item.tax_rate))
    _sub(tax, "RateApplicablePercent", _amount(item.tax_rate))
    summation = _sub(settlement, "SpecifiedTradeSettlementLineMonetarySummation")
    _sub(summation, "LineTotalAmount", _amount(item.net_amount))


def _add_settlement(parent: ET.Element, metadata: InvoiceMetadata) -> None:
    settlement = _sub(parent, "ApplicableHeaderTradeSettlement")
    _sub(settlement, "InvoiceCurrencyCode", metadata.currency)

    bank = metadata.bank_details
    if metadata.has_payment_details and bank is not None:
        means = _sub(settlement, "SpecifiedTradeSettlementPaymentMeans")
        _sub(means, "TypeCode", SEPA_CREDIT_TRANSFER)
        account = _sub(means, "PayeePartyCreditorFinancialAccount")
        _sub(account, "IBANID", bank.iban)
        if bank.account_holder:
            _sub(account, "AccountName", bank.account_holder)
        if bank.bic:
            institution = _sub(means, "PayeeSpecifiedCreditorFinancialInstitution")
            _sub(institution, "BICID", bank.bic)

    for group in metadata.tax_breakdown().values():
        tax = _sub(settlement, "ApplicableTradeTax")
        _sub(tax, "CalculatedAmount", _amount(group.tax_amount))
        _sub(tax, "TypeCode", "VAT")
        _sub(tax, "BasisAmount", _amount(group.net_amount))
        _sub(tax, "CategoryCode", _tax_category(group.rate))
        _sub(tax, "RateApplicablePercent", _amount(group.rate))

    if metadata.payment_terms or metadata.due_date:
        terms = _sub(settlement, "SpecifiedTradePaymentTerms")
        if metadata.payment_terms:
            _sub(terms, "Description", metadata.payment_terms)
        if metadata.due_date:
            _date(terms, "DueDateDateTime", metadata.due_date)

    summation = _sub(settlement, "SpecifiedTradeSettlementHeaderMonetarySummation")
    _sub(summation, "LineTotalAmount", _amount(metadata.total_net_amount))
    _sub(summation, "TaxBasisTotalAmount", _amount(metadata.total_net_amount))
    _sub(
        summation,
        "TaxTotalAmount",
        _amount(metadata.total_tax_amount),
        currencyID=metadata.currency,
    )
    _sub(summation, "GrandTotalAmount", _amount(metadata.total_gross_amount))
    _sub(summation, "DuePayableAmount", _amount(metadata.total_gross_amount))


def build_cii_xml(metadata: InvoiceMetadata, profile: str = "EN16931") -> bytes:
    """Build the CII XML document for an invoice.

    The issue date doubles as delivery date.
    """
    guideline = GUIDELINES.get(profile.upper())
    if guideline is None:
        raise ValueError(f"Unknown invoice profile: {profile}")

    root = ET.Element(_tag("rsm", "CrossIndustryInvoice"))

    context = ET.SubElement(root, _tag("rsm", "ExchangedDocumentContext"))
    parameter = _sub(context, "GuidelineSpecifiedDocumentContextParameter")
    _sub(parameter, "ID", guideline)

    document = ET.SubElement(root, _tag("rsm", "ExchangedDocument"))
    _sub(document, "ID", metadata.invoice_number)
    _sub(document, "TypeCode", COMMERCIAL_INVOICE)
    _date(document, "IssueDateTime", metadata.issue_date)
    if metadata.notes:
        note = _sub(document, "IncludedNote")
        _sub(note, "Content", metadata.notes)

    transaction = ET.SubElement(root, _tag("rsm", "SupplyChainTradeTransaction"))
    for position, item in enumerate(metadata.items, start=1):
        _add_line_item(transaction, position, item)

    agreement = _sub(transaction, "ApplicableHeaderTradeAgreement")
    if metadata.buyer_reference:
        _sub(agreement, "BuyerReference", metadata.buyer_reference)
    _add_party(agreement, "SellerTradeParty", metadata.seller)
    _add_party(agreement, "BuyerTradeParty", metadata.buyer)
    if metadata.order_reference:
        order = _sub(agreement, "BuyerOrderReferencedDocument")
        _sub(order, "IssuerAssignedID", metadata.order_reference)

    delivery = _sub(transaction, "ApplicableHeaderTradeDelivery")
    event = _sub(delivery, "ActualDeliverySupplyChainEvent")
    _date(event, "OccurrenceDateTime", metadata.issue_date)

    _add_settlement(transaction, metadata)

    return ET.tostring(root, encoding="UTF-8", xml_declaration=True)
