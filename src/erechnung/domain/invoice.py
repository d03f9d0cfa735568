"""Invoice value models and amount aggregation.

Amounts are ``Decimal`` throughout. Line amounts are rounded half-up to two
decimals per item; totals and tax groups sum the already-rounded item
amounts and round the sum again.
"""

import re
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

CENT = Decimal("0.01")
HUNDRED = Decimal(100)

# UN/ECE Recommendation 20 unit codes
UNIT_PIECE = "C62"
UNIT_HOUR = "HUR"
UNIT_DAY = "DAY"
UNIT_KILOGRAM = "KGM"
UNIT_METER = "MTR"
UNIT_LITER = "LTR"

_WHITESPACE = re.compile(r"\s+")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def round_amount(value: Decimal) -> Decimal:
    """Round to two decimals, half-up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _compact_upper(value: object) -> object:
    if isinstance(value, str):
        return _WHITESPACE.sub("", value).upper()
    return value


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class Address(_Frozen):
    street: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    postal_code: str = Field(min_length=1, max_length=20)
    country_code: str = Field(min_length=2, max_length=2)

    @field_validator("country_code", mode="before")
    @classmethod
    def upper_country(cls, v: object) -> object:
        return v.strip().upper() if isinstance(v, str) else v

    @property
    def formatted(self) -> str:
        return f"{self.street}, {self.postal_code} {self.city}, {self.country_code}"


class Party(_Frozen):
    """Seller or buyer of an invoice."""

    name: str = Field(min_length=1, max_length=255)
    address: Address
    vat_id: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    contact_name: str | None = Field(default=None, max_length=100)

    @field_validator("vat_id", mode="before")
    @classmethod
    def normalize_vat_id(cls, v: object) -> object:
        return _compact_upper(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str | None) -> str | None:
        if v and not _EMAIL.match(v):
            raise ValueError(f"Invalid email address: {v}")
        return v or None

    @property
    def has_vat_id(self) -> bool:
        return bool(self.vat_id)


class BankDetails(_Frozen):
    iban: str = Field(pattern=r"^[A-Z]{2}[0-9]{2}[A-Z0-9]{4,30}$")
    bic: str | None = Field(default=None, pattern=r"^[A-Z]{6}[A-Z0-9]{2,5}$")
    bank_name: str | None = Field(default=None, max_length=100)
    account_holder: str | None = Field(default=None, max_length=100)

    @field_validator("iban", "bic", mode="before")
    @classmethod
    def normalize_codes(cls, v: object) -> object:
        v = _compact_upper(v)
        return v or None

    @property
    def formatted_iban(self) -> str:
        """IBAN in blocks of four characters."""
        return " ".join(self.iban[i : i + 4] for i in range(0, len(self.iban), 4))


class LineItem(_Frozen):
    """A single invoice position."""

    description: str = Field(min_length=1, max_length=500)
    quantity: Decimal = Field(ge=Decimal("0.001"))
    unit_price: Decimal = Field(ge=0)
    tax_rate: Decimal = Field(ge=0)
    unit: str = Field(default=UNIT_PIECE, min_length=1, max_length=10)

    @property
    def net_amount(self) -> Decimal:
        return round_amount(self.quantity * self.unit_price)

    @property
    def tax_amount(self) -> Decimal:
        return round_amount(self.net_amount * self.tax_rate / HUNDRED)

    @property
    def gross_amount(self) -> Decimal:
        return self.net_amount + self.tax_amount


@dataclass(frozen=True)
class TaxGroup:
    """Net and tax amounts summed over all items sharing one tax rate."""

    rate: Decimal
    net_amount: Decimal
    tax_amount: Decimal

    @property
    def gross_amount(self) -> Decimal:
        return self.net_amount + self.tax_amount


class InvoiceMetadata(_Frozen):
    """Complete metadata of an EN 16931 e-invoice."""

    invoice_number: str = Field(min_length=1, max_length=50)
    issue_date: date
    due_date: date | None = None
    seller: Party
    buyer: Party
    items: tuple[LineItem, ...] = Field(min_length=1)
    bank_details: BankDetails | None = None
    payment_terms: str | None = Field(default=None, max_length=500)
    notes: str | None = Field(default=None, max_length=1000)
    currency: str = Field(default="EUR", pattern=r"^[A-Z]{3}$")
    buyer_reference: str | None = Field(default=None, max_length=50)
    order_reference: str | None = Field(default=None, max_length=50)

    @field_validator("currency", mode="before")
    @classmethod
    def upper_currency(cls, v: object) -> object:
        return v.strip().upper() if isinstance(v, str) else v

    @property
    def total_net_amount(self) -> Decimal:
        return round_amount(sum((i.net_amount for i in self.items), Decimal(0)))

    @property
    def total_tax_amount(self) -> Decimal:
        return round_amount(sum((i.tax_amount for i in self.items), Decimal(0)))

    @property
    def total_gross_amount(self) -> Decimal:
        return self.total_net_amount + self.total_tax_amount

    @property
    def has_payment_details(self) -> bool:
        return self.bank_details is not None and bool(self.bank_details.iban)

    def tax_breakdown(self) -> dict[Decimal, TaxGroup]:
        """Group items by tax rate, in order of first appearance.

        Rates are keyed by numeric value, so ``19`` and ``19.00`` share a group.
        """
        net: dict[Decimal, Decimal] = {}
        tax: dict[Decimal, Decimal] = {}
        for item in self.items:
            net[item.tax_rate] = net.get(item.tax_rate, Decimal(0)) + item.net_amount
            tax[item.tax_rate] = tax.get(item.tax_rate, Decimal(0)) + item.tax_amount
        return {
            rate: TaxGroup(rate, round_amount(net[rate]), round_amount(tax[rate]))
            for rate in net
        }

    def net_amounts_by_rate(self) -> dict[Decimal, Decimal]:
        return {r: g.net_amount for r, g in self.tax_breakdown().items()}

    def tax_amounts_by_rate(self) -> dict[Decimal, Decimal]:
        return {r: g.tax_amount for r, g in self.tax_breakdown().items()}
