"""Load invoice metadata from YAML sidecar files."""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .config import DefaultsConfig
from .domain.invoice import InvoiceMetadata

logger = logging.getLogger(__name__)


class MetadataError(ValueError):
    """Sidecar missing, unreadable or not valid invoice metadata."""


def sidecar_for(pdf_path: Path) -> Path:
    return pdf_path.with_suffix(".yaml")


def apply_defaults(data: dict[str, Any], defaults: DefaultsConfig) -> dict[str, Any]:
    """Fill seller, bank details, payment terms and currency from defaults.

    Values present in ``data`` always win.
    """
    merged = dict(data)
    seller = defaults.seller
    if "seller" not in merged and seller.complete:
        merged["seller"] = {
            "name": seller.name,
            "vat_id": seller.vat_id,
            "email": seller.email,
            "phone": seller.phone,
            "address": {
                "street": seller.street,
                "postal_code": seller.postal_code,
                "city": seller.city,
                "country_code": seller.country_code,
            },
        }

    payment = defaults.payment
    if "bank_details" not in merged and payment.iban:
        merged["bank_details"] = {
            "iban": payment.iban,
            "bic": payment.bic,
            "bank_name": payment.bank_name,
        }
    if "payment_terms" not in merged and payment.terms:
        merged["payment_terms"] = payment.terms

    merged.setdefault("currency", defaults.currency)
    return merged


def load_metadata(path: Path, defaults: DefaultsConfig | None = None) -> InvoiceMetadata:
    """Parse a YAML metadata file into InvoiceMetadata."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise MetadataError(f"Failed to read metadata {path.name}: {e}") from e

    if not isinstance(data, dict):
        raise MetadataError(f"Metadata {path.name} must be a mapping")

    if defaults is not None:
        data = apply_defaults(data, defaults)

    try:
        return InvoiceMetadata.model_validate(data)
    except ValidationError as e:
        raise MetadataError(f"Invalid metadata in {path.name}:\n{e}") from e
