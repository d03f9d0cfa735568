"""Configuration management using pydantic-settings."""

import tomllib
from datetime import timedelta
from pathlib import Path
from typing import Self

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_UPLOAD_DIR = "/tmp/erechnung/uploads"
DEFAULT_OUTPUT_DIR = "/tmp/erechnung/output"
DEFAULT_INBOX = "~/Documents/E-Rechnung/Inbox"
DEFAULT_OUTBOX = "~/Documents/E-Rechnung/Outbox"
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
CONFIG_PATH = Path("~/.config/erechnung/config.toml").expanduser()


def _expand(v: str | Path) -> Path:
    return Path(v).expanduser()


class StorageConfig(BaseSettings):
    upload_dir: Path = Path(DEFAULT_UPLOAD_DIR)
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    cleanup_interval_minutes: int = 5
    file_retention_minutes: int = 30

    @field_validator("upload_dir", "output_dir", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return _expand(v)

    @property
    def cleanup_interval(self) -> timedelta:
        return timedelta(minutes=self.cleanup_interval_minutes)

    @property
    def retention(self) -> timedelta:
        return timedelta(minutes=self.file_retention_minutes)


class InvoiceConfig(BaseSettings):
    """E-invoice generation settings."""

    profile: str = "EN16931"
    version: str = "2.3"
    max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE
    validate_on_generation: bool = True
    ocrmypdf_path: str = "ocrmypdf"
    verapdf_path: str = "verapdf"


class SellerDefaults(BaseSettings):
    name: str | None = None
    vat_id: str | None = None
    street: str | None = None
    postal_code: str | None = None
    city: str | None = None
    country_code: str | None = None
    email: str | None = None
    phone: str | None = None

    @property
    def complete(self) -> bool:
        return all([self.name, self.street, self.postal_code, self.city, self.country_code])


class PaymentDefaults(BaseSettings):
    iban: str | None = None
    bic: str | None = None
    bank_name: str | None = None
    terms: str | None = None


class DefaultsConfig(BaseSettings):
    """Values filled into metadata files that omit them."""

    seller: SellerDefaults = SellerDefaults()
    payment: PaymentDefaults = PaymentDefaults()
    currency: str = "EUR"


class WatchConfig(BaseSettings):
    inbox: Path = _expand(DEFAULT_INBOX)
    outbox: Path = _expand(DEFAULT_OUTBOX)
    patterns: list[str] = ["*.pdf"]
    workers: int = 4

    @field_validator("inbox", "outbox", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return _expand(v)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ERECHNUNG_")

    storage: StorageConfig = StorageConfig()
    invoice: InvoiceConfig = InvoiceConfig()
    defaults: DefaultsConfig = DefaultsConfig()
    watch: WatchConfig = WatchConfig()

    @model_validator(mode="after")
    def ensure_dirs(self) -> Self:
        self.storage.upload_dir.mkdir(parents=True, exist_ok=True)
        self.storage.output_dir.mkdir(parents=True, exist_ok=True)
        return self


def load_settings(config_path: Path | None = None) -> Settings:
    """Load settings from TOML file, falling back to defaults."""
    path = config_path or CONFIG_PATH

    if path.exists():
        with open(path, "rb") as f:
            data = tomllib.load(f)

        storage = StorageConfig(**data.get("storage", {}))
        invoice = InvoiceConfig(**data.get("invoice", {}))
        defaults_data = data.get("defaults", {})
        defaults = DefaultsConfig(
            seller=SellerDefaults(**defaults_data.get("seller", {})),
            payment=PaymentDefaults(**defaults_data.get("payment", {})),
            currency=defaults_data.get("currency", "EUR"),
        )
        watch = WatchConfig(**data.get("watch", {}))
        return Settings(storage=storage, invoice=invoice, defaults=defaults, watch=watch)

    return Settings()
