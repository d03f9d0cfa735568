"""CLI entry point for erechnung."""

import logging
import sys
from pathlib import Path

import click

from .adapters.validation import VeraPdfAdapter
from .config import load_settings
from .domain.invoice import InvoiceMetadata
from .domain.models import Upload, ValidationResult
from .domain.sessions import PDF_CONTENT_TYPE
from .domain.status import Completed, describe
from .errors import InvoiceToolError
from .sidecar import MetadataError, load_metadata
from .watcher import create_invoice_service, run_watcher

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def format_validation(result: ValidationResult) -> list[str]:
    """Render a validation result as output lines."""
    state = "valid" if result.valid else "invalid"
    lines = [f"validation: {state} ({result.profile_name}, {result.elapsed_ms} ms)"]
    for error in result.errors:
        lines.append(f"  error [{error.rule_id}] {error.description}")
        if error.context:
            lines.append(f"    at {error.context}")
    for warning in result.warnings:
        lines.append(f"  warning [{warning.rule_id}] {warning.message}")
    return lines


def format_totals(metadata: InvoiceMetadata) -> list[str]:
    """Render line amounts, tax breakdown and totals as output lines."""
    currency = metadata.currency
    lines = [f"invoice: {metadata.invoice_number} ({metadata.issue_date.isoformat()})"]
    for position, item in enumerate(metadata.items, start=1):
        lines.append(
            f"  {position}. {item.description}: {item.quantity} {item.unit} x "
            f"{item.unit_price} = {item.net_amount} + {item.tax_rate}% "
            f"{item.tax_amount} = {item.gross_amount} {currency}"
        )
    for group in metadata.tax_breakdown().values():
        lines.append(
            f"tax {group.rate}%: net {group.net_amount}, tax {group.tax_amount} {currency}"
        )
    lines.append(f"net: {metadata.total_net_amount} {currency}")
    lines.append(f"tax: {metadata.total_tax_amount} {currency}")
    lines.append(f"gross: {metadata.total_gross_amount} {currency}")
    return lines


def _read_metadata(path: Path, ctx: click.Context) -> InvoiceMetadata:
    settings = load_settings(ctx.obj["config_path"])
    try:
        return load_metadata(path, settings.defaults)
    except MetadataError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("-c", "--config", type=click.Path(exists=True), help="Config file path")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config: str | None) -> None:
    """E-Rechnung - embed ZUGFeRD / Factur-X invoice data into PDFs."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else None


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-m", "--metadata", "metadata_path", required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Invoice metadata (YAML)",
)
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output file or directory")
@click.option("--no-validate", is_flag=True, help="Skip PDF/A-3 validation")
@click.pass_context
def convert(
    ctx: click.Context,
    file: Path,
    metadata_path: Path,
    output: Path | None,
    no_validate: bool,
) -> None:
    """Create an e-invoice from a PDF and its metadata."""
    settings = load_settings(ctx.obj["config_path"])
    metadata = _read_metadata(metadata_path, ctx)

    service = create_invoice_service(settings)
    if no_validate:
        service.validate_on_generation = False

    try:
        session_id = service.create_session(
            Upload(file.name, file.read_bytes(), PDF_CONTENT_TYPE)
        )
        try:
            status = service.generate(session_id, metadata)
            click.echo(f"status: {describe(status)}")

            if not isinstance(status, Completed):
                if status.error_details:
                    click.echo(f"details: {status.error_details}", err=True)
                sys.exit(1)

            for line in format_validation(status.validation):
                click.echo(line)

            name = service.download_filename(session_id)
            if output is None:
                dest = file.parent / name
            elif output.is_dir():
                dest = output / name
            else:
                dest = output
            dest.write_bytes(service.download(session_id))
            click.echo(f"output: {dest}")
        finally:
            service.cleanup(session_id)
    except InvoiceToolError as e:
        raise click.ClickException(f"{e.code}: {e}") from e


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def validate(ctx: click.Context, file: Path) -> None:
    """Check PDF/A-3B conformance of a PDF."""
    settings = load_settings(ctx.obj["config_path"])
    validator = VeraPdfAdapter(settings.invoice.verapdf_path)

    try:
        result = validator.validate(file)
    except InvoiceToolError as e:
        raise click.ClickException(f"{e.code}: {e}") from e

    for line in format_validation(result):
        click.echo(line)
    if not result.valid:
        sys.exit(1)


@cli.command()
@click.argument("metadata_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def totals(ctx: click.Context, metadata_path: Path) -> None:
    """Show line amounts, tax breakdown and totals of a metadata file."""
    metadata = _read_metadata(metadata_path, ctx)
    for line in format_totals(metadata):
        click.echo(line)


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Run the inbox watcher daemon."""
    settings = load_settings(ctx.obj["config_path"])
    run_watcher(settings)


if __name__ == "__main__":
    cli()
