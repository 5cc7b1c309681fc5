"""s2b-sourcing CLI using Typer."""

import logging
import os
from pathlib import Path

import typer
from dotenv import load_dotenv

from s2b_sourcing.cli.sourcing import check_cert, list_products, run_sourcing, vendors_app

# Load .env file from current directory or project root
_env_paths = [
    Path.cwd() / ".env",
    Path(__file__).parent.parent.parent / ".env",
]
for _env_path in _env_paths:
    if _env_path.exists():
        load_dotenv(_env_path)
        break

__version__ = "0.1.0"

app = typer.Typer(
    name="s2b-sourcing",
    help="s2b-sourcing - Turn vendor product pages into S2B registration records",
    add_completion=False,
)
app.add_typer(vendors_app, name="vendors")
app.command("run")(run_sourcing)
app.command("list")(list_products)
app.command("check-cert")(check_cert)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _check_service_config() -> None:
    """Check and display external service configuration status."""
    if os.environ.get("SOURCING_ACCOUNT_ID"):
        typer.echo("  Enrichment account: configured")
    else:
        typer.echo("  Enrichment account: Not configured")
        typer.echo("  Tip: Set SOURCING_ACCOUNT_ID in .env file")

    if os.environ.get("KC_AUTH_KEY"):
        typer.echo("  KC validation: configured")
    else:
        typer.echo("  KC validation: Not configured (all certificates will be flagged)")
        typer.echo("  Tip: Set KC_AUTH_KEY in .env file")

    typer.echo(f"  OCR: {os.environ.get('OCR_URL') or 'registry setting'}")


@app.command()
def version() -> None:
    """Show the s2b-sourcing version."""
    typer.echo(f"s2b-sourcing v{__version__}")


@app.command()
def check_config() -> None:
    """Check the current configuration status."""
    from s2b_sourcing.ingestion.registry import get_default_registry

    typer.echo("s2b-sourcing Configuration")
    typer.echo("=" * 40)

    env_found = False
    for _env_path in _env_paths:
        if _env_path.exists():
            typer.echo(f"  .env file: {_env_path}")
            env_found = True
            break
    if not env_found:
        typer.echo("  .env file: Not found")

    _check_service_config()

    registry = get_default_registry()
    config = registry.global_config
    typer.echo(f"  Vendors file: {registry.config_path or 'Not found'}")
    typer.echo(f"  Vendors: {len(registry.list_vendors())}")
    typer.echo(
        f"  Download root: {os.environ.get('SOURCING_DOWNLOAD_ROOT', config.download_root)}"
    )
    typer.echo(f"  Category workbook: {config.category_workbook or 'Not configured'}")
    typer.echo(f"  Margin rate: {registry.business.margin_rate}%")


if __name__ == "__main__":
    app()
