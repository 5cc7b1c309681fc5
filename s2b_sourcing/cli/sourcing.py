"""
Sourcing CLI Commands
=====================

CLI commands for running the sourcing pipeline and inspecting vendors.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

import httpx
import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from s2b_sourcing.core.enums import CertBucket, OptionHandling
from s2b_sourcing.core.errors import (
    CertificationValidationError,
    LoginRequiredError,
    UnsupportedSourceError,
)
from s2b_sourcing.ingestion.adapters import ListEntry, get_adapter_info, list_adapters
from s2b_sourcing.ingestion.browser import PlaywrightDocument
from s2b_sourcing.ingestion.pipeline import BatchResult, SourcingPipeline
from s2b_sourcing.ingestion.registry import VendorRegistry, get_default_registry
from s2b_sourcing.services.certification import (
    CertificationAuthority,
    CertificationDetail,
    classify_category,
    is_broadcasting_number,
)
from s2b_sourcing.services.export_service import ExportService

console = Console()
vendors_app = typer.Typer(help="Vendor configuration commands")


async def _run_pipeline(
    registry: VendorRegistry,
    urls: list[str],
    margin: float | None,
    option_handling: OptionHandling | None,
    headless: bool,
    profile_dir: Path | None,
) -> BatchResult:
    config = registry.global_config
    async with PlaywrightDocument.launch(
        headless=headless, user_data_dir=profile_dir, user_agent=config.user_agent
    ) as doc:
        async with httpx.AsyncClient(timeout=config.request_timeout) as client:
            pipeline = SourcingPipeline.from_registry(
                doc,
                registry,
                client=client,
                margin_rate=margin,
                option_handling=option_handling,
            )
            return await pipeline.run(urls)


async def _collect_list(
    registry: VendorRegistry, url: str, headless: bool, profile_dir: Path | None
) -> list[ListEntry]:
    async with PlaywrightDocument.launch(
        headless=headless,
        user_data_dir=profile_dir,
        user_agent=registry.global_config.user_agent,
    ) as doc:
        async with httpx.AsyncClient(timeout=registry.global_config.request_timeout) as client:
            pipeline = SourcingPipeline.from_registry(doc, registry, client=client)
            return await pipeline.collect_list(url)


def run_sourcing(
    urls: List[str] = typer.Argument(..., help="Product URLs to source"),
    margin: Optional[float] = typer.Option(None, "--margin", "-m", help="Margin rate in percent"),
    option_handling: Optional[OptionHandling] = typer.Option(
        None, "--option-handling", help="split: one record per option, single: one record"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write records to a .json or .csv file"
    ),
    headless: bool = typer.Option(True, "--headless/--headed", help="Run the browser headless"),
    profile_dir: Optional[Path] = typer.Option(
        None, "--profile-dir", help="Persistent browser profile (keeps vendor logins)"
    ),
) -> None:
    """
    Source products and build registration records.

    Examples:
        s2b-sourcing run https://domeggook.com/12345678 --margin 25
        s2b-sourcing run URL1 URL2 --option-handling single -o records.csv
    """
    registry = get_default_registry()
    rprint(f"\n[bold]Sourcing {len(urls)} URL(s)[/bold]")

    try:
        with console.status("[bold blue]Sourcing...[/bold blue]"):
            result = asyncio.run(
                _run_pipeline(registry, urls, margin, option_handling, headless, profile_dir)
            )
    except LoginRequiredError as e:
        rprint(f"[red]Login required:[/red] {e}")
        rprint("\nRun again with --headed --profile-dir and sign in to the vendor site.")
        raise typer.Exit(1)
    except UnsupportedSourceError as e:
        rprint(f"[red]Error:[/red] {e}")
        rprint("\nSupported vendors:")
        for vendor in registry.list_vendors():
            rprint(f"  • {vendor.name} ({', '.join(vendor.hosts)})")
        raise typer.Exit(1)

    _display_batch_result(result)

    if output is not None and result.records:
        path = ExportService().write(result.records, output)
        rprint(f"\n[green]Wrote {len(result.records)} record(s) to {path}[/green]")

    if result.failed and not result.succeeded:
        raise typer.Exit(1)


def list_products(
    url: str = typer.Argument(..., help="Listing page URL"),
    headless: bool = typer.Option(True, "--headless/--headed", help="Run the browser headless"),
    profile_dir: Optional[Path] = typer.Option(None, "--profile-dir", help="Persistent browser profile"),
) -> None:
    """
    List the products of a vendor listing page.

    Examples:
        s2b-sourcing list "https://www.coupang.com/np/search?q=pencil"
    """
    registry = get_default_registry()
    try:
        with console.status("[bold blue]Collecting...[/bold blue]"):
            entries = asyncio.run(_collect_list(registry, url, headless, profile_dir))
    except (LoginRequiredError, UnsupportedSourceError) as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not entries:
        rprint("[yellow]No products found[/yellow]")
        return

    table = Table(title=f"Products ({len(entries)})")
    table.add_column("Name", style="bold")
    table.add_column("Price", justify="right")
    table.add_column("URL")

    for entry in entries:
        price = f"{entry.price:,}" if entry.price is not None else "-"
        table.add_row(entry.name, price, entry.url)

    console.print(table)


def check_cert(
    number: str = typer.Argument(..., help="KC certification number"),
) -> None:
    """
    Validate a KC certification number.

    Requires KC_AUTH_KEY in the environment.

    Examples:
        s2b-sourcing check-cert CB063R1234-5001
    """
    registry = get_default_registry()
    authority = CertificationAuthority.from_config(registry.global_config)

    try:
        detail: CertificationDetail = asyncio.run(authority.validate(number))
    except CertificationValidationError as e:
        rprint(f"[red]Invalid:[/red] {number}")
        rprint(f"  Status: {e.status_text}")
        if e.code is not None:
            rprint(f"  Code: {e.code}")
        raise typer.Exit(1)

    if is_broadcasting_number(number):
        bucket = CertBucket.BROADCASTING
    else:
        bucket = classify_category(detail.category_name)

    rprint(f"\n[green]Valid:[/green] {detail.cert_number}")
    rprint(f"  State: {detail.cert_state}")
    rprint(f"  Category: {detail.category_name or '-'}")
    rprint(f"  Product: {detail.product_name or '-'}")
    rprint(f"  Maker: {detail.maker_name or '-'}")
    rprint(f"  Bucket: {bucket.value}")


# Vendors subcommands


@vendors_app.command("list")
def list_vendors() -> None:
    """
    List configured vendors.

    Examples:
        s2b-sourcing vendors list
    """
    registry = get_default_registry()
    vendors = registry.list_vendors()

    if not vendors:
        rprint("[yellow]No vendors configured[/yellow]")
        rprint("\nSet VENDORS_CONFIG_PATH to a vendors.yaml file")
        return

    table = Table(title="Vendors")
    table.add_column("Key", style="bold")
    table.add_column("Name")
    table.add_column("Hosts")
    table.add_column("Adapter")
    table.add_column("Prefix")
    table.add_column("Throttle")

    for vendor in vendors:
        throttle = "[yellow]yes[/yellow]" if vendor.throttle else "no"
        table.add_row(
            vendor.key,
            vendor.name,
            ", ".join(vendor.hosts),
            vendor.adapter,
            vendor.file_prefix,
            throttle,
        )

    console.print(table)


@vendors_app.command("show")
def show_vendor(
    key: str = typer.Argument(..., help="Vendor key"),
) -> None:
    """
    Show detailed information about a vendor.

    Examples:
        s2b-sourcing vendors show domeggook
    """
    registry = get_default_registry()
    vendor = registry.get_vendor(key)

    if vendor is None:
        rprint(f"[red]Error:[/red] Vendor '{key}' not found")
        raise typer.Exit(1)

    rprint(f"\n[bold]Vendor: {vendor.name}[/bold] ({vendor.key})")
    rprint(f"  Hosts: {', '.join(vendor.hosts)}")
    rprint(f"  Origin: {vendor.origin}")
    rprint(f"  File prefix: {vendor.file_prefix}")
    rprint(f"  Category sheet: {vendor.category_sheet}")
    rprint(f"  Detail image: {vendor.detail_strategy.value}")
    if vendor.fallback_manufacturer:
        rprint(f"  Fallback manufacturer: {vendor.fallback_manufacturer}")

    if vendor.price_chain:
        rprint("\n[bold]Price chain:[/bold]")
        for i, candidate in enumerate(vendor.price_chain, 1):
            rprint(f"  {i}. {candidate.label or candidate.mode}: {candidate.locator}")

    if vendor.option_locators:
        rprint(f"\n[bold]Option axes:[/bold] {len(vendor.option_locators)}")

    adapter_info = get_adapter_info(vendor.adapter)
    if adapter_info:
        rprint("\n[bold]Adapter Info:[/bold]")
        rprint(f"  Name: {adapter_info['name']}")
        rprint(f"  Version: {adapter_info['version']}")
        rprint(f"  Class: {adapter_info['class']}")
        if adapter_info["description"]:
            rprint(f"  Description: {adapter_info['description']}")


@vendors_app.command("adapters")
def list_vendor_adapters() -> None:
    """
    List available adapters.

    Examples:
        s2b-sourcing vendors adapters
    """
    table = Table(title="Available Adapters")
    table.add_column("Name", style="bold")
    table.add_column("Version")
    table.add_column("Class")
    table.add_column("Description")

    for adapter_name in list_adapters():
        info = get_adapter_info(adapter_name)
        if info:
            table.add_row(info["name"], info["version"], info["class"], info["description"])

    console.print(table)


def _display_batch_result(result: BatchResult) -> None:
    """Display batch result in a formatted table."""
    table = Table(title="Sourcing Results")
    table.add_column("URL")
    table.add_column("Vendor")
    table.add_column("Status")
    table.add_column("Message")

    for item in result.items:
        status = "[green]ok[/green]" if item.success else "[red]failed[/red]"
        table.add_row(item.url, item.vendor, status, item.message)

    console.print(table)

    rprint(f"\n[bold]Statistics:[/bold]")
    rprint(f"  Succeeded: {result.succeeded}")
    rprint(f"  Failed: {result.failed}")
    rprint(f"  Records: {len(result.records)}")
    if result.duration_seconds:
        rprint(f"  Duration: {result.duration_seconds:.1f}s")
    if result.cancelled:
        rprint("  [yellow]Cancelled before all URLs were processed[/yellow]")

    issues = [r for r in result.records if r.cert_issue]
    if issues:
        rprint(f"\n[bold yellow]Certification issues ({len(issues)}):[/bold yellow]")
        for record in issues[:10]:
            rprint(f"  • {record.item_name}: {record.cert_issues_text}")
