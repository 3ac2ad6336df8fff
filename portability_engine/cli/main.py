"""
Main CLI entry point for the Portability Engine.

This module provides the ``portability`` command-line interface using
Click with Rich formatting: provider queries and comparison, export
formats, migration plans and one-shot exports.
"""

import asyncio
import json
import sys
from typing import Any, Optional, Tuple

import click
import yaml
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from portability_engine import __version__
from portability_engine.core.exceptions import PortabilityError
from portability_engine.engine import PortabilityEngine
from portability_engine.models.config import EngineSettings, StageDelays
from portability_engine.models.export import (
    CompressionType,
    EncryptionAlgorithm,
    ExportFormat,
    ExportStatus,
    NetworkMode,
)
from portability_engine.models.provider import CloudProvider
from portability_engine.utils.helpers import format_bytes, format_hours
from portability_engine.utils.logging import setup_logging

console = Console()

OUTPUT_FORMATS = ['table', 'json', 'yaml']

_RISK_STYLES = {"low": "green", "medium": "yellow", "high": "red"}


def _choices(enum_cls) -> click.Choice:
    return click.Choice([member.value for member in enum_cls])


def _emit(data: Any, output_format: str):
    """Write machine-readable output unwrapped so it stays parseable."""
    if output_format == 'json':
        click.echo(json.dumps(data, indent=2, default=str))
    else:
        click.echo(yaml.safe_dump(data, sort_keys=False), nl=False)


def _fail(message: str):
    console.print(f"[red]Error: {message}[/red]")
    sys.exit(1)


def _engine(ctx: click.Context, **overrides) -> PortabilityEngine:
    settings: EngineSettings = ctx.obj['settings']
    if overrides:
        settings = settings.model_copy(update=overrides)
    return PortabilityEngine(settings=settings)


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--config', '-c', type=click.Path(exists=True), help='Engine settings file (YAML or JSON)')
@click.pass_context
def main(ctx: click.Context, version: bool, verbose: bool, config: Optional[str]):
    """
    Platform Portability Engine

    Export platforms to provider-independent artifacts, compare hosting
    providers and plan migrations between them.
    """
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose

    if version:
        console.print(f"Portability Engine version {__version__}")
        sys.exit(0)

    try:
        settings = EngineSettings.from_file(config) if config else EngineSettings.from_env()
    except (PortabilityError, ValueError) as e:
        _fail(f"Invalid settings: {e}")
    ctx.obj['settings'] = settings

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_file=settings.log_file,
    )

    if ctx.invoked_subcommand is None:
        title = Text()
        title.append("Platform Portability Engine", style="bold blue")
        title.append(f"\n   Version {__version__}", style="dim cyan")
        console.print(Panel(title, border_style="blue", padding=(1, 2)))
        console.print("\n[yellow]Use --help to see available commands[/yellow]")


@main.command()
@click.option('--format', '-f', 'output_format', type=click.Choice(OUTPUT_FORMATS),
              default='table', help='Output format')
@click.pass_context
def providers(ctx: click.Context, output_format: str):
    """List supported hosting providers."""
    try:
        engine = _engine(ctx)
        catalog = engine.list_providers()
    except PortabilityError as e:
        _fail(e.message)

    if output_format != 'table':
        _emit([p.model_dump(mode='json') for p in catalog], output_format)
        return

    table = Table(title="Hosting Providers", box=box.ROUNDED, show_header=True, header_style="bold magenta")
    table.add_column("Type", style="cyan", no_wrap=True)
    table.add_column("Name", style="green")
    table.add_column("Monthly", justify="right", style="yellow")
    table.add_column("Capabilities", justify="right")
    table.add_column("Complexity")
    table.add_column("Offline", justify="center")

    for provider in catalog:
        table.add_row(
            provider.type.value,
            provider.name,
            f"{provider.cost_estimate.monthly:,.0f} {provider.cost_estimate.currency}",
            f"{provider.supported_capability_count}/{len(provider.capabilities)}",
            provider.migration_complexity.value,
            "✓" if provider.offline_support else "✗",
        )
    console.print(table)


@main.command()
@click.argument('provider_type', type=_choices(CloudProvider))
@click.option('--format', '-f', 'output_format', type=click.Choice(OUTPUT_FORMATS),
              default='table', help='Output format')
@click.pass_context
def provider(ctx: click.Context, provider_type: str, output_format: str):
    """Show one provider's capabilities, limitations and costs."""
    try:
        details = _engine(ctx).get_provider(provider_type)
    except PortabilityError as e:
        _fail(e.message)

    if output_format != 'table':
        _emit(details.model_dump(mode='json'), output_format)
        return

    table = Table(title=f"{details.name} capabilities", box=box.ROUNDED, header_style="bold magenta")
    table.add_column("Capability", style="cyan")
    table.add_column("Supported", justify="center")
    table.add_column("Alternative", style="dim")
    for capability in details.capabilities:
        table.add_row(
            capability.name,
            "[green]Yes[/green]" if capability.supported else "[red]No[/red]",
            capability.alternative or "",
        )
    console.print(table)

    if details.limitations:
        console.print("\n[bold]Limitations:[/bold]")
        for limitation in details.limitations:
            console.print(f"  • {limitation}")
    if details.certifications:
        console.print(f"\n[bold]Certifications:[/bold] {', '.join(details.certifications)}")
    console.print(
        f"\n[bold]Cost:[/bold] {details.cost_estimate.monthly:,.0f} "
        f"{details.cost_estimate.currency}/month"
    )


@main.command()
@click.argument('provider_types', nargs=-1, required=True, type=_choices(CloudProvider))
@click.option('--format', '-f', 'output_format', type=click.Choice(OUTPUT_FORMATS),
              default='table', help='Output format')
@click.pass_context
def compare(ctx: click.Context, provider_types: Tuple[str, ...], output_format: str):
    """Compare providers capability by capability."""
    try:
        comparison = _engine(ctx).compare_providers(provider_types)
    except PortabilityError as e:
        _fail(e.message)

    if output_format != 'table':
        _emit({
            "providers": [p.type.value for p in comparison.providers],
            "comparison_matrix": comparison.comparison_matrix,
            "recommended_provider": comparison.recommended_provider.value,
            "recommendation": comparison.recommendation,
        }, output_format)
        return

    columns = [p.type.value for p in comparison.providers]
    table = Table(title="Provider Comparison", box=box.ROUNDED, header_style="bold magenta")
    table.add_column("Capability", style="cyan")
    for column in columns:
        table.add_column(column, justify="center")
    for row in comparison.comparison_matrix:
        table.add_row(row["capability"], *(row[column] for column in columns))
    console.print(table)
    console.print(Panel(comparison.recommendation, title="Recommendation", border_style="green"))


@main.command()
@click.option('--format', '-f', 'output_format', type=click.Choice(OUTPUT_FORMATS),
              default='table', help='Output format')
@click.pass_context
def formats(ctx: click.Context, output_format: str):
    """List export formats."""
    try:
        descriptors = _engine(ctx).list_formats()
    except PortabilityError as e:
        _fail(e.message)

    if output_format != 'table':
        _emit([d.model_dump(mode='json') for d in descriptors], output_format)
        return

    table = Table(title="Export Formats", box=box.ROUNDED, header_style="bold magenta")
    table.add_column("Format", style="cyan", no_wrap=True)
    table.add_column("Name", style="green")
    table.add_column("Description", style="dim")
    for descriptor in descriptors:
        table.add_row(descriptor.format.value, descriptor.name, descriptor.description)
    console.print(table)


@main.command()
@click.argument('source', type=_choices(CloudProvider))
@click.argument('target', type=_choices(CloudProvider))
@click.option('--platform-id', default='platform', show_default=True, help='Platform to migrate')
@click.option('--tenant', default='cli', show_default=True, help='Tenant id')
@click.option('--format', '-f', 'output_format', type=click.Choice(OUTPUT_FORMATS),
              default='table', help='Output format')
@click.pass_context
def plan(ctx: click.Context, source: str, target: str, platform_id: str, tenant: str,
         output_format: str):
    """Build a migration plan from SOURCE to TARGET."""
    try:
        migration_plan = _engine(ctx).create_migration_plan(tenant, platform_id, source, target)
    except PortabilityError as e:
        _fail(e.message)

    if output_format != 'table':
        _emit(migration_plan.model_dump(mode='json'), output_format)
        return

    table = Table(
        title=f"Migration plan: {source} → {target}",
        box=box.ROUNDED,
        header_style="bold magenta"
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("Step", style="cyan")
    table.add_column("Duration", justify="right", style="yellow")
    table.add_column("Automated", justify="center")
    table.add_column("Rollback", justify="center")
    for step in migration_plan.steps:
        table.add_row(
            str(step.order),
            step.name,
            format_hours(step.duration),
            "✓" if step.automated else "✗",
            "✓" if step.rollbackable else "✗",
        )
    console.print(table)

    risk = migration_plan.risk_level.value
    summary = Text()
    summary.append(f"Estimated duration: {format_hours(migration_plan.estimated_duration)}\n")
    summary.append(f"Estimated cost: {migration_plan.estimated_cost:,.2f}\n")
    summary.append("Risk: ")
    summary.append(risk, style=f"bold {_RISK_STYLES[risk]}")
    console.print(Panel(summary, title=migration_plan.id, border_style="blue"))

    console.print("\n[bold]Rollback plan:[/bold]")
    for index, action in enumerate(migration_plan.rollback_plan, start=1):
        console.print(f"  {index}. {action}")


@main.command()
@click.argument('export_format', type=_choices(ExportFormat))
@click.argument('target', type=_choices(CloudProvider))
@click.option('--platform-id', default='platform', show_default=True, help='Platform to export')
@click.option('--platform-name', default='Platform Export', show_default=True)
@click.option('--platform-version', default='1.0.0', show_default=True)
@click.option('--network-mode', type=_choices(NetworkMode), default=NetworkMode.ONLINE.value,
              show_default=True)
@click.option('--compression', type=_choices(CompressionType), default=CompressionType.GZIP.value,
              show_default=True)
@click.option('--encryption', type=_choices(EncryptionAlgorithm),
              default=EncryptionAlgorithm.AES_256_GCM.value, show_default=True,
              help='Requires PORTABILITY_KEY unless "none"')
@click.option('--split-size', type=click.IntRange(min=1), help='Split the artifact into parts of this many bytes')
@click.option('--tenant', default='cli', show_default=True, help='Tenant id')
@click.option('--fast', is_flag=True, help='Skip simulated stage delays')
@click.option('--format', '-f', 'output_format', type=click.Choice(OUTPUT_FORMATS),
              default='table', help='Output format')
@click.pass_context
def export(ctx: click.Context, export_format: str, target: str, platform_id: str,
           platform_name: str, platform_version: str, network_mode: str, compression: str,
           encryption: str, split_size: Optional[int], tenant: str, fast: bool,
           output_format: str):
    """Export a platform as EXPORT_FORMAT for TARGET and wait for the result."""
    request = {
        "platform_id": platform_id,
        "platform_name": platform_name,
        "version": platform_version,
        "format": export_format,
        "target_provider": target,
        "network_mode": network_mode,
        "configuration": {
            "compression": compression,
            "encryption": encryption,
            "split_size": split_size,
        },
    }
    overrides = {"stage_delays": StageDelays(preparing=0, packaging=0, encrypting=0)} if fast else {}

    async def run():
        engine = _engine(ctx, **overrides)
        try:
            package = await engine.create_export_package(tenant, request)
            return await engine.wait_for_export(package.id)
        finally:
            await engine.shutdown()

    try:
        if output_format == 'table':
            with console.status(f"Exporting {platform_id} as {export_format}..."):
                package = asyncio.run(run())
        else:
            package = asyncio.run(run())
    except PortabilityError as e:
        _fail(e.message)

    if output_format != 'table':
        _emit(package.model_dump(mode='json'), output_format)
    elif package.status == ExportStatus.COMPLETED:
        details = Text()
        details.append(f"Export: {package.id}\n", style="bold")
        details.append(f"Size: {format_bytes(package.size)}\n")
        if package.part_count:
            details.append(f"Parts: {package.part_count}\n")
        details.append(f"Checksum: {package.checksum}\n")
        details.append(f"Download: {package.download_url}\n")
        details.append(f"Expires: {package.expires_at.isoformat()}")
        console.print(Panel(details, title="✅ Export completed", border_style="green"))
    else:
        console.print(Panel(
            package.error or "Export did not finish",
            title=f"❌ Export {package.status.value}",
            border_style="red"
        ))

    if package.status != ExportStatus.COMPLETED:
        sys.exit(1)


@main.command()
@click.option('--format', '-f', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def status(ctx: click.Context, output_format: str):
    """Show engine configuration and catalog status."""
    try:
        engine_status = _engine(ctx).get_status()
    except PortabilityError as e:
        _fail(e.message)

    if output_format == 'json':
        _emit(engine_status, output_format)
        return

    table = Table(title="Engine Status", box=box.ROUNDED, show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    for key, value in engine_status.items():
        table.add_row(key.replace("_", " "), str(value))
    console.print(table)


if __name__ == '__main__':
    main()
