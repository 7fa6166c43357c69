#!/usr/bin/env python3
"""
Ollama Model Optimizer
Main entry point with CLI interface
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from model_optimizer import ModelSelector
from model_optimizer.catalog import ModelCatalog, export_results
from model_optimizer.config import load_settings
from model_optimizer.exceptions import InstallerUnavailable, ModelOptimizerError
from model_optimizer.hardware import ResourceProfile, get_probe
from model_optimizer.matcher import match_catalog
from model_optimizer.modelfile import write_modelfile
from model_optimizer.registry import RegistryClient

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)]
)
logger = logging.getLogger(__name__)


def _fail(ctx, console: Console, message: str) -> None:
    console.print(f"[red]❌ {message}[/red]")
    if ctx.obj['verbose']:
        logger.exception("Detailed error information")
    sys.exit(1)


def _load_catalog(ctx) -> ModelCatalog:
    return ModelCatalog(ctx.obj['settings'].catalog_path)


@click.group(invoke_without_command=True)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--catalog', 'catalog_file', type=click.Path(exists=True, dir_okay=False),
              help='Path to a models.csv catalog override')
@click.option('--config', 'config_file', type=click.Path(dir_okay=False),
              help='Path to config.json')
@click.pass_context
def cli(ctx, verbose: bool, catalog_file: Optional[str], config_file: Optional[str]):
    """Ollama Model Optimizer - pick a coding model that fits your hardware"""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose

    try:
        settings = load_settings(Path(config_file) if config_file else None)
    except ModelOptimizerError as e:
        _fail(ctx, Console(), f"Configuration error: {e}")
    if catalog_file:
        settings.catalog_file = catalog_file
    ctx.obj['settings'] = settings

    if ctx.invoked_subcommand is None:
        ctx.invoke(interactive)


@cli.command()
@click.pass_context
def interactive(ctx):
    """Run the interactive optimizer (default)"""
    console = Console()

    try:
        selector = ModelSelector(catalog=_load_catalog(ctx), settings=ctx.obj['settings'], console=console)
        asyncio.run(selector.run_interactive())
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user.[/yellow]")
        sys.exit(0)
    except InstallerUnavailable as e:
        _fail(ctx, console, str(e))
    except ModelOptimizerError as e:
        _fail(ctx, console, f"Error: {e}")


@cli.command()
@click.pass_context
def hardware(ctx):
    """Display detected hardware and the memory budget for models"""
    console = Console()

    try:
        selector = ModelSelector(catalog=ModelCatalog(), settings=ctx.obj['settings'], console=console)
        asyncio.run(selector.detect_hardware())
        selector.display_hardware_info()
        selector.display_resources()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user.[/yellow]")
        sys.exit(0)
    except (ModelOptimizerError, OSError) as e:
        _fail(ctx, console, f"Hardware detection failed: {e}")


@cli.command()
@click.pass_context
def models(ctx):
    """List the model catalog"""
    console = Console()

    try:
        catalog = _load_catalog(ctx)
    except ModelOptimizerError as e:
        _fail(ctx, console, f"Error loading catalog: {e}")

    table = Table(title=f"Model Catalog ({catalog.source}, {len(catalog)} models)")
    table.add_column("Model", style="cyan")
    table.add_column("Min", style="yellow", justify="right")
    table.add_column("Rec", style="yellow", justify="right")
    table.add_column("Context", style="blue", justify="right")
    table.add_column("Description", style="white")

    for model in catalog:
        table.add_row(
            model.name,
            f"{model.min_gb}GB",
            f"{model.rec_gb}GB",
            f"{model.context:,}",
            model.description,
        )
    console.print(table)

    stats = catalog.stats()
    console.print(f"Total models: {stats['total']}")
    console.print(f"Small (≤4GB): {stats['small']} models")
    console.print(f"Medium (4-12GB): {stats['medium']} models")
    console.print(f"Large (>12GB): {stats['large']} models")


@cli.command()
@click.option('--ram', type=click.IntRange(min=0), help='Total RAM in GB instead of probing')
@click.option('--vram', type=click.IntRange(min=0), help='GPU memory in GB instead of probing')
@click.option('--unified/--discrete', default=False, help='Treat RAM and VRAM as one pool (with --ram)')
@click.option('--export', 'export_format', type=click.Choice(['json', 'csv', 'yaml']),
              help='Print the results in a machine readable format')
@click.pass_context
def recommend(ctx, ram: Optional[int], vram: Optional[int], unified: bool, export_format: Optional[str]):
    """Show which catalog models fit without installing anything"""
    console = Console()

    try:
        catalog = _load_catalog(ctx)
        selector = ModelSelector(catalog=catalog, settings=ctx.obj['settings'], console=console)

        if ram is not None:
            selector.profile = ResourceProfile(
                total_ram_gb=ram,
                vram_gb=ram if vram is None else vram,
                is_unified_memory=unified,
            )
        else:
            asyncio.run(selector.detect_hardware())
            if vram is not None:
                selector.profile = ResourceProfile(
                    total_ram_gb=selector.profile.total_ram_gb,
                    vram_gb=vram,
                    is_unified_memory=False,
                )

        match = selector.match()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user.[/yellow]")
        sys.exit(0)
    except (ModelOptimizerError, OSError) as e:
        _fail(ctx, console, f"Error getting recommendations: {e}")

    if export_format:
        click.echo(export_results(match, export_format))
        return

    selector.display_resources()
    selector.display_recommendations(match)


@cli.command()
@click.argument('model')
@click.option('--context', 'context_size', type=click.IntRange(min=1), default=16384, show_default=True,
              help='Context window (num_ctx) in tokens')
@click.option('--output', type=click.Path(dir_okay=False), help='Output file')
@click.pass_context
def modelfile(ctx, model: str, context_size: int, output: Optional[str]):
    """Write an optimized Modelfile for MODEL"""
    console = Console()
    path = Path(output or ctx.obj['settings'].modelfile_name)

    try:
        write_modelfile(model, context_size, path)
    except OSError as e:
        _fail(ctx, console, f"Failed to write Modelfile: {e}")

    console.print(f"[green]Created optimized Modelfile: {path}[/green]")
    console.print(f"To use: ollama create my-optimized-model -f {path}")


@cli.command()
@click.option('--output', type=click.Path(dir_okay=False), default='models.csv', show_default=True)
@click.option('--check-registry', is_flag=True, help='Check that each model family is listed on ollama.com')
@click.pass_context
def refresh(ctx, output: str, check_registry: bool):
    """Write the model catalog to a CSV file that can be edited and passed to --catalog"""
    console = Console()

    try:
        catalog = _load_catalog(ctx)
    except ModelOptimizerError as e:
        _fail(ctx, console, f"Error loading catalog: {e}")

    if check_registry:
        client = RegistryClient(ctx.obj['settings'].registry_url)
        console.print("[yellow]Checking model families...[/yellow]")
        for family, found in client.check_all(catalog.families()).items():
            mark = "[green]✓[/green]" if found else "[red]✗[/red]"
            console.print(f"  {mark} {family}")

    try:
        path = catalog.write_csv(Path(output))
    except OSError as e:
        _fail(ctx, console, f"Failed to write catalog: {e}")

    console.print(f"[green]✓ Created {path} with {len(catalog)} models[/green]")
    console.print(f"Use it with: model-optimizer --catalog {path}")


@cli.command()
def version():
    """Show version information"""
    console = Console()

    from model_optimizer import __version__
    console.print(f"[cyan]Ollama Model Optimizer v{__version__}[/cyan]")
    console.print(f"[dim]Python {sys.version.split()[0]}[/dim]")


if __name__ == '__main__':
    cli()
