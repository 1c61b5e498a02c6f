"""Command-line interface for thesis assets."""

import json
from pathlib import Path

import click
import structlog
from rich.console import Console
from rich.table import Table

from . import __version__
from .assets.latex import latex_reference
from .assets.manager import AssetRegistrar
from .utils.config import get_settings
from .utils.errors import AssetError
from .utils.logging import setup_logging
from .utils.types import Asset, AssetCategory

logger = structlog.get_logger(__name__)
console = Console()

root_option = click.option(
    "--root",
    "-r",
    default=None,
    help="Root of the asset directory tree (defaults to ASSETS_ROOT)",
    type=click.Path(file_okay=False, path_type=Path),
)


def _registrar(root: Path | None) -> AssetRegistrar:
    try:
        return AssetRegistrar(root=root)
    except AssetError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(version=__version__, prog_name="thesis-assets")
def cli() -> None:
    """Thesis assets - versioned figures, tables, models and summaries."""


@cli.command()
@root_option
def init(root: Path | None) -> None:
    """Create the asset directory tree."""
    registrar = _registrar(root)
    console.print(
        f"[green]✓[/green] Asset tree ready at [cyan]{registrar.root}[/cyan]"
    )


@cli.command("list")
@root_option
@click.option(
    "--category",
    "-c",
    default=None,
    help="Only assets of this category",
    type=click.Choice([c.value for c in AssetCategory]),
)
@click.option("--section", "-s", default=None, help="Only assets in this section")
@click.option(
    "--tag", "-t", "tags", multiple=True, help="Only assets carrying this tag"
)
@click.option(
    "--format",
    "-f",
    "output_format",
    default="table",
    help="Output format (table, json)",
    type=click.Choice(["table", "json"]),
)
def list_assets(
    root: Path | None,
    category: str | None,
    section: str | None,
    tags: tuple[str, ...],
    output_format: str,
) -> None:
    """List registered assets."""
    registrar = _registrar(root)
    try:
        assets = registrar.list_assets(
            category=category, section=section, tags=list(tags)
        )
    except AssetError as e:
        logger.error("Asset listing failed", error=str(e))
        raise click.ClickException(str(e)) from e

    if output_format == "json":
        click.echo(json.dumps([asset.to_record() for asset in assets], indent=2))
        return

    if not assets:
        console.print("[yellow]No assets found[/yellow]")
        return

    table = Table(title="Registered Assets")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Category", style="magenta")
    table.add_column("Section", style="blue")
    table.add_column("Name")
    table.add_column("Version", justify="right", style="yellow")
    table.add_column("Tags", style="green")

    for asset in assets:
        table.add_row(
            asset.id[:8],
            asset.category.value,
            asset.section,
            asset.name,
            asset.version,
            ", ".join(asset.tags),
        )

    console.print(table)


@cli.command()
@click.argument("asset_id", required=True)
@root_option
def show(asset_id: str, root: Path | None) -> None:
    """Show the manifest record of one asset."""
    asset = _find(_registrar(root), asset_id)
    click.echo(json.dumps(asset.to_record(), indent=2))


@cli.command()
@root_option
def verify(root: Path | None) -> None:
    """Check that every manifest record still has its file."""
    registrar = _registrar(root)
    try:
        missing = registrar.verify()
    except AssetError as e:
        raise click.ClickException(str(e)) from e

    if not missing:
        console.print("[green]✓[/green] All registered assets are present")
        return

    for asset in missing:
        console.print(f"[red]✗[/red] Missing: [cyan]{asset.path}[/cyan] ({asset.id})")
    raise click.exceptions.Exit(1)


@cli.command()
@root_option
def stats(root: Path | None) -> None:
    """Show counts per category and section."""
    registrar = _registrar(root)
    try:
        statistics = registrar.get_statistics()
    except AssetError as e:
        raise click.ClickException(str(e)) from e

    console.print(f"Total assets: [yellow]{statistics['total_assets']}[/yellow]")
    console.print(
        f"Size on disk: [yellow]{statistics['total_size_bytes']}[/yellow] bytes"
    )
    for category, count in statistics["by_category"].items():
        console.print(f"  {category}: {count}")
    for section, count in sorted(statistics["by_section"].items()):
        console.print(f"  [blue]{section}[/blue]: {count}")


@cli.command()
@click.argument("asset_id", required=True)
@root_option
@click.option("--caption", default=None, help="Caption for figure environments")
def cite(asset_id: str, root: Path | None, caption: str | None) -> None:
    """Print a LaTeX snippet referencing an asset."""
    asset = _find(_registrar(root), asset_id)
    click.echo(latex_reference(asset, caption=caption))


@cli.command()
def status() -> None:
    """Show the effective configuration."""
    settings = get_settings()
    console.print("[bold blue]Thesis Assets Status[/bold blue]")
    console.print()
    console.print(f"Asset root: [cyan]{settings.assets.root}[/cyan]")
    console.print(
        f"Duplicate policy: [cyan]{settings.assets.duplicate_policy.value}[/cyan]"
    )
    console.print(f"Lock timeout: [cyan]{settings.assets.lock_timeout}s[/cyan]")
    console.print(f"Figure DPI: [cyan]{settings.assets.figure_dpi}[/cyan]")
    console.print(f"Log level: [cyan]{settings.app.log_level}[/cyan]")


def _find(registrar: AssetRegistrar, asset_id: str) -> Asset:
    try:
        asset = registrar.get_asset(asset_id)
    except AssetError as e:
        raise click.ClickException(str(e)) from e
    if asset is None:
        raise click.ClickException(f"No asset with id {asset_id}")
    return asset


def main() -> None:
    """Entry point for the CLI application."""
    setup_logging()
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")


if __name__ == "__main__":
    main()
