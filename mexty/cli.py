"""mexty CLI — sync the block registry and regenerate typed exports."""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from mexty import __version__

console = Console()


def _setup_logging(verbose: bool) -> None:
    logger = logging.getLogger("mexty")
    logger.handlers.clear()
    if verbose:
        logger.addHandler(RichHandler(console=console, show_path=False))
        logger.setLevel(logging.DEBUG)
    else:
        logger.addHandler(logging.NullHandler())


def _load_config(config_path: str | None, **overrides):
    from mexty.config import load_config
    from mexty.errors import ConfigError

    try:
        return load_config(config_path, **overrides)
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/] {escape(str(e))}")
        raise SystemExit(1)


def _truncate(text: str, width: int = 60) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= width else flat[:width] + "..."


def _components_table(title: str, registry: dict, show_author: bool = True) -> Table:
    table = Table(title=title)
    table.add_column("Component", style="cyan")
    if show_author:
        table.add_column("Author", style="dim")
    table.add_column("Block ID", style="dim")
    table.add_column("Title")
    table.add_column("Description")
    table.add_column("Tags")

    for name, entry in registry.items():
        row = [name]
        if show_author:
            row.append(entry.author or "")
        row += [
            entry.block_id,
            entry.title,
            _truncate(entry.description),
            ", ".join(entry.tags) or "none",
        ]
        table.add_row(*(escape(cell) for cell in row))
    return table


def _print_snapshot(snapshot, author: str | None = None) -> None:
    meta = snapshot.meta
    console.print("[green]Registry fetched successfully![/]")
    console.print(f"  [dim]Total blocks:[/] {meta.total_blocks}")
    console.print(f"  [dim]Total components:[/] {meta.total_components}")
    console.print(f"  [dim]Total authors:[/] {meta.total_authors}")
    console.print(f"  [dim]Last updated:[/] {meta.last_updated or 'unknown'}")

    if author is None and snapshot.registry:
        console.print()
        table = _components_table("Available components (global namespace)", snapshot.registry)
        console.print(table)

    for name, components in snapshot.author_registry.items():
        if author is not None and name != author:
            continue
        console.print()
        title = escape(f"@{name} ({len(components)} components)")
        console.print(_components_table(title, components, show_author=False))


@click.group()
@click.version_option(version=__version__)
def main():
    """mexty — manage published blocks and their typed exports.

    Fetches the block registry and regenerates the named exports of a
    local @mexty/block checkout.
    """


# ── Sync ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--api-url", default=None, help="Registry API base URL")
@click.option("--token", default=None, help="Bearer token for the API")
@click.option(
    "--package-dir",
    "-p",
    default=None,
    type=click.Path(file_okay=False),
    help="Target package directory (skips auto-detection)",
)
@click.option("--config", "config_path", default=None, help="Path to a config YAML file")
@click.option("--timeout", default=None, type=float, help="Fetch timeout in seconds")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def sync(
    api_url: str | None,
    token: str | None,
    package_dir: str | None,
    config_path: str | None,
    timeout: float | None,
    verbose: bool,
):
    """Sync the block registry and update typed exports."""
    from mexty.sync.orchestrator import SyncOrchestrator, SyncState

    _setup_logging(verbose)
    config = _load_config(
        config_path, api_url=api_url, token=token, package_dir=package_dir, timeout=timeout
    )

    console.print("\n[bold blue]mexty[/] — Syncing block registry...\n")
    result = SyncOrchestrator(config).run()

    if result.snapshot is not None:
        _print_snapshot(result.snapshot)
        console.print()

    if result.state == SyncState.FAILED:
        console.print(f"[red]x[/] {escape(result.summary())}")
        raise SystemExit(1)

    if result.state == SyncState.EMPTY:
        console.print("[yellow]No components found in registry.[/]")
        console.print('  [dim]Publish some blocks first using "mexty publish".[/]')
    elif result.state == SyncState.SKIPPED_CODEGEN:
        console.print(f"[yellow]![/] {config.package_name} package not found locally.")
        console.print("  [dim]Named exports file not generated.[/]")
    else:
        report = result.report
        console.print(f"[green]v[/] Exports updated in {result.package_dir}")
        console.print(f"  [dim]Generated {len(report.author_files)} author entry file(s)[/]")
        if report.entry_point_patched:
            console.print("  [dim]Added named exports to src/index.ts[/]")

    console.print(Panel(escape(result.summary()), title="Registry sync completed"))


# ── Registry ─────────────────────────────────────────────────────────


@main.group()
def registry():
    """Inspect the remote block registry."""


@registry.command()
@click.option("--author", "-a", default=None, help="Only show this author's namespace")
@click.option("--api-url", default=None, help="Registry API base URL")
@click.option("--token", default=None, help="Bearer token for the API")
@click.option("--config", "config_path", default=None, help="Path to a config YAML file")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def show(
    author: str | None,
    api_url: str | None,
    token: str | None,
    config_path: str | None,
    verbose: bool,
):
    """Fetch the registry and list its components without generating code."""
    from mexty.errors import FetchError
    from mexty.registry.fetcher import RegistryFetcher

    _setup_logging(verbose)
    config = _load_config(config_path, api_url=api_url, token=token)

    try:
        snapshot = RegistryFetcher(config).fetch()
    except FetchError as e:
        console.print(f"[red]Failed to fetch registry:[/] {escape(str(e))}")
        raise SystemExit(1)

    if author is not None and author not in snapshot.author_registry:
        console.print(f"[yellow]No author namespace named @{escape(author)}.[/]")
        raise SystemExit(1)

    _print_snapshot(snapshot, author=author)


if __name__ == "__main__":
    main()
