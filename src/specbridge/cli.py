"""Command-line interface for SpecBridge."""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree as RichTree

from specbridge import __version__
from specbridge.config import SpecBridgeConfig, create_example_config, get_default_config
from specbridge.core.errors import SpecBridgeError
from specbridge.core.positions import PositionType, Tree
from specbridge.core.reconciler import ReconciledResult, ResultStatus


console = Console()

TYPE_STYLES = {
    PositionType.DIR: "bold blue",
    PositionType.FILE: "bold",
    PositionType.NAMESPACE: "cyan",
    PositionType.TEST: "",
}


def setup_logging(level: str) -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def load_config(ctx: click.Context) -> tuple[SpecBridgeConfig, Path]:
    """Load configuration for a command, falling back to defaults."""
    config_path = ctx.obj.get("config_path")
    try:
        if config_path:
            config = SpecBridgeConfig.from_file(config_path)
            base_dir = Path(config_path).resolve().parent
        else:
            found = SpecBridgeConfig.find()
            config = SpecBridgeConfig.from_file(found) if found else get_default_config()
            base_dir = found.parent if found else Path.cwd()
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        console.print("Run [bold]specbridge init[/bold] to create a configuration file")
        sys.exit(1)

    setup_logging("DEBUG" if ctx.obj.get("verbose") else config.log_level)
    return config, base_dir


def make_bridge(ctx: click.Context):
    from specbridge.core.runner import SpecBridge

    config, base_dir = load_config(ctx)
    return SpecBridge(config, base_dir)


@click.group()
@click.version_option(version=__version__, prog_name="specbridge")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False),
    help="Path to configuration file (default: specbridge.json)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, config: Optional[str], verbose: bool) -> None:
    """SpecBridge - discover, run and reconcile Lua spec positions."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="specbridge.json",
    help="Output path for configuration file",
)
@click.option("--force", "-f", is_flag=True, help="Overwrite existing configuration")
def init(output: str, force: bool) -> None:
    """Initialize a new SpecBridge configuration file."""
    output_path = Path(output)
    if output_path.exists() and not force:
        console.print(f"[yellow]Configuration file already exists:[/yellow] {output_path}")
        console.print("Use --force to overwrite")
        sys.exit(1)

    create_example_config(output_path)
    console.print(f"[green]Created configuration file:[/green] {output_path}")


@main.command()
@click.argument("path", type=click.Path(exists=True))
@click.option("--json", "as_json", is_flag=True, help="Print the tree as JSON")
@click.pass_context
def discover(ctx: click.Context, path: str, as_json: bool) -> None:
    """Discover test positions in a spec file or directory."""
    bridge = make_bridge(ctx)
    tree = bridge.discover(path)
    if tree is None:
        console.print("[yellow]No test positions found[/yellow]")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(tree.to_dict(), indent=2))
    else:
        console.print(_render_tree(tree))


@main.command()
@click.argument("path", type=click.Path(exists=True))
@click.argument("position_id")
@click.pass_context
def filters(ctx: click.Context, path: str, position_id: str) -> None:
    """Show the line filters for running one position."""
    bridge = make_bridge(ctx)
    tree = bridge.discover(path)
    if tree is None or position_id not in tree:
        console.print(f"[red]Error:[/red] Unknown position: {position_id}")
        sys.exit(1)

    result = bridge.filters(tree, position_id)
    if result is None:
        console.print("[yellow]Directories cannot be run as a single invocation[/yellow]")
        sys.exit(1)
    click.echo(json.dumps([list(f) for f in result]))


@main.command()
@click.argument("path", type=click.Path(exists=True))
@click.option("--position", "-p", "position_id", help="Position id to run (default: whole file)")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON")
@click.pass_context
def run(ctx: click.Context, path: str, position_id: Optional[str], as_json: bool) -> None:
    """Run a spec file or position and reconcile its results."""
    bridge = make_bridge(ctx)
    try:
        outcome = bridge.run(path, position_id)
    except SpecBridgeError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(outcome.to_dict(), indent=2))
    else:
        if ctx.obj.get("verbose") and outcome.output.stderr:
            console.print(f"[dim]{escape(outcome.output.stderr)}[/dim]")
        _display_results(outcome.results)

    if outcome.failed:
        sys.exit(1)


@main.command()
@click.argument("report", type=click.Path())
@click.argument("path", type=click.Path(exists=True))
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON")
@click.pass_context
def reconcile(ctx: click.Context, report: str, path: str, as_json: bool) -> None:
    """Reconcile an existing runner report against a spec file."""
    bridge = make_bridge(ctx)
    try:
        results = bridge.reconcile_report(report, path)
    except SpecBridgeError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps({key: r.to_dict() for key, r in results.items()}, indent=2))
    else:
        _display_results(results)

    if any(r.failed for r in results.values()):
        sys.exit(1)


def _render_tree(tree: Tree) -> RichTree:
    def label(position_id: str) -> str:
        pos = tree.get(position_id)
        style = TYPE_STYLES[pos.type]
        name = escape(pos.name)
        text = name if not style else f"[{style}]{name}[/{style}]"
        if pos.range:
            text += f" [dim]{pos.range[0]}-{pos.range[2]}[/dim]"
        return text

    rendered = RichTree(label(tree.root.id))
    stack = [(tree.root.id, rendered)]
    while stack:
        position_id, branch = stack.pop()
        for child in tree.children(position_id):
            stack.append((child.id, branch.add(label(child.id))))
    return rendered


def _display_results(results: dict[str, ReconciledResult]) -> None:
    """Display reconciled results as a table."""
    if not results:
        console.print("[yellow]No results reported[/yellow]")
        return

    table = Table(title="Results")
    table.add_column("Position")
    table.add_column("Status")
    table.add_column("Error", style="dim")

    for key, result in results.items():
        status = (
            "[green]passed[/green]"
            if result.status == ResultStatus.PASSED
            else "[red]failed[/red]"
        )
        table.add_row(escape(key), status, escape(result.short or ""))

    console.print(table)


if __name__ == "__main__":
    main()
