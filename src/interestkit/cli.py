# src/interestkit/cli.py
"""
InterestKit Command Line Interface (CLI).

A thin terminal surface over a file-backed :class:`InterestEngine`, built with
`typer` and `rich`. Handy for inspecting or seeding a snapshot by hand and for
moving snapshots between machines.

Usage
-----
    # Record signals
    $ interestkit track recipe pumpkin-soup --action click --category Soups -t Fall
    $ interestkit search "how to make pumpkin soup"
    $ interestkit record items pumpkin-soup -w 2 -m title="Pumpkin Soup"

    # Read rankings
    $ interestkit top items --by affinity -n 10
    $ interestkit items

    # Move state around
    $ interestkit export -o snapshot.json
    $ interestkit import snapshot.json
    $ interestkit reset --yes
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from interestkit.core.recorder import Interaction
from interestkit.core.settings import load_settings
from interestkit.core.store.snapshot import validate_meta
from interestkit.core.store.storage import FileStorage
from interestkit.engine import InterestEngine

load_dotenv()

app = typer.Typer(
    help="InterestKit: aggregate interest signals and rank them by weight, clicks or affinity.",
    rich_markup_mode="markdown",
    no_args_is_help=True,
)
console = Console()


class Ranking(str, Enum):
    weight = "weight"
    clicks = "clicks"
    affinity = "affinity"


@dataclass
class _Target:
    store_dir: Path
    identity: str


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


def _engine(ctx: typer.Context) -> InterestEngine:
    """Build an engine over the snapshot selected by the global options."""
    target: _Target = ctx.obj
    ident = target.identity
    return InterestEngine(storage=FileStorage(target.store_dir), identity=lambda: ident)


def _parse_meta(pairs: list[str] | None) -> dict[str, Any] | None:
    """Turn ``k=v`` pairs into a typed metadata record.

    Values are decoded as JSON when that yields a supported metadata value
    (``3``, ``true``, ``["a","b"]``) and kept as plain strings otherwise.
    """
    if not pairs:
        return None
    meta: dict[str, Any] = {}
    for pair in pairs:
        name, sep, raw = pair.partition("=")
        name = name.strip()
        if not sep or not name:
            raise typer.BadParameter(f"expected key=value, got {pair!r}", param_hint="--meta")
        try:
            value = json.loads(raw)
        except ValueError:
            value = raw
        meta[name] = value if validate_meta({name: value}).is_ok() else raw
    return meta


def _render_pairs(title: str, rows: list[tuple[str, Any]], column: str) -> None:
    table = Table(title=title)
    table.add_column("#", justify="right", style="dim")
    table.add_column("key", style="cyan")
    table.add_column(column, justify="right", style="magenta")
    for i, (key, value) in enumerate(rows, start=1):
        table.add_row(str(i), key, f"{value:g}" if isinstance(value, float) else str(value))
    console.print(table)


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


@app.callback()
def main(
    ctx: typer.Context,
    store_dir: Annotated[
        Path | None,
        typer.Option("--store-dir", "-s", help="Directory holding the snapshot file."),
    ] = None,
    identity: Annotated[
        str | None,
        typer.Option("--identity", "-i", help="Context fingerprint guarding the snapshot."),
    ] = None,
) -> None:
    """Select which snapshot the command operates on."""
    s = load_settings()
    ctx.obj = _Target(
        store_dir=store_dir if store_dir is not None else Path(s.storage_dir),
        identity=identity or s.identity,
    )


@app.command()
def record(
    ctx: typer.Context,
    bucket: Annotated[str, typer.Argument(help="Bucket name, e.g. 'items'.")],
    key: Annotated[str, typer.Argument(help="Entity key within the bucket.")],
    weight: Annotated[float, typer.Option("--weight", "-w", help="Weight to add.")] = 1.0,
    meta: Annotated[
        list[str] | None,
        typer.Option("--meta", "-m", help="Metadata field as key=value (repeatable)."),
    ] = None,
) -> None:
    """Add a raw weight to one entity and merge optional metadata."""
    fields = _parse_meta(meta)
    engine = _engine(ctx)
    if not engine.record(bucket, key, weight, fields):
        console.print("[bold red]Nothing recorded:[/bold red] bucket and key must be non-empty.")
        raise typer.Exit(code=1)
    total = engine.snapshot.buckets[bucket][key]
    console.print(f"[green]Recorded[/green] {bucket}/{key} (total weight {total:g})")


@app.command()
def track(
    ctx: typer.Context,
    entity_type: Annotated[str, typer.Argument(metavar="TYPE", help="Entity type label.")],
    key: Annotated[str, typer.Argument(help="Entity key (query text for 'search').")],
    action: Annotated[
        str, typer.Option("--action", "-a", help="click, view, hover, change, input, submit.")
    ] = "click",
    weight: Annotated[
        float | None, typer.Option("--weight", "-w", help="Override the default weight.")
    ] = None,
    bucket: Annotated[
        str | None, typer.Option("--bucket", "-b", help="Override the routed bucket.")
    ] = None,
    category: Annotated[str | None, typer.Option("--category", "-c")] = None,
    tag: Annotated[list[str] | None, typer.Option("--tag", "-t", help="Linked tag.")] = None,
) -> None:
    """Record one classified interaction: weight, clicks, affinity and links."""
    event = Interaction(
        action=action,
        type=entity_type,
        key=key,
        bucket=bucket,
        weight=weight,
        category=category,
        tags=tag or [],
    )
    engine = _engine(ctx)
    if not engine.track(event):
        console.print("[bold red]Nothing recorded.[/bold red]")
        raise typer.Exit(code=1)
    if event.type == "search":
        console.print(f"[green]Tracked[/green] search '{event.key}'")
        return
    target, _ = engine.route(event)
    name = event.key.strip()
    console.print(
        f"[green]Tracked[/green] {event.action} on {target}/{name} "
        f"(affinity {engine.get_affinity(target, name):g})"
    )


@app.command()
def search(
    ctx: typer.Context,
    text: Annotated[str, typer.Argument(help="Free-text query.")],
    weight: Annotated[float, typer.Option("--weight", "-w")] = 1.0,
) -> None:
    """Tokenize a search query and count each token."""
    tokens = _engine(ctx).record_search(text, weight)
    if not tokens:
        console.print("[yellow]No tokens survived the stop-word filter.[/yellow]")
        return
    console.print(f"[green]Counted[/green] {', '.join(tokens)}")


@app.command()
def top(
    ctx: typer.Context,
    bucket: Annotated[str, typer.Argument(help="Bucket to rank.")],
    n: Annotated[int, typer.Option("--n", "-n", help="How many entries.")] = 5,
    by: Annotated[Ranking, typer.Option("--by", help="Ranking signal.")] = Ranking.weight,
) -> None:
    """Show the top entities of a bucket."""
    engine = _engine(ctx)
    rows: list[tuple[str, Any]]
    if by is Ranking.clicks:
        rows = list(engine.get_top_by_clicks(bucket, n))
    elif by is Ranking.affinity:
        rows = list(engine.get_top_by_affinity(bucket, n))
    else:
        rows = list(engine.get_top(bucket, n))
    if not rows:
        console.print(f"[dim]Bucket '{bucket}' is empty.[/dim]")
        return
    _render_pairs(f"{bucket} by {by.value}", rows, by.value)


@app.command()
def items(
    ctx: typer.Context,
    n: Annotated[int, typer.Option("--n", "-n", help="How many entries.")] = 5,
) -> None:
    """Show the items bucket ranked by live affinity, then recency."""
    ranked = _engine(ctx).get_top_items(n)
    if not ranked:
        console.print("[dim]No items yet.[/dim]")
        return
    table = Table(title="Top items")
    table.add_column("#", justify="right", style="dim")
    table.add_column("key", style="cyan")
    table.add_column("affinity", justify="right", style="magenta")
    table.add_column("clicks", justify="right")
    table.add_column("title")
    for i, it in enumerate(ranked, start=1):
        table.add_row(
            str(i),
            it.key,
            f"{it.affinity:g}",
            str(it.meta.get("clicks", 0)),
            str(it.meta.get("title", "")),
        )
    console.print(table)


@app.command("export")
def export_cmd(
    ctx: typer.Context,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write to this file instead of stdout."),
    ] = None,
) -> None:
    """Print or save the full snapshot document as JSON."""
    payload = json.dumps(_engine(ctx).export(), indent=2, ensure_ascii=False)
    if output is None:
        typer.echo(payload)
        return
    try:
        output.write_text(payload + "\n", encoding="utf-8")
    except OSError as e:
        console.print(f"[bold red]Failed to write {output}:[/bold red] {e}")
        raise typer.Exit(code=1) from e
    console.print(Panel(f"Saved to: {output}", title="Export", border_style="green"))


@app.command("import")
def import_cmd(
    ctx: typer.Context,
    file: Annotated[
        Path,
        typer.Argument(exists=True, file_okay=True, dir_okay=False, readable=True),
    ],
) -> None:
    """Replace the snapshot with a previously exported document."""
    try:
        doc = json.loads(file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        console.print(f"[bold red]Import Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e
    if not _engine(ctx).import_(doc):
        console.print("[bold red]Import Error:[/bold red] document has no 'buckets' mapping.")
        raise typer.Exit(code=1)
    console.print(f"[green]Imported[/green] {file.name}")


@app.command()
def reset(
    ctx: typer.Context,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip the confirmation.")] = False,
) -> None:
    """Discard all recorded interest."""
    if not yes and not Confirm.ask("Discard all recorded interest?", default=False):
        console.print("[dim]Aborted.[/dim]")
        return
    _engine(ctx).reset()
    console.print("[green]Snapshot reset.[/green]")


if __name__ == "__main__":
    app()
