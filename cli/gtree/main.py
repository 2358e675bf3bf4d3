from __future__ import annotations

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, TextIO

import typer

from gtreex.codec import PayloadCodec, load, store_tree
from gtreex.core import GTree
from gtreex.diagnostics import dump_pool_graphviz, dump_tree
from gtreex.errors import GTreeError

from .options import resolve_payload_codec

_HELP = """Generalized tree (gtreex) command line interface.

Subcommands validate, render and reformat stored tree files."""

app = typer.Typer(
    add_completion=False,
    pretty_exceptions_enable=False,
    context_settings={"help_option_names": ["-h", "--help"]},
    help=_HELP,
)

_PAYLOAD_OPTION = typer.Option("int", "--payload", "-p", help="Payload codec: int or json.")
_OUTPUT_OPTION = typer.Option(None, "--output", "-o", help="Write to this file instead of stdout.")


@app.callback()
def gtree_callback() -> None:
    """Root callback reserved for shared options (none yet)."""
    pass


def _load_tree(path: Path, codec: PayloadCodec) -> GTree:
    try:
        return load(path, codec)
    except GTreeError as exc:
        typer.echo(f"error: {path}: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@contextmanager
def _open_output(output: Optional[Path]) -> Iterator[TextIO]:
    if output is None:
        yield sys.stdout
        return
    try:
        handle = open(output, "w", encoding="utf-8")
    except OSError as exc:
        typer.echo(f"error: {output}: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    with handle:
        yield handle


@app.command()
def check(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Stored tree file."),
    payload: str = _PAYLOAD_OPTION,
) -> None:
    """Restore a stored tree, verify its invariants and print a summary."""

    codec = resolve_payload_codec(payload)
    tree = _load_tree(path, codec)
    try:
        tree.validate()
    except GTreeError as exc:
        typer.echo(f"error: {path}: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    stats = tree.stats()
    typer.echo(f"nodes: {stats.live_nodes}")
    typer.echo(f"height: {stats.height}")
    typer.echo(f"capacity: {stats.capacity}")


@app.command()
def dot(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Stored tree file."),
    payload: str = _PAYLOAD_OPTION,
    output: Optional[Path] = _OUTPUT_OPTION,
) -> None:
    """Render the restored object pool as a GraphViz digraph."""

    codec = resolve_payload_codec(payload)
    tree = _load_tree(path, codec)
    with _open_output(output) as sink:
        dump_pool_graphviz(tree, sink, codec)


@app.command()
def fmt(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Stored tree file."),
    payload: str = _PAYLOAD_OPTION,
    output: Optional[Path] = _OUTPUT_OPTION,
) -> None:
    """Re-store a tree with canonical tab indentation."""

    codec = resolve_payload_codec(payload)
    tree = _load_tree(path, codec)
    with _open_output(output) as sink:
        store_tree(tree, sink, codec)


@app.command()
def show(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Stored tree file."),
    payload: str = _PAYLOAD_OPTION,
) -> None:
    """Print an indented listing of the tree."""

    codec = resolve_payload_codec(payload)
    tree = _load_tree(path, codec)
    dump_tree(tree, sys.stdout, codec)


def main() -> None:
    app()


__all__ = ["app", "main"]
