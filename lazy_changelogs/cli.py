"""CLI entry point for lazy-changelogs."""

from __future__ import annotations

import contextlib
import json
import sys
from collections.abc import Callable, Iterator
from typing import TypeVar

import click

from lazy_changelogs.exceptions import LazyChangelogsError
from lazy_changelogs.pipeline import (
    compute_bumps,
    discover,
    package_order,
    run_changelogs,
)

T = TypeVar("T")


@contextlib.contextmanager
def _progress_to_stderr(enabled: bool) -> Iterator[None]:
    # Keeps stdout clean for --json consumers
    if enabled:
        with contextlib.redirect_stdout(sys.stderr):
            yield
    else:
        yield


def _run(func: Callable[[], T], quiet: bool = False) -> T:
    try:
        with _progress_to_stderr(quiet):
            return func()
    except LazyChangelogsError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(package_name="lazy-changelogs")
@click.option(
    "-C",
    "--cwd",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    show_default=True,
    help="Any directory inside the repository.",
)
@click.pass_context
def cli(ctx: click.Context, cwd: str) -> None:
    """Per-package version bumps and changelogs for monorepos."""
    ctx.obj = {"cwd": cwd}


@cli.command()
@click.pass_obj
def graph(obj: dict) -> None:
    """List packages and their local dependencies."""
    workspace = _run(lambda: discover(obj["cwd"]))
    click.echo()
    for name in package_order(workspace.graph):
        node = workspace.graph.get(name)
        deps = sorted(workspace.graph.dependencies_of(name))
        dependants = sorted(workspace.graph.dependants_of(name))
        click.echo(f"{name} ({node.relative_dir or '.'})")
        click.echo(f"  depends on: {', '.join(deps) or '-'}")
        click.echo(f"  needed by:  {', '.join(dependants) or '-'}")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of text.")
@click.pass_obj
def bumps(obj: dict, as_json: bool) -> None:
    """Show the bump and next version of every package."""
    result = _run(lambda: compute_bumps(discover(obj["cwd"])), quiet=as_json)
    if as_json:
        click.echo(
            json.dumps({name: b.model_dump(mode="json") for name, b in result.items()}, indent=2)
        )


@cli.command()
@click.argument("packages", nargs=-1)
@click.option("--write", is_flag=True, help="Write each changelog next to its manifest.")
@click.option("--json", "as_json", is_flag=True, help="Render JSON records instead of markdown.")
@click.pass_obj
def changelog(obj: dict, packages: tuple[str, ...], write: bool, as_json: bool) -> None:
    """Render changelogs for PACKAGES (all packages by default)."""
    rendered = _run(
        lambda: run_changelogs(
            obj["cwd"], packages=list(packages) or None, write=write, as_json=as_json
        ),
        quiet=not write,
    )
    if not write:
        for content in rendered.values():
            click.echo(content)


def main() -> None:
    cli()
