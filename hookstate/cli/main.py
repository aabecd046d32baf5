"""Main CLI entry point and application setup."""

import logging
from dataclasses import dataclass
from pathlib import Path

import click
from click.exceptions import Exit
from rich.console import Console

from hookstate import __version__
from hookstate.config import STORAGE_TYPES, load_config
from hookstate.state import PersistentState


@dataclass
class Context:
    """CLI context that holds the open store."""

    state: PersistentState
    console: Console
    debug: bool = False


def setup_logging(
    verbose: bool = False, quiet: bool = False, debug: bool = False
) -> None:
    """Configure logging based on CLI flags."""
    if quiet:
        level = logging.ERROR
    elif verbose or debug:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s"
        if not debug
        else "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_console(no_color: bool = False, width: int | None = None) -> Console:
    """Create Rich console with appropriate settings."""
    return Console(
        no_color=no_color,
        width=width or 120,
        highlight=not no_color,
        color_system=None if no_color else "auto",
    )


class HookStateGroup(click.Group):
    """Custom group that reports store errors without tracebacks."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except KeyboardInterrupt:
            console = getattr(ctx.obj, "console", None) if ctx.obj else None
            if console:
                console.print("[yellow]Interrupted[/yellow]")
            ctx.exit(130)
        except (click.ClickException, click.Abort, Exit, SystemExit):
            raise
        except Exception as e:
            debug = getattr(ctx.obj, "debug", False) if ctx.obj else False
            if debug:
                raise
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)


@click.group(cls=HookStateGroup)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-error output")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("--debug", is_flag=True, help="Enable debug mode with full tracebacks")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--storage",
    "-s",
    type=click.Choice(STORAGE_TYPES),
    help="Storage backend (overrides configuration)",
)
@click.option(
    "--path",
    "-p",
    "store_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Storage file for the file and sqlite backends",
)
@click.option("--namespace", "-n", help="Namespace to operate in")
@click.version_option(
    version=__version__, prog_name="hookstate", message="hookstate version %(version)s"
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    no_color: bool,
    debug: bool,
    config: Path | None,
    storage: str | None,
    store_path: Path | None,
    namespace: str | None,
) -> None:
    """Inspect and edit persistent hook state.

    Reads and writes the same stores that hook handlers use, so counters,
    logs and session values can be checked or reset from the shell.
    """
    setup_logging(verbose=verbose, quiet=quiet, debug=debug)
    console = create_console(no_color=no_color)

    try:
        store_config = load_config(
            config,
            overrides={
                "storage": storage,
                "path": str(store_path) if store_path else None,
                "namespace": namespace,
            },
        )
        state = PersistentState.from_config(store_config)
    except Exception as e:
        if debug:
            raise
        click.echo(f"Error opening state store: {e}", err=True)
        ctx.exit(1)

    ctx.call_on_close(state.close)
    ctx.obj = Context(state=state, console=console, debug=debug)

