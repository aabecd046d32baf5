"""State inspection and editing commands."""

from typing import Any

import click
import msgspec
from rich.markup import escape
from rich.table import Table

from hookstate.cli.main import cli
from hookstate.state import PersistentState


def get_state(ctx: click.Context) -> PersistentState:
    """Get the open store from context."""
    return ctx.obj.state


def parse_value(text: str, as_string: bool = False) -> Any:
    """Parse a command-line value as JSON, falling back to the raw string."""
    if as_string:
        return text
    try:
        return msgspec.json.decode(text)
    except msgspec.DecodeError:
        return text


def format_value(value: Any, indent: int = 0) -> str:
    """Render a stored value as JSON text."""
    encoded = msgspec.json.encode(value)
    if indent:
        encoded = msgspec.json.format(encoded, indent=indent)
    return encoded.decode("utf-8")


# Command: get
@cli.command()
@click.argument("key")
@click.option("--pretty", is_flag=True, help="Indent JSON output")
@click.pass_context
def get(ctx: click.Context, key: str, pretty: bool) -> None:
    """Print the value stored at KEY."""
    state = get_state(ctx)
    if not state.has(key):
        click.echo(f"Key not found: {key}", err=True)
        ctx.exit(1)
    click.echo(format_value(state.get(key), indent=2 if pretty else 0))


# Command: set
@cli.command(name="set")
@click.argument("key")
@click.argument("value")
@click.option("--string", "as_string", is_flag=True, help="Store VALUE verbatim")
@click.pass_context
def set_value(ctx: click.Context, key: str, value: str, as_string: bool) -> None:
    """Store VALUE at KEY.

    VALUE is parsed as JSON when possible, so 42, true and {"a": 1} keep
    their types; anything else is stored as a string.
    """
    get_state(ctx).set(key, parse_value(value, as_string))


# Command: delete
@cli.command()
@click.argument("key")
@click.pass_context
def delete(ctx: click.Context, key: str) -> None:
    """Delete KEY."""
    get_state(ctx).delete(key)


# Command: keys
@cli.command()
@click.pass_context
def keys(ctx: click.Context) -> None:
    """List keys in the current namespace."""
    for key in get_state(ctx).keys():
        click.echo(key)


# Command: incr
@cli.command()
@click.argument("key")
@click.option("--by", default=1, type=int, show_default=True, help="Amount to add")
@click.pass_context
def incr(ctx: click.Context, key: str, by: int) -> None:
    """Increment the counter at KEY and print the new value."""
    click.echo(format_value(get_state(ctx).increment(key, by)))


# Command: decr
@cli.command()
@click.argument("key")
@click.option("--by", default=1, type=int, show_default=True, help="Amount to subtract")
@click.pass_context
def decr(ctx: click.Context, key: str, by: int) -> None:
    """Decrement the counter at KEY and print the new value."""
    click.echo(format_value(get_state(ctx).decrement(key, by)))


# Command: append
@cli.command()
@click.argument("key")
@click.argument("value")
@click.option("--string", "as_string", is_flag=True, help="Append VALUE verbatim")
@click.pass_context
def append(ctx: click.Context, key: str, value: str, as_string: bool) -> None:
    """Append VALUE to the list at KEY and print the list."""
    click.echo(format_value(get_state(ctx).append(key, parse_value(value, as_string))))


# Command: prepend
@cli.command()
@click.argument("key")
@click.argument("value")
@click.option("--string", "as_string", is_flag=True, help="Prepend VALUE verbatim")
@click.pass_context
def prepend(ctx: click.Context, key: str, value: str, as_string: bool) -> None:
    """Insert VALUE at the front of the list at KEY and print the list."""
    click.echo(
        format_value(get_state(ctx).prepend(key, parse_value(value, as_string)))
    )


# Command: clear
@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def clear(ctx: click.Context, yes: bool) -> None:
    """Remove every key in the current namespace."""
    state = get_state(ctx)
    scope = f"namespace {state.name!r}" if state.name else "the whole store"
    if not yes and not click.confirm(f"Remove every key in {scope}?"):
        ctx.obj.console.print("[yellow]Cancelled[/yellow]")
        return
    state.clear()
    ctx.obj.console.print(f"[green]✓[/green] Cleared {escape(scope)}")


# Command: dump
@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output a JSON object")
@click.pass_context
def dump(ctx: click.Context, as_json: bool) -> None:
    """Show every key and value in the current namespace."""
    state = get_state(ctx)
    items = {key: state.get(key) for key in state.keys()}

    if as_json:
        click.echo(format_value(items, indent=2))
        return

    console = ctx.obj.console
    if not items:
        console.print("[yellow]No keys[/yellow]")
        return

    table = Table(title=f"State: {escape(state.name or '<root>')}")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in items.items():
        table.add_row(escape(key), escape(format_value(value)))
    console.print(table)


# Command: stats
@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show backend and key counts."""
    state = get_state(ctx)
    table = Table(show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Backend", type(state.backend).__name__)
    table.add_row("Namespace", escape(state.name or "<root>"))
    table.add_row("Keys", str(state.size()))
    table.add_row("Keys incl. nested", str(state.backend.count(state.prefix)))
    ctx.obj.console.print(table)
