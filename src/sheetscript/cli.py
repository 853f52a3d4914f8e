"""Command-line interface for sheetscript."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import click

from sheetscript import __version__
from sheetscript.errors import ScriptParseError


@click.group()
@click.version_option(version=__version__, prog_name="sheetscript")
def main() -> None:
    """sheetscript -- scripting engine for tabular data.

    Run a script file, or start an interactive session with ``run`` and
    no file.
    """


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _setup(config_dir: str | None, verbose: bool) -> dict[str, Any]:
    import yaml

    from sheetscript.config import load_config
    from sheetscript.logging import set_echo, set_log_dir

    try:
        config = load_config(config_dir or Path.cwd())
    except (ValueError, yaml.YAMLError) as e:
        raise click.ClickException(str(e))
    set_log_dir(config["log_dir"])
    set_echo(verbose or bool(config["echo_events"]))
    return config


def _write(text: str) -> None:
    click.echo(text, nl=False)


def _error_text(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


def _echo_events(events: list[dict[str, Any]]) -> None:
    for evt in events:
        ts = evt.get("ts", "")
        lvl = evt.get("level", "").upper()
        etype = evt.get("event_type", "")
        msg = evt.get("message", "")
        err = evt.get("error_code")
        line = f"[{ts}] {lvl:7s} {etype}: {msg}"
        if err:
            line += f"  ({err})"
        click.echo(line)


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------


@main.command()
@click.argument("file", required=False, type=click.Path(exists=True, dir_okay=False))
@click.option("-v", "--verbose", is_flag=True, help="Echo log events to stderr.")
@click.option(
    "--config-dir",
    default=None,
    type=click.Path(exists=True, file_okay=False),
    help="Directory holding sheetscript.yaml (default: current directory).",
)
def run(file: str | None, verbose: bool, config_dir: str | None) -> None:
    """Run a script FILE, or start an interactive session without one."""
    from sheetscript.interpreter import run_script

    config = _setup(config_dir, verbose)
    if file is None:
        asyncio.run(_interactive(config))
        return

    text = Path(file).read_text(encoding="utf-8")
    result = run_script(text, config=config, output=_write)
    if not result.ok:
        raise click.ClickException(_error_text(result.error))


def _incomplete(exc: ScriptParseError) -> bool:
    """True when a parse error only means the input stopped mid-block."""
    return exc.message.startswith("Unexpected end of input")


async def _interactive(config: dict[str, Any]) -> None:
    """Read-eval loop sharing one Book, Environment and function table.

    Lines are buffered until they parse; a block (``if``, ``for``,
    ``function`` ...) keeps prompting with ``...`` until it is closed.
    ``:quit`` or end of input leaves the session.
    """
    from sheetscript.ast import FunctionDef, Program
    from sheetscript.environment import Environment
    from sheetscript.interpreter import Interpreter
    from sheetscript.parser import parse

    interpreter = Interpreter(output=_write, config=config)
    environment = Environment()
    functions: dict[str, FunctionDef] = {}
    stdin = click.get_text_stream("stdin")
    buffer: list[str] = []

    click.echo(f"sheetscript {__version__} (book {interpreter.book.name!r}); :quit to exit")
    while True:
        click.echo("... " if buffer else ">>> ", nl=False)
        line = stdin.readline()
        if not line:
            click.echo()
            break
        if not buffer and line.strip() in (":quit", ":q"):
            break
        buffer.append(line)
        text = "".join(buffer)
        if not text.strip():
            buffer.clear()
            continue
        try:
            program = parse(text)
        except ScriptParseError as e:
            if _incomplete(e):
                continue
            buffer.clear()
            click.echo(_error_text(e), err=True)
            continue
        buffer.clear()

        # Earlier definitions stay callable in later entries.
        functions.update(program.functions())
        defined = tuple(fn for key, fn in functions.items() if key not in program.functions())
        result = await interpreter.execute(Program(defined + program.statements), environment)
        if not result.ok:
            click.echo(_error_text(result.error), err=True)


# ---------------------------------------------------------------------------
# Format / formula
# ---------------------------------------------------------------------------


@main.command("format")
@click.argument("value")
@click.argument("code")
def format_cmd(value: str, code: str) -> None:
    """Render VALUE with the number format CODE (e.g. '#,##0.00')."""
    from sheetscript.formatting import format_value
    from sheetscript.tabular.cells import from_cell, parse_cell

    click.echo(format_value(from_cell(parse_cell(value)), code))


@main.command("formula")
@click.argument("text")
@click.option("--csv", "csv_file", default=None, type=click.Path(exists=True, dir_okay=False), help="Sheet that cell references read.")
@click.option("--no-headers", is_flag=True, help="Treat the CSV's first line as data.")
@click.option("--set", "overrides", multiple=True, help="Bind a name as key=value.")
def formula_cmd(text: str, csv_file: str | None, no_headers: bool, overrides: tuple[str, ...]) -> None:
    """Evaluate the formula TEXT, optionally against a CSV sheet."""
    from sheetscript.formulas import FormulaError, SheetResolver, evaluate_formula
    from sheetscript.tabular.cells import from_cell, parse_cell
    from sheetscript.tabular.errors import SheetError
    from sheetscript.tabular.frames import read_csv
    from sheetscript.values import display

    context: dict[str, Any] = {}
    for item in overrides:
        if "=" not in item:
            raise click.ClickException(f"Invalid --set format: {item!r}. Use key=value.")
        k, v = item.split("=", 1)
        context[k] = from_cell(parse_cell(v))

    try:
        resolver = None
        if csv_file is not None:
            resolver = SheetResolver(read_csv(csv_file, has_headers=not no_headers))
        result = evaluate_formula(text, resolver, context)
    except (FormulaError, SheetError) as e:
        raise click.ClickException(_error_text(e))
    click.echo(display(result))


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@main.command("events")
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]), help="Filter by level.")
@click.option("--type", "event_type", default=None, help="Filter by event type.")
@click.option("--run-id", default=None, help="Filter by run ID.")
@click.option("--limit", default=100, type=int, help="Maximum events to show.")
def events_cmd(
    directory: str,
    level: str | None,
    event_type: str | None,
    run_id: str | None,
    limit: int,
) -> None:
    """Show the structured event log in DIRECTORY."""
    from sheetscript.logging.sink import EventSink

    events = EventSink(Path(directory)).read_global(
        level=level,
        event_type=event_type,
        run_id=run_id,
        limit=limit,
    )
    if not events:
        click.echo("No events found.")
        return
    _echo_events(events)


@main.command("run-log")
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.argument("run_id")
def run_log_cmd(directory: str, run_id: str) -> None:
    """Show the event log for a specific run."""
    from sheetscript.logging.sink import EventSink

    events = EventSink(Path(directory)).read_run_log(run_id)
    if not events:
        click.echo(f"No events found for run {run_id}.")
        return
    _echo_events(events)
