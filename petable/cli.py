"""
PETable CLI
============

Click-based command-line interface for the PE decoder.  Each subcommand
takes one file path, decodes it, and prints either the plain-text listing,
a JSON document (``--json``) or Rich tables (``--rich``).

Usage::

    petable is-pe sample.exe
    petable import-functions sample.exe
    petable export-functions sample.dll
    petable --json import-functions sample.exe
    python -m petable --rich export-functions sample.dll

Exit codes:
    0  success
    1  input is not a PE image (or is malformed)
    2  bad arguments
    3  input file could not be read

References:
    - Click Documentation. https://click.palletsprojects.com/
"""

from __future__ import annotations

import json
from typing import Callable, Optional

import click

from pekit.config import PETableConfig
from pekit.console import PETableConsole
from pekit.errors import InputError, NotPEError
from pekit.logger import PETableLogger

from petable import __version__
from petable.core.engine import PETableEngine
from petable.core.models import DecodeResult
from petable.output.console import PETableConsoleOutput

EXIT_OK: int = 0
EXIT_NOT_PE: int = 1
EXIT_USAGE: int = 2
EXIT_IO: int = 3


# ===================================================================== #
#  CLI Group
# ===================================================================== #

@click.group()
@click.option(
    "--config", "-c",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Path to a PETable configuration file (TOML).",
)
@click.option(
    "--json", "json_output",
    is_flag=True,
    default=False,
    help="Output the decode result as JSON.",
)
@click.option(
    "--rich", "rich_output",
    is_flag=True,
    default=False,
    help="Render results as Rich tables.",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Enable debug logging on stderr.",
)
@click.version_option(__version__, "--version", "-V", prog_name="petable")
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[str],
    json_output: bool,
    rich_output: bool,
    verbose: bool,
) -> None:
    """PETable -- list what a Portable Executable imports and exports."""
    ctx.ensure_object(dict)

    if json_output and rich_output:
        raise click.UsageError("--json and --rich cannot be used together.")

    try:
        petable_config = PETableConfig.load(config)
    except (OSError, ValueError) as exc:
        # tomllib.TOMLDecodeError is a ValueError
        raise click.BadParameter(str(exc), param_hint="'--config'") from exc
    settings = petable_config.global_settings
    logger = PETableLogger(
        "cli",
        log_level="DEBUG" if verbose else settings.log_level,
        log_file=settings.log_file or None,
        json_logs=settings.log_json,
    )

    console = PETableConsole()
    ctx.obj["config"] = petable_config
    ctx.obj["console"] = console
    ctx.obj["engine"] = PETableEngine(petable_config, logger=logger)
    ctx.obj["display"] = PETableConsoleOutput(console, petable_config.decoder)
    ctx.obj["output_format"] = (
        "json" if json_output else "rich" if rich_output else "text"
    )


def _decode(ctx: click.Context, file: str) -> DecodeResult:
    """Read and decode *file*, exiting with :data:`EXIT_IO` on read errors."""
    engine: PETableEngine = ctx.obj["engine"]
    try:
        return engine.analyze_file(file)
    except InputError as exc:
        ctx.obj["console"].error(str(exc))
        ctx.exit(EXIT_IO)


def _emit_json(result: DecodeResult) -> None:
    click.echo(json.dumps(
        result.model_dump(mode="json"),
        indent=2,
        ensure_ascii=False,
    ))


# ===================================================================== #
#  Subcommands
# ===================================================================== #

@cli.command("is-pe")
@click.argument("file", type=click.Path(dir_okay=False))
@click.pass_context
def is_pe_command(ctx: click.Context, file: str) -> None:
    """Report whether FILE is a PE image."""
    engine: PETableEngine = ctx.obj["engine"]
    result = _decode(ctx, file)

    fmt = ctx.obj["output_format"]
    if fmt == "json":
        _emit_json(result)
    elif fmt == "rich":
        ctx.obj["display"].display_classification(result)
    else:
        click.echo(engine.render_classification(result))

    ctx.exit(EXIT_OK if result.is_pe else EXIT_NOT_PE)


@cli.command("import-functions")
@click.argument("file", type=click.Path(dir_okay=False))
@click.pass_context
def import_functions(ctx: click.Context, file: str) -> None:
    """List the functions FILE imports, grouped by library."""
    engine: PETableEngine = ctx.obj["engine"]
    result = _decode(ctx, file)
    _render_table(ctx, result, engine.render_imports, "display_imports")


@cli.command("export-functions")
@click.argument("file", type=click.Path(dir_okay=False))
@click.pass_context
def export_functions(ctx: click.Context, file: str) -> None:
    """List the functions FILE exports by name."""
    engine: PETableEngine = ctx.obj["engine"]
    result = _decode(ctx, file)
    _render_table(ctx, result, engine.render_exports, "display_exports")


def _render_table(
    ctx: click.Context,
    result: DecodeResult,
    render: Callable[[DecodeResult], str],
    display_method: str,
) -> None:
    """Shared output path for the import and export listings."""
    fmt = ctx.obj["output_format"]
    if fmt == "json":
        _emit_json(result)
        ctx.exit(EXIT_OK if result.is_pe else EXIT_NOT_PE)

    try:
        text = render(result)
    except NotPEError as exc:
        ctx.obj["console"].error(f"Not PE: {exc}")
        ctx.exit(EXIT_NOT_PE)

    if fmt == "rich":
        getattr(ctx.obj["display"], display_method)(result)
    else:
        click.echo(text)


# ===================================================================== #
#  Entry Point
# ===================================================================== #

def main() -> None:
    """Main entry point for the PETable CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
