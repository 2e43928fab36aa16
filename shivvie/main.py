"""
shivvie — CLI entrypoint.

Usage:
    shivvie --help
    shivvie exec ./my-module ./out --data '{name: demo}'
    shivvie exec gh:someone/templates#main/node-lib ./lib
    shivvie info npm:@someone/shivvie-react
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from pathlib import Path

import click
import yaml

from shivvie import __version__
from shivvie.core.observability.logging_config import (
    FILE_ENV,
    FILE_LEVEL_ENV,
    resolve_level,
    setup_logging,
)


def _parse_data(raw: str | None) -> dict:
    """Parse --data: JSON, or relaxed (YAML flow) syntax such as ``{name: demo}``."""
    if not raw:
        return {}
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise click.BadParameter(f"cannot parse data: {e}", param_hint="--data") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise click.BadParameter(
            f"expected an object, got {type(data).__name__}", param_hint="--data"
        )
    return data


@click.group()
@click.version_option(version=__version__, prog_name="shivvie")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Only report errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to shivvie.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """shivvie — scaffold projects from reusable modules."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet, environ=os.environ),
        log_file=os.environ.get(FILE_ENV),
        log_file_level=os.environ.get(FILE_LEVEL_ENV),
        quiet_third_party=not debug,
    )

    # ── Settings (shivvie.yml + SHIVVIE_* env) ───────────────────
    from shivvie.core.config.loader import load_settings
    from shivvie.core.context import set_settings
    from shivvie.core.errors import ConfigError

    try:
        set_settings(load_settings(Path(config_path) if config_path else None))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


@cli.command("exec")
@click.argument("module_ref")
@click.argument("target_dir", type=click.Path(file_okay=False))
@click.option("--data", "-d", "data", default=None, help="Input data for the module (JSON or YAML flow syntax).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def exec_command(
    ctx: click.Context,
    module_ref: str,
    target_dir: str,
    data: str | None,
    as_json: bool,
) -> None:
    """Execute a module into TARGET_DIR."""
    from shivvie.core.use_cases.exec import run_exec

    input_data = _parse_data(data)
    result = asyncio.run(run_exec(module_ref, Path(target_dir), input_data))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
        sys.exit(0 if result.ok else 1)

    if not result.ok:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)

    report = result.report
    if report is not None and not ctx.obj.get("quiet", False):
        click.secho(f"✅ {module_ref} → {result.target_dir}", fg="green", bold=True)
        click.echo(f"   Actions: {report.applied} applied, {report.skipped} skipped")


@cli.command("info")
@click.argument("module_ref")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def info_command(module_ref: str, as_json: bool) -> None:
    """Show the input a module accepts."""
    from shivvie.core.use_cases.info import get_info

    result = asyncio.run(get_info(module_ref))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
        sys.exit(0 if result.error is None else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)

    title = result.input_schema.get("title", "Input")
    click.secho(f"\n📦 {module_ref}", fg="cyan", bold=True)
    click.echo(f"   {result.module_dir}")
    click.echo()
    click.secho(f"   {title}:", fg="white", bold=True)
    if not result.fields:
        click.echo("     (no input)")
    for name, type_name, required in result.fields:
        marker = "" if required else " (optional)"
        click.echo(f"     • {name}: {type_name}{marker}")
    click.echo()


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
