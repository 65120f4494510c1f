#!/usr/bin/env python3
"""
Main CLI Entry Point for Fund Flow

Command-line access to split calculation, fund balances, manual expense
entry and AI proposal validation.
"""

import click

from ..core.config import get_config, reload_config


@click.group()
@click.option(
    "--config-env",
    type=click.Choice(["development", "test", "production"]),
    help="Override environment configuration",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_env: str | None, verbose: bool, debug: bool) -> None:
    """
    Fund Flow - Shared Expense Tracking

    Split group expenses, track who owes whom, and check AI-generated
    transaction proposals before they are recorded.
    """
    ctx.ensure_object(dict)

    if config_env:
        import os

        os.environ["FUNDFLOW_ENV"] = config_env

    if debug:
        import logging
        import os

        os.environ["LOG_LEVEL"] = "DEBUG"
        logging.getLogger().setLevel(logging.DEBUG)
        logging.getLogger("fundflow").setLevel(logging.DEBUG)

    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug
    # An explicit environment must not reuse a configuration loaded for another one
    ctx.obj["config"] = reload_config() if config_env or debug else get_config()

    if verbose:
        click.echo(f"Environment: {ctx.obj['config'].environment.value}")
        click.echo(f"Data directory: {ctx.obj['config'].data_dir}")

    if debug:
        click.echo("Debug logging enabled")


@main.command()
@click.pass_context
def version(ctx: click.Context) -> None:
    """Show version information."""
    from fundflow import __author__, __version__

    click.echo(f"Fund Flow v{__version__}")
    click.echo(f"Author: {__author__}")


@main.command()
@click.pass_context
def config(ctx: click.Context) -> None:
    """Show current configuration."""
    config_obj = ctx.obj["config"]

    click.echo("Current Configuration:")
    click.echo(f"  Environment: {config_obj.environment.value}")
    click.echo(f"  Data Directory: {config_obj.data_dir}")
    click.echo(f"  AI Model: {config_obj.llm.default_model}")
    click.echo(f"  Google API Key: {'set' if config_obj.llm.google_api_key else 'not set'}")
    click.echo(f"  Groq API Key: {'set' if config_obj.llm.groq_api_key else 'not set'}")
    click.echo(
        f"  Tolerances: silent {config_obj.validation.silent_tolerance:g}, "
        f"reject {config_obj.validation.reject_tolerance:g}"
    )
    click.echo(f"  Poll Interval: {config_obj.refresh.poll_interval_seconds:g}s")
    click.echo(f"  Debug Mode: {config_obj.debug}")
    click.echo(f"  Log Level: {config_obj.log_level}")


from .funds import balances  # noqa: E402
from .proposals import parse, validate  # noqa: E402
from .split import split  # noqa: E402
from .transactions import add  # noqa: E402

main.add_command(split)
main.add_command(balances)
main.add_command(validate)
main.add_command(parse)
main.add_command(add)


if __name__ == "__main__":
    main()
