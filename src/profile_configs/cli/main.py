"""Main CLI entry point."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from ..config import SettingsManager
from ..config.loader import find_settings_path
from ..store import create_store
from ..utils.logging import setup_logging
from .commands import (
    get_command,
    profiles_command,
    reset_encrypt_command,
    set_command,
    settings_command,
    show_command,
)


@click.group()
@click.option(
    "--settings",
    "-s",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Settings file path"
)
@click.option(
    "--profile",
    "-p",
    type=str,
    default=None,
    help="Profile to work with (default profile if omitted)"
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    default=None,
    help="Logging level (overrides settings)"
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    help="Log file path"
)
@click.option(
    "--no-rich",
    is_flag=True,
    help="Disable rich formatting"
)
@click.pass_context
def cli(
    ctx,
    settings: Optional[Path],
    profile: Optional[str],
    log_level: Optional[str],
    log_file: Optional[Path],
    no_rich: bool,
):
    """Profile Configs - multi-profile configuration store."""
    ctx.ensure_object(dict)

    settings_manager = SettingsManager(find_settings_path(settings))
    store_settings = settings_manager.load()

    logger = setup_logging(
        level=log_level or store_settings.log_level,
        log_file=log_file,
        use_rich=not no_rich
    )
    logger.debug(f"Settings: {settings_manager.settings_path or 'defaults'}")

    store = create_store(store_settings)
    if profile:
        store.current_profile = profile

    ctx.obj["settings_manager"] = settings_manager
    ctx.obj["settings"] = store_settings
    ctx.obj["store"] = store
    ctx.obj["logger"] = logger


cli.add_command(show_command)
cli.add_command(get_command)
cli.add_command(set_command)
cli.add_command(reset_encrypt_command)
cli.add_command(profiles_command)
cli.add_command(settings_command)


def main():
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user", err=True)
        sys.exit(130)
    except Exception as e:
        logger = logging.getLogger(__name__)
        logger.exception("Unexpected error occurred")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
