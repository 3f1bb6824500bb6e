"""
Main CLI entry point for dztool.

This module defines the Click command group and registers all subcommands.
"""

from pathlib import Path
from typing import Optional

import click
from loguru import logger

from dztool.cli.mods import (
    check_mods,
    install_mods,
    list_mods,
    uninstall_mods,
    update_mods,
)
from dztool.utils.app_info import AppInfo
from dztool.utils.logging_config import setup_logger


@click.group()
@click.version_option(version=AppInfo().app_version, prog_name="dztool")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    envvar="DZTOOL_CONFIG",
    default=None,
    help="Profiles file. Can also be set via DZTOOL_CONFIG environment variable.",
)
@click.option(
    "--log-dir",
    type=click.Path(path_type=Path, file_okay=False),
    envvar="DZTOOL_LOG_DIR",
    default=None,
    help="Folder for the log file [default: platform log folder].",
)
@click.option("--debug", is_flag=True, help="Write debug records to the log file.")
@click.option("--verbose", "-v", is_flag=True, help="Show progress messages on stderr.")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[Path],
    log_dir: Optional[Path],
    debug: bool,
    verbose: bool,
) -> None:
    """dztool - DayZ server mod manager CLI

    Installs workshop mods into a server, keeps them up to date and
    registers their economy files with the mission.
    """
    log_file = setup_logger(debug=debug, verbose=verbose, log_folder=log_dir)
    logger.debug(f"Logging to {log_file}")

    if config_path is None:
        config_path = AppInfo().profiles_file
    ctx.obj = {"config_path": config_path}


# Register subcommands
cli.add_command(list_mods)
cli.add_command(check_mods)
cli.add_command(install_mods)
cli.add_command(update_mods)
cli.add_command(uninstall_mods)


if __name__ == "__main__":
    cli()
