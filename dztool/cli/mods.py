"""
Mod subcommands: list, check, install, update and uninstall.

Each command works either on a saved profile (--profile) or on a pair of
folders given directly (--workdir and --workshop).
"""

import sys
from pathlib import Path
from typing import Any, Callable, Optional

import click
from loguru import logger

from dztool.controllers.mods_controller import BatchReport, ModsController
from dztool.models.profile import Profile, ProfileConfig
from dztool.utils.exception import ConfigError, ModError
from dztool.utils.work_pool import WorkPool


def target_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every mod command."""
    options = [
        click.option("--profile", "profile_name", help="Name of a saved server profile."),
        click.option(
            "--workdir",
            type=click.Path(path_type=Path, file_okay=False),
            help="Server working directory (instead of --profile).",
        ),
        click.option(
            "--workshop",
            type=click.Path(path_type=Path, file_okay=False),
            help="Workshop directory holding the @mod folders (instead of --profile).",
        ),
        click.option(
            "--workers",
            type=click.IntRange(min=1),
            default=None,
            help="Number of worker threads [default: CPU count].",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def resolve_profile(
    config_path: Path,
    profile_name: Optional[str],
    workdir: Optional[Path],
    workshop: Optional[Path],
) -> tuple[Profile, Optional[ProfileConfig]]:
    """
    Pick the profile a command works on.

    Returns the profile and, for saved profiles, the config to write it back to.
    Ad hoc profiles treat every workdir folder that also exists in the
    workshop as installed.
    """
    if profile_name:
        try:
            config = ProfileConfig.load(config_path)
        except ConfigError as e:
            raise click.ClickException(str(e))
        profile = config.get(profile_name)
        if profile is None:
            raise click.ClickException(f"Profile not found: {profile_name}")
        return profile, config

    if workdir is None or workshop is None:
        raise click.UsageError("Pass --profile, or both --workdir and --workshop.")

    installed = []
    if workdir.is_dir() and workshop.is_dir():
        installed = sorted(
            entry.name
            for entry in workdir.iterdir()
            if entry.is_dir() and (workshop / entry.name).is_dir()
        )
    profile = Profile(
        name="cli",
        workdir_path=str(workdir),
        workshop_path=str(workshop),
        installed_mods=installed,
    )
    return profile, None


def echo_report(report: BatchReport) -> None:
    for mod in report.succeeded:
        click.secho(f"✓ {report.operation} {mod}", fg="green")
    for mod in report.skipped:
        click.echo(f"- {mod} skipped")
    for mod, message in report.failed.items():
        click.secho(f"✗ {mod}: {message}", fg="red", err=True)
    if report.startup_parameter is not None:
        click.echo(f"Startup parameter: {report.startup_parameter}")


def run_batch(
    ctx: click.Context,
    profile_name: Optional[str],
    workdir: Optional[Path],
    workshop: Optional[Path],
    workers: Optional[int],
    action: Callable[[ModsController], BatchReport],
    save: bool = True,
) -> None:
    config_path: Path = ctx.obj["config_path"]
    profile, config = resolve_profile(config_path, profile_name, workdir, workshop)

    with WorkPool(workers) as pool:
        controller = ModsController(profile, pool)
        try:
            report = action(controller)
        except ModError as e:
            logger.error(str(e))
            raise click.ClickException(str(e))

    echo_report(report)

    if save and config is not None:
        config.upsert(profile)
        try:
            config.save(config_path)
        except ConfigError as e:
            raise click.ClickException(str(e))

    if not report.ok:
        sys.exit(1)


@click.command("list")
@target_options
@click.pass_context
def list_mods(
    ctx: click.Context,
    profile_name: Optional[str],
    workdir: Optional[Path],
    workshop: Optional[Path],
    workers: Optional[int],
) -> None:
    """List installed mods and workshop mods that can be installed."""
    profile, _ = resolve_profile(ctx.obj["config_path"], profile_name, workdir, workshop)
    click.echo("Installed:")
    for mod in profile.installed_mods:
        click.echo(f"  {mod}")
    with WorkPool(workers or 1) as pool:
        try:
            available = ModsController(profile, pool).available_mods()
        except ModError as e:
            raise click.ClickException(str(e))
    click.echo("Available:")
    for mod in available:
        click.echo(f"  {mod}")


@click.command("check")
@target_options
@click.argument("mods", nargs=-1)
@click.pass_context
def check_mods(
    ctx: click.Context,
    profile_name: Optional[str],
    workdir: Optional[Path],
    workshop: Optional[Path],
    workers: Optional[int],
    mods: tuple[str, ...],
) -> None:
    """Show which installed mods differ from their workshop copy.

    Defaults to every installed mod. Exits with status 1 if a mod could not be checked.
    """
    run_batch(
        ctx,
        profile_name,
        workdir,
        workshop,
        workers,
        lambda controller: controller.outdated_mods(list(mods) or None),
        save=False,
    )


@click.command("install")
@target_options
@click.argument("mods", nargs=-1, required=True)
@click.pass_context
def install_mods(
    ctx: click.Context,
    profile_name: Optional[str],
    workdir: Optional[Path],
    workshop: Optional[Path],
    workers: Optional[int],
    mods: tuple[str, ...],
) -> None:
    """Install workshop mods into the server.

    \b
    Example:
      dztool install --profile MyServer @CF @Loot
    """
    run_batch(
        ctx,
        profile_name,
        workdir,
        workshop,
        workers,
        lambda controller: controller.install_mods(mods),
    )


@click.command("update")
@target_options
@click.argument("mods", nargs=-1)
@click.pass_context
def update_mods(
    ctx: click.Context,
    profile_name: Optional[str],
    workdir: Optional[Path],
    workshop: Optional[Path],
    workers: Optional[int],
    mods: tuple[str, ...],
) -> None:
    """Re-copy installed mods whose files differ from the workshop copy."""
    run_batch(
        ctx,
        profile_name,
        workdir,
        workshop,
        workers,
        lambda controller: controller.update_mods(list(mods) or None),
    )


@click.command("uninstall")
@target_options
@click.argument("mods", nargs=-1, required=True)
@click.pass_context
def uninstall_mods(
    ctx: click.Context,
    profile_name: Optional[str],
    workdir: Optional[Path],
    workshop: Optional[Path],
    workers: Optional[int],
    mods: tuple[str, ...],
) -> None:
    """Remove mods, their keys and their economy registration from the server."""
    run_batch(
        ctx,
        profile_name,
        workdir,
        workshop,
        workers,
        lambda controller: controller.uninstall_mods(mods),
    )
