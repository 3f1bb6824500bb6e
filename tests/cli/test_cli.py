"""Tests for the dztool command line interface."""

import json
from pathlib import Path
from typing import Callable, Generator

import pytest
from click.testing import CliRunner
from loguru import logger

from dztool.cli.main import cli
from dztool.models.profile import Profile, ProfileConfig


@pytest.fixture(autouse=True)
def reset_logger() -> Generator[None, None, None]:
    """Drop the sinks the CLI adds, they point at CliRunner's captured streams."""
    yield
    logger.remove()


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def base_args(tmp_path: Path) -> list[str]:
    return [
        "--config",
        str(tmp_path / "config.json"),
        "--log-dir",
        str(tmp_path / "logs"),
    ]


@pytest.fixture
def loot_mod(make_mod: Callable[..., Path]) -> Path:
    return make_mod(
        "@Loot",
        {
            "mod.cpp": 'name = "Loot";',
            "keys/loot.bikey": b"key",
            "db/types.xml": '<types><type name="LootCrate"/></types>',
        },
    )


def test_cli_help(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    for command in ("install", "update", "uninstall", "check", "list"):
        assert command in result.output


def test_cli_version(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "dztool" in result.output


def test_install_with_folders(
    runner: CliRunner,
    base_args: list[str],
    loot_mod: Path,
    server_workdir: Path,
    workshop: Path,
    manifest_file: Path,
) -> None:
    result = runner.invoke(
        cli,
        base_args
        + [
            "install",
            "--workdir",
            str(server_workdir),
            "--workshop",
            str(workshop),
            "--workers",
            "2",
            "@Loot",
        ],
    )

    assert result.exit_code == 0, result.output
    assert '"-mod=@Loot;"' in result.output
    assert (server_workdir / "@Loot" / "mod.cpp").is_file()
    assert (server_workdir / "keys" / "loot.bikey").is_file()
    assert '<ce folder="Loo_ce">' in manifest_file.read_text()
    assert (Path(base_args[3]) / "dztool.log").is_file()


def test_install_with_profile_saves_installed_mods(
    runner: CliRunner,
    base_args: list[str],
    loot_mod: Path,
    server_workdir: Path,
    workshop: Path,
) -> None:
    config_path = Path(base_args[1])
    ProfileConfig(
        profiles=[
            Profile(
                name="Main",
                workdir_path=str(server_workdir),
                workshop_path=str(workshop),
            )
        ]
    ).save(config_path)

    result = runner.invoke(cli, base_args + ["install", "--profile", "Main", "@Loot"])

    assert result.exit_code == 0, result.output
    data = json.loads(config_path.read_text())
    assert data["profiles"][0]["installedMods"] == ["@Loot"]


def test_unknown_profile(runner: CliRunner, base_args: list[str]) -> None:
    result = runner.invoke(cli, base_args + ["check", "--profile", "Nope"])

    assert result.exit_code == 1
    assert "Profile not found: Nope" in result.output


def test_missing_target(runner: CliRunner, base_args: list[str]) -> None:
    result = runner.invoke(cli, base_args + ["update"])

    assert result.exit_code == 2
    assert "--workdir" in result.output


def test_list_and_check(
    runner: CliRunner,
    base_args: list[str],
    loot_mod: Path,
    make_mod: Callable[..., Path],
    server_workdir: Path,
    workshop: Path,
) -> None:
    make_mod("@CF", {"mod.cpp": "name"})
    target = ["--workdir", str(server_workdir), "--workshop", str(workshop)]
    runner.invoke(cli, base_args + ["install"] + target + ["@CF"])

    result = runner.invoke(cli, base_args + ["list"] + target)
    assert result.exit_code == 0, result.output
    installed, available = result.output.split("Available:")
    assert "@CF" in installed
    assert "@Loot" in available
    assert "@Loot" not in installed

    result = runner.invoke(cli, base_args + ["check"] + target)
    assert result.exit_code == 0, result.output
    assert "@CF skipped" in result.output


def test_uninstall_failure_exits_nonzero(
    runner: CliRunner,
    base_args: list[str],
    loot_mod: Path,
    server_workdir: Path,
    workshop: Path,
) -> None:
    target = ["--workdir", str(server_workdir), "--workshop", str(workshop)]
    runner.invoke(cli, base_args + ["install"] + target + ["@Loot"])
    (server_workdir / "serverDZ.cfg").unlink()

    result = runner.invoke(cli, base_args + ["uninstall"] + target + ["@Loot"])

    assert result.exit_code == 1
    assert "@Loot" in result.output
    assert (server_workdir / "@Loot").is_dir()
