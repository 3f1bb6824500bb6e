from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Iterable, Optional

from loguru import logger

from dztool.models.mod import ModDescriptor
from dztool.models.profile import Profile
from dztool.utils.constants import KEYS_FOLDER
from dztool.utils.economy import (
    register_economy,
    remove_economy_folder,
    unregister_economy,
)
from dztool.utils.exception import (
    KeysFolderNotFound,
    ManifestNotFound,
    MapNameNotFound,
    ModError,
    ModFolderNotFound,
)
from dztool.utils.files import copy_tree
from dztool.utils.generic import get_map_name, rmtree
from dztool.utils.mod_utils import (
    build_startup_parameter,
    copy_keys,
    find_keys_folder,
    mod_is_outdated,
    remove_keys_for_mod,
    replace_mod_files,
)
from dztool.utils.work_pool import WorkPool
from dztool.utils.xml import analyze_types_folder, find_types_folder


@dataclass
class BatchReport:
    """Outcome of a batch install, update or uninstall."""

    operation: str
    succeeded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    startup_parameter: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.failed

    def fail(self, mod: str, error: BaseException | str) -> None:
        logger.error(f"Failed to {self.operation} {mod}: {error}")
        self.failed[mod] = str(error)


class ModsController:
    """
    Installs, updates and removes mods of one server profile.

    Tree copies run on the pool. Everything touching cfgeconomycore.xml
    runs on the calling thread after the pool has been joined, so manifest
    edits for different mods never overlap.

    A failure only affects the mod it happened to; completed mods are not
    rolled back.
    """

    def __init__(self, profile: Profile, pool: WorkPool) -> None:
        self.profile = profile
        self.pool = pool

    @property
    def workdir(self) -> Path:
        return self.profile.workdir

    @property
    def workshop(self) -> Path:
        return self.profile.workshop

    def available_mods(self) -> list[str]:
        """
        Workshop mods that are not installed in this profile yet.
        """
        if not self.workshop.is_dir():
            raise ModFolderNotFound(f"Workshop folder not found: {self.workshop}")
        return sorted(
            entry.name
            for entry in self.workshop.iterdir()
            if entry.is_dir() and entry.name not in self.profile.installed_mods
        )

    def _submit_captured(
        self,
        mod: str,
        errors: dict[str, BaseException],
        lock: Lock,
        func: Callable[..., Any],
        *args: Any,
    ) -> None:
        def task() -> None:
            try:
                func(*args)
            except Exception as e:
                with lock:
                    errors.setdefault(mod, e)

        self.pool.submit(task)

    def _submit_copy_jobs(
        self, mods: list[str], copy_func: Callable[[Path, Path], None]
    ) -> dict[str, BaseException]:
        """
        Copy each mod's files and keys on the pool and wait for all of them.

        :return: First error per mod
        """
        errors: dict[str, BaseException] = {}
        lock = Lock()
        for mod in mods:
            source = self.workshop / mod
            self._submit_captured(mod, errors, lock, copy_func, source, self.workdir / mod)
            keys_folder = find_keys_folder(source)
            if keys_folder is not None:
                self._submit_captured(
                    mod, errors, lock, copy_keys, keys_folder, self.workdir / KEYS_FOLDER
                )
            else:
                logger.debug(f"No keys folder found for {mod}")
        self.pool.join()
        return errors

    def _register_mod(self, mod: str) -> bool:
        """
        Extract the mod's economy data and register it in the mission.

        :return: True if a block was registered
        """
        types_folder = find_types_folder(self.workshop / mod)
        if types_folder is None:
            logger.info(f"No types folder found for {mod}")
            return False

        result = analyze_types_folder(types_folder)
        for error in result.errors:
            logger.warning(f"Skipped economy file of {mod}: {error}")
        if result.is_empty:
            logger.info(f"No types, spawnable types or events found for {mod}")
            return False

        map_name = get_map_name(self.workdir)
        register_economy(
            self.workdir,
            map_name,
            ModDescriptor(mod).short_name,
            result.types,
            result.spawnable_types,
            result.events,
        )
        return True

    def _unregister_mod(self, mod: str) -> None:
        map_name = get_map_name(self.workdir)
        short_name = ModDescriptor(mod).short_name
        unregister_economy(self.workdir, map_name, short_name)
        remove_economy_folder(self.workdir, map_name, short_name)

    def _existing_workshop_mods(self, mods: Iterable[str], report: BatchReport) -> list[str]:
        found = []
        for mod in mods:
            if (self.workshop / mod).is_dir():
                found.append(mod)
            else:
                report.fail(mod, ModFolderNotFound(f"Mod folder not found: {self.workshop / mod}"))
        return found

    def install_mods(self, mods: Iterable[str]) -> BatchReport:
        """
        Copy mods from the workshop into the server and register their economy data.
        """
        report = BatchReport("install")
        to_install = []
        for mod in self._existing_workshop_mods(mods, report):
            if mod in self.profile.installed_mods:
                logger.warning(f"{mod} is already installed, use update instead")
                report.skipped.append(mod)
            else:
                to_install.append(mod)

        errors = self._submit_copy_jobs(to_install, copy_tree)
        for mod in to_install:
            if mod in errors:
                report.fail(mod, errors[mod])
                continue
            try:
                self._register_mod(mod)
            except ModError as e:
                report.fail(mod, e)
                continue
            logger.info(f"Installed {mod}")
            report.succeeded.append(mod)

        self.profile.add_installed_mods(report.succeeded)
        report.startup_parameter = build_startup_parameter(self.profile.installed_mods)
        return report

    def outdated_mods(self, mods: Optional[Iterable[str]] = None) -> BatchReport:
        """
        Compare installed mods with their workshop copies without changing anything.

        Outdated mods are listed as succeeded, current ones as skipped.
        """
        report = BatchReport("check")
        if mods is None:
            mods = list(self.profile.installed_mods)
        for mod in self._existing_workshop_mods(mods, report):
            try:
                outdated = mod_is_outdated(self.workshop / mod, self.workdir / mod, self.pool)
            except (OSError, ModError) as e:
                report.fail(mod, e)
                continue
            if outdated:
                report.succeeded.append(mod)
            else:
                report.skipped.append(mod)
        return report

    def update_mods(self, mods: Optional[Iterable[str]] = None) -> BatchReport:
        """
        Replace every outdated mod with its workshop copy and refresh its
        economy registration. Defaults to all installed mods.
        """
        check = self.outdated_mods(mods)
        report = BatchReport(
            "update", skipped=list(check.skipped), failed=dict(check.failed)
        )
        stale = check.succeeded

        errors = self._submit_copy_jobs(stale, replace_mod_files)
        for mod in stale:
            if mod in errors:
                report.fail(mod, errors[mod])
                continue
            try:
                try:
                    self._unregister_mod(mod)
                except (MapNameNotFound, ManifestNotFound) as e:
                    logger.debug(f"No economy registration to refresh for {mod}: {e}")
                self._register_mod(mod)
            except ModError as e:
                report.fail(mod, e)
                continue
            logger.info(f"Updated {mod}")
            report.succeeded.append(mod)

        self.profile.add_installed_mods(report.succeeded)
        report.startup_parameter = build_startup_parameter(self.profile.installed_mods)
        return report

    def uninstall_mods(self, mods: Iterable[str]) -> BatchReport:
        """
        Remove mods from the server: economy block, economy folder, keys and files.
        """
        report = BatchReport("uninstall")
        for mod in mods:
            target = self.workdir / mod
            try:
                self._unregister_mod(mod)
                if target.is_dir():
                    try:
                        remove_keys_for_mod(self.workdir, target)
                    except KeysFolderNotFound as e:
                        logger.warning(f"Keys of {mod} not removed: {e}")
                    rmtree(target)
                else:
                    logger.warning(f"{mod} has no folder in {self.workdir}")
            except ModError as e:
                report.fail(mod, e)
                continue
            logger.info(f"Uninstalled {mod}")
            report.succeeded.append(mod)

        self.profile.remove_installed_mods(report.succeeded)
        report.startup_parameter = build_startup_parameter(self.profile.installed_mods)
        return report
