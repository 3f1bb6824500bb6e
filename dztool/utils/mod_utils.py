import shutil
from pathlib import Path
from typing import Iterable, Optional

from loguru import logger

from dztool.utils.checksum import build_checksum_index
from dztool.utils.constants import KEY_EXTENSION, KEYS_FOLDER
from dztool.utils.exception import (
    CopyFileError,
    CreateDirError,
    KeysFolderNotFound,
    ModFolderNotFound,
    ReadFileError,
    RemoveFileError,
)
from dztool.utils.files import copy_tree, needs_update
from dztool.utils.generic import rmtree
from dztool.utils.work_pool import WorkPool


def find_keys_folder(mod_path: str | Path) -> Optional[Path]:
    """
    Get the mod's keys folder (matched case-insensitively).

    Args:
        mod_path: Mod folder to search.

    Returns:
        Path of the keys folder if found, None otherwise.
    """
    mod_path = Path(mod_path)
    if not mod_path.is_dir():
        return None
    for entry in sorted(mod_path.iterdir()):
        if entry.is_dir() and entry.name.lower() == KEYS_FOLDER:
            return entry
    return None


def _key_files(keys_folder: Path) -> list[Path]:
    try:
        entries = sorted(keys_folder.iterdir())
    except OSError as e:
        logger.error(f"Failed to read keys folder {keys_folder}: {e}")
        raise ReadFileError(f"Failed to read keys folder {keys_folder}: {e}", keys_folder) from e
    return [
        path
        for path in entries
        if path.is_file() and path.suffix.lower() == KEY_EXTENSION
    ]


def _require_workshop_mod(workshop_mod: str | Path) -> Path:
    workshop_mod = Path(workshop_mod)
    if not workshop_mod.is_dir():
        raise ModFolderNotFound(f"Mod folder not found: {workshop_mod}")
    return workshop_mod


def copy_keys(keys_folder: str | Path, target_dir: str | Path) -> list[Path]:
    """
    Copy the .bikey files of a mod into the server's keys folder.

    Keys that already exist in the target are left alone.

    Args:
        keys_folder: The mod's keys folder.
        target_dir: The server's keys folder, created if missing.

    Returns:
        The key files that were copied.
    """
    keys_folder = Path(keys_folder)
    target_dir = Path(target_dir)
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CreateDirError(f"Failed to create directory {target_dir}: {e}", target_dir) from e

    copied = []
    for source_path in _key_files(keys_folder):
        target_path = target_dir / source_path.name
        if target_path.exists():
            logger.debug(f"Key already present, skipping: {source_path.name}")
            continue
        try:
            shutil.copy(source_path, target_path)
        except OSError as e:
            logger.error(f"Failed to copy key {source_path}: {e}")
            raise CopyFileError(f"Failed to copy key {source_path}: {e}", source_path) from e
        copied.append(target_path)
    logger.debug(f"Copied {len(copied)} key(s) from {keys_folder}")
    return copied


def remove_keys_for_mod(workdir: str | Path, mod_path: str | Path) -> list[Path]:
    """
    Remove the keys a mod ships from the server's keys folder.

    Args:
        workdir: Server working directory.
        mod_path: Installed mod folder whose keys folder lists the keys to remove.

    Returns:
        The key files that were removed.

    Raises:
        KeysFolderNotFound: If the server has no keys folder.
        RemoveFileError: If a key cannot be deleted.
    """
    workdir_keys = Path(workdir) / KEYS_FOLDER
    if not workdir_keys.is_dir():
        raise KeysFolderNotFound(f"Server keys folder not found: {workdir_keys}")

    mod_keys_folder = find_keys_folder(mod_path)
    if mod_keys_folder is None:
        logger.debug(f"No keys folder in {mod_path}")
        return []

    removed = []
    for source_path in _key_files(mod_keys_folder):
        target_path = workdir_keys / source_path.name
        if not target_path.exists():
            continue
        logger.info(f"Removing bikey: {source_path.name}")
        try:
            target_path.unlink()
        except OSError as e:
            logger.error(f"Failed to remove bikey {source_path.name}: {e}")
            raise RemoveFileError(
                f"Failed to remove bikey {source_path.name}: {e}", target_path
            ) from e
        removed.append(target_path)
    return removed


def build_startup_parameter(mods: Iterable[str]) -> str:
    """
    Server launch argument loading the given mods, e.g. "-mod=@A;@B;".
    """
    return '"-mod=' + "".join(f"{mod};" for mod in mods) + '"'


def mod_is_outdated(
    workshop_mod: str | Path, workdir_mod: str | Path, pool: WorkPool
) -> bool:
    """
    Compare the workshop copy of a mod against the installed one by content.

    Raises:
        OSError: The first error hit while indexing either tree.
    """
    logger.debug(f"Calculating checksums for workshop version of {workshop_mod}")
    workshop_index = build_checksum_index(workshop_mod, pool)
    logger.debug(f"Calculating checksums for installed version of {workdir_mod}")
    workdir_index = build_checksum_index(workdir_mod, pool)
    return needs_update(workshop_index, workdir_index)


def replace_mod_files(workshop_mod: str | Path, workdir_mod: str | Path) -> None:
    """
    Delete the installed copy and copy the workshop copy in its place.

    The mod is absent from the server between the two steps. A missing
    workshop copy raises ModFolderNotFound before anything is deleted.
    """
    workshop_mod = _require_workshop_mod(workshop_mod)
    rmtree(workdir_mod)
    copy_tree(workshop_mod, workdir_mod)


def update_mod(
    workshop_mod: str | Path, workdir_mod: str | Path, pool: WorkPool
) -> bool:
    """
    Bring an installed mod in line with its workshop copy.

    Args:
        workshop_mod: Mod folder in the workshop directory.
        workdir_mod: Mod folder in the server working directory (may not exist yet).
        pool: Pool used for checksums.

    Returns:
        True if the mod was re-copied, False if it was already current.

    Raises:
        ModFolderNotFound: If the workshop copy does not exist. The installed
            copy is left untouched.
    """
    workshop_mod = _require_workshop_mod(workshop_mod)
    if not mod_is_outdated(workshop_mod, workdir_mod, pool):
        logger.info(f"UP-TO-DATE: {Path(workdir_mod).name}")
        return False

    logger.info(f"UPDATE AVAILABLE: {Path(workdir_mod).name}, replacing installed copy")
    replace_mod_files(workshop_mod, workdir_mod)
    return True
