import os
import re
import shutil
from errno import EACCES
from pathlib import Path
from stat import S_IRWXG, S_IRWXO, S_IRWXU
from typing import Any, Callable

from loguru import logger

from dztool.utils.constants import SERVER_CONFIG_FILE
from dztool.utils.exception import MapNameNotFound, RemoveFileError

# template="dayzOffline.chernarusplus";
MISSION_TEMPLATE_PATTERN = re.compile(r"template\s*=\s*\"(\w+\.\w+)\"")
MAP_NAME_PATTERN = re.compile(r"(\w+\.\w+)")


def attempt_chmod(
    func: Callable[[str], Any], path: str, excinfo: BaseException
) -> None:
    """
    onexc handler for shutil.rmtree. Retries removals that failed on
    read-only entries after making them writable and re-raises anything else.
    """
    if (
        isinstance(excinfo, OSError)
        and func in (os.rmdir, os.remove, os.unlink)
        and excinfo.errno == EACCES
    ):
        os.chmod(path, S_IRWXU | S_IRWXG | S_IRWXO)  # 0777
        func(path)
        return
    raise excinfo


def rmtree(path: str | Path) -> None:
    """Wrapper for shutil.rmtree that reports which directory failed.

    :param path: Directory to delete. Missing directories are ignored.
    :raises RemoveFileError: If the path is not a directory or cannot be removed.
    """
    path = Path(path)

    if not path.exists():
        logger.debug(f"Nothing to remove, directory does not exist: {path}")
        return

    if not path.is_dir():
        logger.error(f"rmtree path is not a directory: {path}")
        raise RemoveFileError(f"Path is not a directory: {path}", path)

    try:
        shutil.rmtree(path, onexc=attempt_chmod)
    except OSError as e:
        logger.error(f"Failed to remove directory {path}: {e}")
        raise RemoveFileError(f"Failed to remove directory {path}: {e}", path) from e
    logger.debug(f"Removed directory: {path}")


def format_file_size(size_in_bytes: int) -> str:
    """Format bytes to a human-readable string."""
    if size_in_bytes < 1024:
        return f"{size_in_bytes} B"
    elif size_in_bytes < 1024 * 1024:
        return f"{size_in_bytes / 1024:.1f} KB"
    elif size_in_bytes < 1024 * 1024 * 1024:
        return f"{size_in_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_in_bytes / (1024 * 1024 * 1024):.2f} GB"


def get_map_name(workdir: str | Path) -> str:
    """
    Read the mission name from the server's serverDZ.cfg.

    The mission template entry is preferred. If there is none, the first
    token shaped like word.word anywhere in the file is used.

    :param workdir: Server working directory
    :return: The mission folder name, e.g. dayzOffline.chernarusplus
    :raises MapNameNotFound: If the config file or a matching token is missing
    """
    cfg_path = Path(workdir) / SERVER_CONFIG_FILE
    if not cfg_path.is_file():
        raise MapNameNotFound(f"Server config not found: {cfg_path}")

    try:
        contents = cfg_path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise MapNameNotFound(f"Could not read server config {cfg_path}: {e}") from e

    match = MISSION_TEMPLATE_PATTERN.search(contents) or MAP_NAME_PATTERN.search(
        contents
    )
    if match is None:
        raise MapNameNotFound(f"No map name found in {cfg_path}")

    map_name = match.group(1)
    logger.debug(f"Resolved map name {map_name} from {cfg_path}")
    return map_name
