"""
Registration of a mod's central economy files in the mission's
cfgeconomycore.xml.

A mod owns exactly one block in the manifest:

	<!-- Loo -->
	<ce folder="Loo_ce">
		<file name="Loo_types.xml" type="types" />
	</ce>

Blocks are only ever inserted or removed as a whole and every other line
of the manifest is kept byte for byte, line endings included.
"""

from pathlib import Path
from typing import Optional, Sequence

from loguru import logger

from dztool.models.economy import Event, SpawnableType, Type
from dztool.utils.constants import (
    ECONOMY_CORE_CLOSING_TAG,
    ECONOMY_CORE_FILE,
    ECONOMY_FILES,
    MISSIONS_FOLDER,
)
from dztool.utils.exception import (
    CreateDirError,
    InvalidManifestFormat,
    ManifestNotFound,
    ReadFileError,
    WriteFileError,
)
from dztool.utils.generic import rmtree
from dztool.utils.xml import write_economy_file


def mission_path(workdir: str | Path, map_name: str) -> Path:
    return Path(workdir) / MISSIONS_FOLDER / map_name


def manifest_path(workdir: str | Path, map_name: str) -> Path:
    return mission_path(workdir, map_name) / ECONOMY_CORE_FILE


def ce_folder_name(mod_short_name: str) -> str:
    return f"{mod_short_name}_ce"


def economy_folder(workdir: str | Path, map_name: str, mod_short_name: str) -> Path:
    return mission_path(workdir, map_name) / ce_folder_name(mod_short_name)


def economy_file_name(mod_short_name: str, root_tag: str) -> str:
    suffix, _ = ECONOMY_FILES[root_tag]
    return f"{mod_short_name}_{suffix}"


def build_block(mod_short_name: str, root_tags: Sequence[str], newline: str) -> list[str]:
    """
    Lines of a manifest block registering the given economy files.
    """
    lines = [
        f"\t<!-- {mod_short_name} -->",
        f'\t<ce folder="{ce_folder_name(mod_short_name)}">',
    ]
    for root_tag in root_tags:
        _, file_type = ECONOMY_FILES[root_tag]
        lines.append(
            f'\t\t<file name="{economy_file_name(mod_short_name, root_tag)}" '
            f'type="{file_type}" />'
        )
    lines.append("\t</ce>")
    return [line + newline for line in lines]


def strip_block(lines: list[str], mod_short_name: str) -> list[str]:
    """
    Drop the mod's block from the manifest lines.

    The identifying comment or the opening ce line starts skipping; every
    line up to and including the next line that is exactly </ce> (ignoring
    surrounding whitespace) is removed.
    """
    comment = f"<!-- {mod_short_name} -->"
    opening = f'<ce folder="{ce_folder_name(mod_short_name)}">'

    kept: list[str] = []
    skipping = False
    for line in lines:
        if not skipping and (comment in line or opening in line):
            skipping = True
            continue
        if skipping:
            if line.strip() == "</ce>":
                skipping = False
            continue
        kept.append(line)
    return kept


def _read_manifest(path: Path) -> str:
    if not path.is_file():
        raise ManifestNotFound(f"Economy manifest not found: {path}")
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except OSError as e:
        raise ReadFileError(f"Failed to read {path}: {e}", path) from e


def _write_manifest(path: Path, lines: list[str]) -> None:
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write("".join(lines))
    except OSError as e:
        logger.error(f"Failed to write {path}: {e}")
        raise WriteFileError(f"Failed to write {path}: {e}", path) from e


def register_economy(
    workdir: str | Path,
    map_name: str,
    mod_short_name: str,
    types: Sequence[Type],
    spawnable_types: Sequence[SpawnableType],
    events: Sequence[Event],
) -> Optional[Path]:
    """
    Write the mod's economy files and register them in cfgeconomycore.xml.

    Nothing happens if all three lists are empty. Otherwise each non-empty
    list is written to its own file in mpmissions/<map>/<short>_ce/ and a
    block listing them is inserted right before the closing economycore
    tag. An existing block for the same mod is replaced.

    :param workdir: Server working directory
    :param map_name: Mission folder name
    :param mod_short_name: ModDescriptor.short_name of the mod
    :return: The mod's economy folder, or None if there was nothing to register
    :raises ManifestNotFound: If the mission has no cfgeconomycore.xml
    :raises InvalidManifestFormat: If the manifest has no closing economycore line
    """
    if not (types or spawnable_types or events):
        logger.debug(f"No economy records for {mod_short_name}, skipping registration")
        return None

    manifest = manifest_path(workdir, map_name)
    content = _read_manifest(manifest)
    newline = "\r\n" if "\r\n" in content else "\n"
    lines = strip_block(content.splitlines(keepends=True), mod_short_name)

    end_index = next(
        (i for i, line in enumerate(lines) if line.strip() == ECONOMY_CORE_CLOSING_TAG),
        None,
    )
    if end_index is None:
        raise InvalidManifestFormat(
            f"Could not find closing {ECONOMY_CORE_CLOSING_TAG} tag in {manifest}"
        )

    folder = economy_folder(workdir, map_name, mod_short_name)
    try:
        folder.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Failed to create directory {folder}: {e}")
        raise CreateDirError(f"Failed to create directory {folder}: {e}", folder) from e

    written: list[str] = []
    for root_tag, records in (
        (Type.ROOT_TAG, types),
        (SpawnableType.ROOT_TAG, spawnable_types),
        (Event.ROOT_TAG, events),
    ):
        if records:
            write_economy_file(
                records, root_tag, folder / economy_file_name(mod_short_name, root_tag)
            )
            written.append(root_tag)

    lines[end_index:end_index] = build_block(mod_short_name, written, newline)
    _write_manifest(manifest, lines)

    logger.info(f"Registered {', '.join(written)} for {mod_short_name} in {manifest}")
    return folder


def unregister_economy(workdir: str | Path, map_name: str, mod_short_name: str) -> bool:
    """
    Remove the mod's block from cfgeconomycore.xml.

    Running it for a mod without a block, or twice in a row, leaves the
    manifest untouched.

    :return: True if a block was removed
    :raises ManifestNotFound: If the mission has no cfgeconomycore.xml
    """
    manifest = manifest_path(workdir, map_name)
    lines = _read_manifest(manifest).splitlines(keepends=True)
    kept = strip_block(lines, mod_short_name)
    if len(kept) == len(lines):
        logger.debug(f"No economy block for {mod_short_name} in {manifest}")
        return False

    _write_manifest(manifest, kept)
    logger.debug(f"Successfully removed CE entries for {mod_short_name}")
    return True


def remove_economy_folder(workdir: str | Path, map_name: str, mod_short_name: str) -> None:
    """
    Delete the mod's generated economy folder if it exists.
    """
    rmtree(economy_folder(workdir, map_name, mod_short_name))
