import shutil
from pathlib import Path

from loguru import logger

from dztool.utils.checksum import ChecksumIndex
from dztool.utils.constants import COPY_CHUNK_SIZE, LARGE_FILE_THRESHOLD
from dztool.utils.exception import CopyFileError, CreateDirError
from dztool.utils.generic import format_file_size


def needs_update(index_a: ChecksumIndex, index_b: ChecksumIndex) -> bool:
    """
    Decide whether the tree behind index_b has to be replaced by the tree
    behind index_a.

    Small files only compare by size, so two small files with the same
    length but different bytes count as equal.

    :param index_a: Index of the source of truth (workshop copy)
    :param index_b: Index of the installed copy
    :return: True if the trees differ
    """
    if len(index_a) != len(index_b):
        logger.info(
            f"Different number of files detected ({len(index_a)} vs {len(index_b)})"
        )
        return True

    for path, record in index_a.items():
        other = index_b.get(path)
        if other is None:
            logger.info(f"Missing file in installed copy: {path}")
            return True
        if other.size != record.size or other.identity != record.identity:
            logger.info(f"File {path} has different size or hash")
            return True

    return False


def copy_large_file(
    source: Path, target: Path, chunk_size: int = COPY_CHUNK_SIZE
) -> int:
    """
    Stream a file to its target in fixed size chunks so memory use does not
    depend on the file size.

    :return: Number of bytes written
    """
    written = 0
    with open(source, "rb") as src, open(target, "wb") as dst:
        while chunk := src.read(chunk_size):
            dst.write(chunk)
            written += len(chunk)
    shutil.copymode(source, target)
    return written


def copy_tree(
    source: str | Path,
    target: str | Path,
    large_file_threshold: int = LARGE_FILE_THRESHOLD,
    chunk_size: int = COPY_CHUNK_SIZE,
) -> None:
    """
    Recursively copy source into target, creating target if needed.

    Files larger than large_file_threshold are streamed in chunks. The first
    failure aborts the copy; whatever was already copied stays in place.

    :param source: Directory to copy from
    :param target: Directory to copy into
    :raises CreateDirError: If a target directory cannot be created
    :raises CopyFileError: If a file cannot be copied, path is the source file
    """
    source = Path(source)
    target = Path(target)

    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Failed to create directory {target}: {e}")
        raise CreateDirError(f"Failed to create directory {target}: {e}", target) from e

    try:
        entries = sorted(source.iterdir())
    except OSError as e:
        logger.error(f"Failed to read directory {source}: {e}")
        raise CopyFileError(f"Failed to read directory {source}: {e}", source) from e

    for source_path in entries:
        target_path = target / source_path.name
        if source_path.is_dir():
            copy_tree(source_path, target_path, large_file_threshold, chunk_size)
            continue
        if not source_path.is_file():
            continue

        try:
            file_size = source_path.stat().st_size
            if file_size > large_file_threshold:
                logger.debug(
                    f"Copying large file ({format_file_size(file_size)}): {source_path}"
                )
                copy_large_file(source_path, target_path, chunk_size)
            else:
                shutil.copy(source_path, target_path)
        except OSError as e:
            logger.error(f"Failed to copy file {source_path}: {e}")
            raise CopyFileError(
                f"Failed to copy file {source_path}: {e}", source_path
            ) from e
