import hashlib
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Iterator, Optional

from loguru import logger

from dztool.utils.constants import (
    HASH_CHUNK_SIZE,
    IGNORED_FILE_NAMES,
    SMALL_FILE_MARKER,
    SMALL_FILE_THRESHOLD,
)
from dztool.utils.work_pool import WorkPool


@dataclass(frozen=True)
class FileRecord:
    """
    Identity of one file inside a mod folder.

    identity is the SHA-256 hex digest for files above the small file
    threshold and SMALL_FILE_MARKER otherwise.
    """

    path: str  # relative to the tree root, posix separators
    size: int
    identity: str

    @property
    def is_small(self) -> bool:
        return self.identity == SMALL_FILE_MARKER


class ChecksumIndex(Mapping[str, FileRecord]):
    """
    Read-only mapping of relative path -> FileRecord for one directory tree.
    """

    def __init__(self, root: Path, records: dict[str, FileRecord]) -> None:
        self.root = root
        self._records = dict(records)

    def __getitem__(self, key: str) -> FileRecord:
        return self._records[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"ChecksumIndex(root={str(self.root)!r}, files={len(self)})"


def is_ignored_file(name: str) -> bool:
    """
    Hidden entries and Windows shell files never take part in comparisons.
    """
    return name.startswith(".") or name.lower() in IGNORED_FILE_NAMES


def calculate_file_hash(path: Path, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """
    SHA-256 of a file, read in fixed size chunks.
    """
    hasher = hashlib.sha256()
    with open(path, "rb") as f:
        while chunk := f.read(chunk_size):
            hasher.update(chunk)
    return hasher.hexdigest()


def build_checksum_index(
    root: str | Path,
    pool: WorkPool,
    small_file_threshold: int = SMALL_FILE_THRESHOLD,
) -> ChecksumIndex:
    """
    Walk a directory and record the size and identity of every regular file.

    The walk happens on the calling thread, stat and hashing of each file is
    submitted to the pool. Only the first I/O error raised by a worker is
    kept and re-raised once the pool has been joined; later errors from the
    same build are dropped.

    A root that does not exist produces an empty index.

    :param root: Directory to index
    :param pool: Pool the per-file work is submitted to
    :param small_file_threshold: Files at or below this many bytes are not hashed
    :return: The finished index
    :raises OSError: The first error any worker hit
    """
    root = Path(root)
    if not root.is_dir():
        logger.debug(f"Checksum root does not exist, using empty index: {root}")
        return ChecksumIndex(root, {})

    records: dict[str, FileRecord] = {}
    first_error: list[Optional[OSError]] = [None]
    lock = Lock()

    def record_error(e: OSError) -> None:
        with lock:
            if first_error[0] is None:
                first_error[0] = e
            else:
                logger.debug(f"Dropping additional checksum error: {e}")

    def index_file(path: Path) -> None:
        try:
            size = path.stat().st_size
            if size > small_file_threshold:
                identity = calculate_file_hash(path)
            else:
                identity = SMALL_FILE_MARKER
            rel_path = path.relative_to(root).as_posix()
        except OSError as e:
            record_error(e)
            return
        record = FileRecord(path=rel_path, size=size, identity=identity)
        with lock:
            records[rel_path] = record

    file_count = 0
    for dirpath, dirnames, filenames in os.walk(root, onerror=record_error):
        dirnames[:] = [d for d in dirnames if not is_ignored_file(d)]
        for filename in filenames:
            if is_ignored_file(filename):
                continue
            path = Path(dirpath) / filename
            if not path.is_file():
                continue
            file_count += 1
            pool.submit(lambda path=path: index_file(path))

    logger.debug(f"Found {file_count} files to check in {root}")
    pool.join()

    with lock:
        error = first_error[0]
    if error is not None:
        logger.error(f"Failed to calculate checksums for {root}: {error}")
        raise error

    return ChecksumIndex(root, records)
