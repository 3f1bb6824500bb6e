import re
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any, Optional, Sequence, TypeVar

from loguru import logger
from lxml import etree

from dztool.models.economy import EconomyRecord, Event, SpawnableType, Type
from dztool.utils.constants import XML_DECLARATION
from dztool.utils.exception import EconomyParseError, ReadFileError, WriteFileError

RecordT = TypeVar("RecordT", Type, SpawnableType, Event)

ROOT_TAG_PATTERN = re.compile(rb"<(types|spawnabletypes|events)[\s>/]")
COMMENT_PATTERN = re.compile(rb"<!--.*?-->", re.DOTALL)
DECLARATION_PATTERN = re.compile(r"^\s*<\?xml[^>]*\?>")


@dataclass
class ExtractionResult:
    """
    Everything found in a mod's economy data folder. Files that failed to
    parse are listed in errors and contribute no records.
    """

    types: list[Type] = field(default_factory=list)
    spawnable_types: list[SpawnableType] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)
    errors: list[EconomyParseError] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.types or self.spawnable_types or self.events)


def synthesize_root(data: bytes) -> bytes:
    """
    Mods often ship a bare list of <type> or <event> elements without the
    enclosing root. Wrap such content in the root the elements imply so it
    can be read as a document. Content that already has a types,
    spawnabletypes or events root is returned unchanged.

    :param data: Raw file contents
    :return: A well formed document (as far as the elements themselves are)
    """
    # Root tags mentioned inside comments do not count
    uncommented = COMMENT_PATTERN.sub(b"", data)
    if ROOT_TAG_PATTERN.search(uncommented):
        return data

    text = data.decode("utf-8-sig", errors="replace")
    text = DECLARATION_PATTERN.sub("", text, count=1)
    if b"<type" in uncommented:
        root_tag = Type.ROOT_TAG
    elif b"<event" in uncommented:
        root_tag = Event.ROOT_TAG
    else:
        root_tag = Type.ROOT_TAG
    logger.debug(f"No root element present, wrapping content in <{root_tag}>")
    return f"{XML_DECLARATION}\n<{root_tag}>\n{text}\n</{root_tag}>".encode("utf-8")


def extract_records(file_path: str | Path, record_cls: type[RecordT]) -> list[RecordT]:
    """
    Read every top level record element of a central economy file.

    Elements directly below the root whose tag matches record_cls.TAG are
    converted one at a time; comments and any other elements are skipped.
    A single malformed record fails the whole file.

    :param file_path: types, cfgspawnabletypes or events file
    :param record_cls: Record class to build
    :return: Records in file order
    :raises EconomyParseError: If the file cannot be read or a record is malformed
    """
    file_path = Path(file_path)
    try:
        data = synthesize_root(file_path.read_bytes())
    except OSError as e:
        raise EconomyParseError(file_path, e) from e

    records: list[RecordT] = []
    depth = 0
    try:
        for event, elem in etree.iterparse(
            BytesIO(data),
            events=("start", "end"),
            remove_comments=True,
            resolve_entities=False,
        ):
            if event == "start":
                depth += 1
                continue
            if depth == 2:
                if elem.tag == record_cls.TAG:
                    records.append(record_cls.from_element(elem))
                else:
                    logger.debug(f"Skipping <{elem.tag}> in {file_path}")
                elem.clear()
            depth -= 1
    except (etree.XMLSyntaxError, ValueError) as e:
        logger.debug(f"Failed to parse {record_cls.__name__} data in {file_path}: {e}")
        raise EconomyParseError(file_path, e) from e

    return records


def extract_types(file_path: str | Path) -> list[Type]:
    return extract_records(file_path, Type)


def extract_spawnable_types(file_path: str | Path) -> list[SpawnableType]:
    return extract_records(file_path, SpawnableType)


def extract_events(file_path: str | Path) -> list[Event]:
    return extract_records(file_path, Event)


def analyze_types_folder(folder_path: str | Path) -> ExtractionResult:
    """
    Extract every economy record from the files directly inside folder_path.

    Files are classified by their lower-cased name:
    - contains "types" but not "spawnable": types
    - contains "spawnabletypes": spawnable types
    - contains "events": events

    A file that fails to parse is logged and recorded in the result's errors;
    its siblings are still processed.

    :param folder_path: Folder located by find_types_folder
    :return: Records of all three kinds, each possibly empty
    :raises ReadFileError: If the folder itself cannot be listed
    """
    folder_path = Path(folder_path)
    result = ExtractionResult()
    logger.debug(f"Scanning directory: {folder_path}")

    try:
        entries = sorted(folder_path.iterdir())
    except OSError as e:
        logger.error(f"Failed to read directory {folder_path}: {e}")
        raise ReadFileError(f"Failed to read directory {folder_path}: {e}", folder_path) from e

    for path in entries:
        if not path.is_file():
            continue
        file_name = path.name.lower()
        try:
            if "types" in file_name and "spawnable" not in file_name:
                types = extract_types(path)
                result.types.extend(types)
                count = len(types)
            elif "spawnabletypes" in file_name:
                spawnable_types = extract_spawnable_types(path)
                result.spawnable_types.extend(spawnable_types)
                count = len(spawnable_types)
            elif "events" in file_name:
                events = extract_events(path)
                result.events.extend(events)
                count = len(events)
            else:
                continue
        except EconomyParseError as e:
            logger.error(str(e))
            result.errors.append(e)
            continue
        logger.debug(f"Found {count} record(s) in {path.name}")

    logger.info(
        f"Extracted {len(result.types)} types, {len(result.spawnable_types)} "
        f"spawnable types and {len(result.events)} events from {folder_path}"
    )
    return result


def find_types_folder(path: str | Path) -> Optional[Path]:
    """
    Find the first folder below path holding a file with "types" in its name.

    Directories are visited in sorted order and the files of a directory are
    checked before its subdirectories.

    :param path: Mod folder
    :return: The folder, or None if the mod ships no economy data
    """
    path = Path(path)
    if not path.is_dir():
        return None

    try:
        entries = sorted(path.iterdir())
    except OSError as e:
        logger.warning(f"Could not list {path}: {e}")
        return None

    for entry in entries:
        if entry.is_file() and "types" in entry.name.lower():
            return path
    for entry in entries:
        if entry.is_dir():
            found = find_types_folder(entry)
            if found is not None:
                return found
    return None


def records_to_xml(records: Sequence[EconomyRecord], root_tag: str) -> str:
    """
    Render records as a tab indented document with the game's XML declaration.
    """
    root: Any = etree.Element(root_tag)
    for record in records:
        root.append(record.to_element())
    etree.indent(root, space="\t")
    body = etree.tostring(root, encoding="unicode")
    return f"{XML_DECLARATION}\n{body}\n"


def write_economy_file(
    records: Sequence[EconomyRecord], root_tag: str, path: str | Path
) -> None:
    """
    Write records to path, replacing any existing file.

    :raises WriteFileError: If the file cannot be written
    """
    path = Path(path)
    try:
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            f.write(records_to_xml(records, root_tag))
    except OSError as e:
        logger.error(f"Error writing XML file {path}: {e}")
        raise WriteFileError(f"Error writing XML file {path}: {e}", path) from e
    logger.debug(f"Wrote {len(records)} record(s) to {path}")
