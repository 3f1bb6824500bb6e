from pathlib import Path
from typing import Iterator

import pytest
from lxml import etree

from dztool.models.economy import Type
from dztool.utils.exception import EconomyParseError, ReadFileError
from dztool.utils.xml import (
    analyze_types_folder,
    extract_events,
    extract_spawnable_types,
    extract_types,
    find_types_folder,
    records_to_xml,
    synthesize_root,
    write_economy_file,
)

TYPES_XML = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<types>
    <!-- weapons -->
    <type name="AK74">
        <nominal>10</nominal>
        <lifetime>14400</lifetime>
        <restock>0</restock>
        <min>5</min>
        <quantmin>-1</quantmin>
        <quantmax>-1</quantmax>
        <cost>100</cost>
        <flags count_in_cargo="0" count_in_hoarder="0" count_in_map="1" count_in_player="0" crafted="0" deloot="0"/>
        <category name="weapons"/>
        <usage name="Military"/>
        <value name="Tier3"/>
        <value name="Tier4"/>
    </type>
    <type name="Apple">
        <nominal>50</nominal>
        <category name="food"/>
    </type>
</types>
"""

SPAWNABLE_XML = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<spawnabletypes>
    <type name="AK74">
        <damage min="0.0" max="0.5"/>
        <attachments chance="0.3">
            <item name="AK_WoodBttstck" chance="1.0"/>
        </attachments>
        <cargo preset="foodHermit"/>
    </type>
    <type name="Barrel_Red">
        <hoarder/>
    </type>
</spawnabletypes>
"""

EVENTS_XML = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<events>
    <event name="StaticHeliCrash">
        <nominal>3</nominal>
        <min>1</min>
        <max>3</max>
        <lifetime>2100</lifetime>
        <restock>0</restock>
        <saferadius>1000</saferadius>
        <distanceradius>1000</distanceradius>
        <cleanupradius>1000</cleanupradius>
        <secondary>InfectedArmy</secondary>
        <flags deletable="1" init_random="0" remove_damaged="1"/>
        <position>fixed</position>
        <limit>child</limit>
        <active>1</active>
        <children>
            <child lootmax="15" lootmin="10" max="3" min="1" type="Wreck_UH1Y"/>
        </children>
    </event>
</events>
"""


def test_extract_types_reads_all_fields(tmp_path: Path) -> None:
    file_path = tmp_path / "types.xml"
    file_path.write_text(TYPES_XML)

    types = extract_types(file_path)

    assert [t.name for t in types] == ["AK74", "Apple"]
    ak = types[0]
    assert ak.nominal == 10
    assert ak.lifetime == 14400
    assert ak.quantmin == -1
    assert ak.cost == 100
    assert ak.flags is not None and ak.flags.count_in_map == 1
    assert ak.category == "weapons"
    assert ak.usages == ["Military"]
    assert ak.values == ["Tier3", "Tier4"]

    apple = types[1]
    assert apple.nominal == 50
    assert apple.lifetime is None
    assert apple.flags is None


def test_extract_spawnable_types(tmp_path: Path) -> None:
    file_path = tmp_path / "cfgspawnabletypes.xml"
    file_path.write_text(SPAWNABLE_XML)

    spawnable = extract_spawnable_types(file_path)

    assert [s.name for s in spawnable] == ["AK74", "Barrel_Red"]
    assert spawnable[0].damage is not None and spawnable[0].damage.max == 0.5
    assert spawnable[0].attachments[0].items[0].name == "AK_WoodBttstck"
    assert spawnable[0].cargo[0].preset == "foodHermit"
    assert spawnable[1].hoarder is True


def test_extract_events(tmp_path: Path) -> None:
    file_path = tmp_path / "events.xml"
    file_path.write_text(EVENTS_XML)

    events = extract_events(file_path)

    assert len(events) == 1
    event = events[0]
    assert event.name == "StaticHeliCrash"
    assert event.secondary == "InfectedArmy"
    assert event.flags is not None and event.flags.remove_damaged == 1
    assert event.children[0].type == "Wreck_UH1Y"
    assert event.children[0].lootmax == 15


def test_extract_types_without_root_element(tmp_path: Path) -> None:
    file_path = tmp_path / "types.xml"
    file_path.write_text(
        '<type name="a"/>\n<type name="b"/>\n<type name="c"/>\n'
    )

    assert [t.name for t in extract_types(file_path)] == ["a", "b", "c"]


def test_extract_events_without_root_element(tmp_path: Path) -> None:
    file_path = tmp_path / "events.xml"
    file_path.write_text(
        '<?xml version="1.0" encoding="UTF-8"?>\n<event name="Wreck"><nominal>2</nominal></event>\n'
    )

    events = extract_events(file_path)
    assert [e.name for e in events] == ["Wreck"]
    assert events[0].nominal == 2


def test_synthesize_root_keeps_documents_with_root() -> None:
    data = TYPES_XML.encode()
    assert synthesize_root(data) is data


def test_extract_types_skips_foreign_elements(tmp_path: Path) -> None:
    file_path = tmp_path / "types.xml"
    file_path.write_text('<types><note>hi</note><type name="a"/></types>')

    assert [t.name for t in extract_types(file_path)] == ["a"]


def test_extract_types_malformed_xml(tmp_path: Path) -> None:
    file_path = tmp_path / "types.xml"
    file_path.write_text('<types><type name="a"></types>')

    with pytest.raises(EconomyParseError) as exc_info:
        extract_types(file_path)
    assert exc_info.value.path == file_path


def test_extract_types_invalid_number(tmp_path: Path) -> None:
    file_path = tmp_path / "types.xml"
    file_path.write_text('<types><type name="a"><nominal>lots</nominal></type></types>')

    with pytest.raises(EconomyParseError):
        extract_types(file_path)


def test_extract_types_missing_name(tmp_path: Path) -> None:
    file_path = tmp_path / "types.xml"
    file_path.write_text("<types><type><nominal>1</nominal></type></types>")

    with pytest.raises(EconomyParseError):
        extract_types(file_path)


def test_analyze_types_folder_classifies_files(tmp_path: Path) -> None:
    (tmp_path / "types.xml").write_text(TYPES_XML)
    (tmp_path / "cfgspawnabletypes.xml").write_text(SPAWNABLE_XML)
    (tmp_path / "events.xml").write_text(EVENTS_XML)
    (tmp_path / "readme.txt").write_text("not economy data")

    result = analyze_types_folder(tmp_path)

    assert [t.name for t in result.types] == ["AK74", "Apple"]
    assert [s.name for s in result.spawnable_types] == ["AK74", "Barrel_Red"]
    assert [e.name for e in result.events] == ["StaticHeliCrash"]
    assert result.errors == []
    assert not result.is_empty


def test_analyze_types_folder_continues_after_bad_file(tmp_path: Path) -> None:
    (tmp_path / "a_types.xml").write_text("<types><type name=")
    (tmp_path / "b_types.xml").write_text('<types><type name="good"/></types>')

    result = analyze_types_folder(tmp_path)

    assert [t.name for t in result.types] == ["good"]
    assert len(result.errors) == 1
    assert result.errors[0].path == tmp_path / "a_types.xml"


def test_analyze_types_folder_empty(tmp_path: Path) -> None:
    (tmp_path / "notes.txt").write_text("nothing")
    assert analyze_types_folder(tmp_path).is_empty


def test_find_types_folder_prefers_shallow_files(tmp_path: Path) -> None:
    mod = tmp_path / "@Mod"
    (mod / "aaa" / "ce").mkdir(parents=True)
    (mod / "aaa" / "ce" / "types.xml").write_text("<types/>")
    (mod / "extras").mkdir()
    (mod / "extras" / "Types.xml").write_text("<types/>")

    assert find_types_folder(mod) == mod / "aaa" / "ce"

    (mod / "mod_types.xml").write_text("<types/>")
    assert find_types_folder(mod) == mod


def test_find_types_folder_none(tmp_path: Path) -> None:
    (tmp_path / "addons").mkdir()
    (tmp_path / "addons" / "data.pbo").write_bytes(b"")

    assert find_types_folder(tmp_path) is None
    assert find_types_folder(tmp_path / "missing") is None


def test_records_to_xml_format() -> None:
    xml = records_to_xml([Type(name="a", nominal=5), Type(name="b")], Type.ROOT_TAG)

    assert xml == (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        "<types>\n"
        '\t<type name="a">\n'
        "\t\t<nominal>5</nominal>\n"
        "\t</type>\n"
        '\t<type name="b"/>\n'
        "</types>\n"
    )


def test_write_economy_file_keeps_records(tmp_path: Path) -> None:
    source = tmp_path / "types.xml"
    source.write_text(TYPES_XML)
    types = extract_types(source)

    target = tmp_path / "Loo_types.xml"
    write_economy_file(types, Type.ROOT_TAG, target)

    root = etree.parse(str(target)).getroot()
    assert root.tag == "types"
    assert [elem.get("name") for elem in root] == ["AK74", "Apple"]
    assert extract_types(target) == types


def test_extract_types_ignores_root_tag_in_comment(tmp_path: Path) -> None:
    file_path = tmp_path / "types.xml"
    file_path.write_text(
        "<!-- paste into your <types> -->\n"
        '<type name="a"/>\n'
        '<type name="b"/>\n'
    )

    assert [t.name for t in extract_types(file_path)] == ["a", "b"]


def test_extract_events_ignores_types_mention_in_comment(tmp_path: Path) -> None:
    file_path = tmp_path / "events.xml"
    file_path.write_text(
        "<!-- not <types>, this goes into events.xml -->\n"
        '<event name="Wreck"/>\n'
    )

    assert [e.name for e in extract_events(file_path)] == ["Wreck"]


def test_analyze_types_folder_unreadable(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def failing_iterdir(self: Path) -> Iterator[Path]:
        raise PermissionError(f"denied: {self}")

    monkeypatch.setattr(Path, "iterdir", failing_iterdir)

    with pytest.raises(ReadFileError) as exc_info:
        analyze_types_folder(tmp_path)
    assert exc_info.value.path == tmp_path
