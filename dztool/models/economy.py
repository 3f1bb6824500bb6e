"""
Central economy records found in mod data files.

Each record converts from and to an lxml element. Fields that are missing
from the source element stay None (or empty) and are omitted again when
the record is written back.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional

from lxml import etree


def _int_or_none(value: Optional[str], name: str) -> Optional[int]:
    if value is None:
        return None
    value = value.strip()
    if value == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def _float_or_none(value: Optional[str], name: str) -> Optional[float]:
    if value is None or value.strip() == "":
        return None
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None


def _format_number(value: int | float) -> str:
    return repr(value) if isinstance(value, float) else str(value)


def _required_name(elem: Any, attribute: str = "name") -> str:
    name = elem.get(attribute)
    if not name:
        raise ValueError(f"<{elem.tag}> is missing the {attribute} attribute")
    return str(name)


def _child_text(elem: Any, tag: str) -> Optional[str]:
    child = elem.find(tag)
    if child is None:
        return None
    return (child.text or "").strip()


def _named_children(elem: Any, tag: str) -> list[str]:
    return [_required_name(child) for child in elem.findall(tag)]


def _sub_text(parent: Any, tag: str, value: Any) -> None:
    if value is None:
        return
    child = etree.SubElement(parent, tag)
    child.text = _format_number(value) if isinstance(value, (int, float)) else value


def _sub_attrs(parent: Any, tag: str, **attributes: Any) -> Any:
    child = etree.SubElement(parent, tag)
    for key, value in attributes.items():
        if value is not None:
            child.set(key, _format_number(value) if not isinstance(value, str) else value)
    return child


@dataclass
class TypeFlags:
    count_in_cargo: Optional[int] = None
    count_in_hoarder: Optional[int] = None
    count_in_map: Optional[int] = None
    count_in_player: Optional[int] = None
    crafted: Optional[int] = None
    deloot: Optional[int] = None


@dataclass
class Type:
    """An item entry of types.xml."""

    ROOT_TAG: ClassVar[str] = "types"
    TAG: ClassVar[str] = "type"
    NUMERIC_FIELDS: ClassVar[tuple[str, ...]] = (
        "nominal",
        "lifetime",
        "restock",
        "min",
        "quantmin",
        "quantmax",
        "cost",
    )

    name: str
    nominal: Optional[int] = None
    lifetime: Optional[int] = None
    restock: Optional[int] = None
    min: Optional[int] = None
    quantmin: Optional[int] = None
    quantmax: Optional[int] = None
    cost: Optional[int] = None
    flags: Optional[TypeFlags] = None
    category: Optional[str] = None
    usages: list[str] = field(default_factory=list)
    values: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_element(cls, elem: Any) -> "Type":
        numbers = {
            key: _int_or_none(_child_text(elem, key), key)
            for key in cls.NUMERIC_FIELDS
        }
        flags = None
        flags_elem = elem.find("flags")
        if flags_elem is not None:
            flags = TypeFlags(
                **{
                    key: _int_or_none(flags_elem.get(key), f"flags.{key}")
                    for key in TypeFlags.__dataclass_fields__
                }
            )
        category_elem = elem.find("category")
        return cls(
            name=_required_name(elem),
            flags=flags,
            category=_required_name(category_elem) if category_elem is not None else None,
            usages=_named_children(elem, "usage"),
            values=_named_children(elem, "value"),
            tags=_named_children(elem, "tag"),
            **numbers,
        )

    def to_element(self) -> Any:
        elem = etree.Element(self.TAG, name=self.name)
        for key in self.NUMERIC_FIELDS:
            _sub_text(elem, key, getattr(self, key))
        if self.flags is not None:
            _sub_attrs(elem, "flags", **vars(self.flags))
        if self.category is not None:
            _sub_attrs(elem, "category", name=self.category)
        for usage in self.usages:
            _sub_attrs(elem, "usage", name=usage)
        for value in self.values:
            _sub_attrs(elem, "value", name=value)
        for tag in self.tags:
            _sub_attrs(elem, "tag", name=tag)
        return elem


@dataclass
class Damage:
    min: Optional[float] = None
    max: Optional[float] = None


@dataclass
class ItemChance:
    name: str
    chance: Optional[float] = None


@dataclass
class ItemGroup:
    """A <cargo> or <attachments> block, either a preset or a list of items."""

    chance: Optional[float] = None
    preset: Optional[str] = None
    items: list[ItemChance] = field(default_factory=list)

    @classmethod
    def from_element(cls, elem: Any) -> "ItemGroup":
        return cls(
            chance=_float_or_none(elem.get("chance"), f"{elem.tag}.chance"),
            preset=elem.get("preset"),
            items=[
                ItemChance(
                    name=_required_name(item),
                    chance=_float_or_none(item.get("chance"), "item.chance"),
                )
                for item in elem.findall("item")
            ],
        )

    def append_to(self, parent: Any, tag: str) -> None:
        group = _sub_attrs(parent, tag, chance=self.chance, preset=self.preset)
        for item in self.items:
            _sub_attrs(group, "item", name=item.name, chance=item.chance)


@dataclass
class SpawnableType:
    """An item entry of cfgspawnabletypes.xml."""

    ROOT_TAG: ClassVar[str] = "spawnabletypes"
    TAG: ClassVar[str] = "type"

    name: str
    hoarder: bool = False
    damage: Optional[Damage] = None
    tags: list[str] = field(default_factory=list)
    cargo: list[ItemGroup] = field(default_factory=list)
    attachments: list[ItemGroup] = field(default_factory=list)

    @classmethod
    def from_element(cls, elem: Any) -> "SpawnableType":
        damage = None
        damage_elem = elem.find("damage")
        if damage_elem is not None:
            damage = Damage(
                min=_float_or_none(damage_elem.get("min"), "damage.min"),
                max=_float_or_none(damage_elem.get("max"), "damage.max"),
            )
        return cls(
            name=_required_name(elem),
            hoarder=elem.find("hoarder") is not None,
            damage=damage,
            tags=_named_children(elem, "tag"),
            cargo=[ItemGroup.from_element(e) for e in elem.findall("cargo")],
            attachments=[ItemGroup.from_element(e) for e in elem.findall("attachments")],
        )

    def to_element(self) -> Any:
        elem = etree.Element(self.TAG, name=self.name)
        if self.hoarder:
            etree.SubElement(elem, "hoarder")
        if self.damage is not None:
            _sub_attrs(elem, "damage", min=self.damage.min, max=self.damage.max)
        for tag in self.tags:
            _sub_attrs(elem, "tag", name=tag)
        for group in self.cargo:
            group.append_to(elem, "cargo")
        for group in self.attachments:
            group.append_to(elem, "attachments")
        return elem


@dataclass
class EventFlags:
    deletable: Optional[int] = None
    init_random: Optional[int] = None
    remove_damaged: Optional[int] = None


@dataclass
class Child:
    type: str
    lootmax: Optional[int] = None
    lootmin: Optional[int] = None
    max: Optional[int] = None
    min: Optional[int] = None


@dataclass
class Event:
    """A dynamic event entry of events.xml."""

    ROOT_TAG: ClassVar[str] = "events"
    TAG: ClassVar[str] = "event"
    NUMERIC_FIELDS: ClassVar[tuple[str, ...]] = (
        "nominal",
        "min",
        "max",
        "lifetime",
        "restock",
        "saferadius",
        "distanceradius",
        "cleanupradius",
    )

    name: str
    nominal: Optional[int] = None
    min: Optional[int] = None
    max: Optional[int] = None
    lifetime: Optional[int] = None
    restock: Optional[int] = None
    saferadius: Optional[int] = None
    distanceradius: Optional[int] = None
    cleanupradius: Optional[int] = None
    secondary: Optional[str] = None
    flags: Optional[EventFlags] = None
    position: Optional[str] = None
    limit: Optional[str] = None
    active: Optional[int] = None
    children: list[Child] = field(default_factory=list)

    @classmethod
    def from_element(cls, elem: Any) -> "Event":
        numbers = {
            key: _int_or_none(_child_text(elem, key), key)
            for key in cls.NUMERIC_FIELDS
        }
        flags = None
        flags_elem = elem.find("flags")
        if flags_elem is not None:
            flags = EventFlags(
                **{
                    key: _int_or_none(flags_elem.get(key), f"flags.{key}")
                    for key in EventFlags.__dataclass_fields__
                }
            )
        children = []
        children_elem = elem.find("children")
        if children_elem is not None:
            for child in children_elem.findall("child"):
                children.append(
                    Child(
                        type=_required_name(child, "type"),
                        lootmax=_int_or_none(child.get("lootmax"), "child.lootmax"),
                        lootmin=_int_or_none(child.get("lootmin"), "child.lootmin"),
                        max=_int_or_none(child.get("max"), "child.max"),
                        min=_int_or_none(child.get("min"), "child.min"),
                    )
                )
        return cls(
            name=_required_name(elem),
            secondary=_child_text(elem, "secondary"),
            flags=flags,
            position=_child_text(elem, "position"),
            limit=_child_text(elem, "limit"),
            active=_int_or_none(_child_text(elem, "active"), "active"),
            children=children,
            **numbers,
        )

    def to_element(self) -> Any:
        elem = etree.Element(self.TAG, name=self.name)
        for key in self.NUMERIC_FIELDS:
            _sub_text(elem, key, getattr(self, key))
        _sub_text(elem, "secondary", self.secondary)
        if self.flags is not None:
            _sub_attrs(elem, "flags", **vars(self.flags))
        _sub_text(elem, "position", self.position)
        _sub_text(elem, "limit", self.limit)
        _sub_text(elem, "active", self.active)
        if self.children:
            children_elem = etree.SubElement(elem, "children")
            for child in self.children:
                _sub_attrs(
                    children_elem,
                    "child",
                    lootmax=child.lootmax,
                    lootmin=child.lootmin,
                    max=child.max,
                    min=child.min,
                    type=child.type,
                )
        return elem


EconomyRecord = Type | SpawnableType | Event
