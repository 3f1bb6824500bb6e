import re
from dataclasses import dataclass

SHORT_NAME_SEPARATORS = re.compile(r"[ \-_]")


@dataclass(frozen=True)
class ModDescriptor:
    """
    A mod as named in the workshop folder, e.g. "@Loot" or "@My-Cool_Mod".
    """

    name: str

    @property
    def short_name(self) -> str:
        """
        Abbreviation used to namespace the mod's generated economy files.

        The name is split on spaces, dashes and underscores, a leading "@" is
        stripped from each part and the first three characters of every part
        are joined: "@My-Cool_Mod" -> "MyCooMod". Different mods may collide.
        """
        return "".join(
            part.removeprefix("@")[:3] for part in SHORT_NAME_SEPARATORS.split(self.name)
        )
