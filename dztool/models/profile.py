from pathlib import Path
from typing import Optional

import msgspec
from loguru import logger

from dztool.utils.exception import ConfigError


class Profile(msgspec.Struct, rename="camel"):
    """
    A DayZ server the tool manages.

    Pure data class; the controllers decide when it is saved.
    """

    name: str
    workdir_path: str
    workshop_path: str
    installed_mods: list[str] = msgspec.field(default_factory=list)

    @property
    def workdir(self) -> Path:
        return Path(self.workdir_path)

    @property
    def workshop(self) -> Path:
        return Path(self.workshop_path)

    def add_installed_mods(self, mods: list[str]) -> None:
        for mod in mods:
            if mod not in self.installed_mods:
                self.installed_mods.append(mod)

    def remove_installed_mods(self, mods: list[str]) -> None:
        self.installed_mods = [mod for mod in self.installed_mods if mod not in mods]


class ProfileConfig(msgspec.Struct):
    profiles: list[Profile] = msgspec.field(default_factory=list)

    def get(self, name: str) -> Optional[Profile]:
        return next((p for p in self.profiles if p.name == name), None)

    def upsert(self, profile: Profile) -> None:
        for index, existing in enumerate(self.profiles):
            if existing.name == profile.name:
                self.profiles[index] = profile
                return
        self.profiles.append(profile)

    @classmethod
    def load(cls, path: str | Path) -> "ProfileConfig":
        """
        Read the profile file. A missing file yields an empty config.

        :raises ConfigError: If the file exists but cannot be read or decoded
        """
        path = Path(path)
        if not path.exists():
            logger.debug(f"No profile config at {path}, starting empty")
            return cls()
        try:
            return msgspec.json.decode(path.read_bytes(), type=cls)
        except (OSError, msgspec.DecodeError) as e:
            logger.error(f"Failed to load profile config {path}: {e}")
            raise ConfigError(f"Failed to load profile config {path}: {e}") from e

    def save(self, path: str | Path) -> None:
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(msgspec.json.format(msgspec.json.encode(self), indent=4))
        except OSError as e:
            logger.error(f"Failed to save profile config {path}: {e}")
            raise ConfigError(f"Failed to save profile config {path}: {e}") from e
        logger.debug(f"Saved {len(self.profiles)} profile(s) to {path}")
