from pathlib import Path


class ModError(Exception):
    """
    Base class for every error raised while installing, updating
    or removing a mod.
    """

    pass


class PathResolutionError(ModError):
    """
    Raised when a folder or file the operation depends on cannot be located.
    Fatal to the single mod being processed.
    """

    pass


class ModFolderNotFound(PathResolutionError):
    pass


class KeysFolderNotFound(PathResolutionError):
    pass


class MapNameNotFound(PathResolutionError):
    """
    Raised when serverDZ.cfg is missing or does not name a mission.
    """

    pass


class ManifestNotFound(PathResolutionError):
    """
    Raised when the mission's cfgeconomycore.xml does not exist.
    """

    pass


class ModIOError(ModError):
    """Filesystem failure tied to a specific path."""

    def __init__(self, message: str, path: str | Path) -> None:
        super().__init__(message)
        self.path = Path(path)


class CreateDirError(ModIOError):
    pass


class CopyFileError(ModIOError):
    pass


class RemoveFileError(ModIOError):
    pass


class ReadFileError(ModIOError):
    pass


class WriteFileError(ModIOError):
    pass


class EconomyParseError(ModError):
    """
    Raised when a central economy data file contains a record
    that cannot be parsed. The original exception is chained.
    """

    def __init__(self, path: str | Path, cause: Exception) -> None:
        super().__init__(f"Failed to parse economy data in {path}: {cause}")
        self.path = Path(path)
        self.cause = cause


class InvalidManifestFormat(ModError):
    """
    Raised when cfgeconomycore.xml has no closing economycore tag
    to insert a block in front of.
    """

    pass


class ConfigError(Exception):
    """
    Raised when the profile configuration file cannot be read or written.
    """

    pass
