from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from platformdirs import PlatformDirs

from dztool.utils.constants import APP_NAME


class AppInfo:
    """
    Singleton class that provides information about the application and its related directories.

    The directories are determined using the `platformdirs` package, ensuring
    platform-specific conventions are adhered to.

    Examples:
        >>> print(AppInfo().profiles_file)
        >>> print(AppInfo().user_log_folder)
    """

    _instance: "None | AppInfo" = None

    def __new__(cls) -> "AppInfo":
        if not cls._instance:
            cls._instance = super(AppInfo, cls).__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if hasattr(self, "_is_initialized") and self._is_initialized:
            return

        self._app_name = APP_NAME
        try:
            self._app_version = version(APP_NAME)
        except PackageNotFoundError:
            self._app_version = "Unknown version"

        platform_dirs = PlatformDirs(appname=self._app_name, appauthor=False)
        self._app_storage_folder: Path = Path(platform_dirs.user_data_dir)
        self._user_log_folder: Path = Path(platform_dirs.user_log_dir)
        self._profiles_file: Path = self._app_storage_folder / "config.json"

        self._is_initialized: bool = True

    def ensure_folders(self) -> None:
        """
        Create the storage and log folders if they do not exist yet.
        """
        self._app_storage_folder.mkdir(parents=True, exist_ok=True)
        self._user_log_folder.mkdir(parents=True, exist_ok=True)

    @property
    def app_name(self) -> str:
        return self._app_name

    @property
    def app_version(self) -> str:
        return self._app_version

    @property
    def app_storage_folder(self) -> Path:
        """
        Get the path to the folder where user-specific data for the application is stored.

        Returns:
            Path: The path to the user-specific data folder.
        """
        return self._app_storage_folder

    @property
    def profiles_file(self) -> Path:
        """
        Get the path to the JSON file holding the server profiles.

        May or may not exist.
        """
        return self._profiles_file

    @property
    def user_log_folder(self) -> Path:
        """
        Get the path to the folder where application logs are stored for the user.

        Returns:
            Path: The path to the user-specific log folder.
        """
        return self._user_log_folder
