from pathlib import Path
from typing import Callable, Generator

import pytest

from dztool.utils.work_pool import WorkPool

MAP_NAME = "dayzOffline.chernarusplus"

MANIFEST = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<economycore>
\t<classes>
\t\t<rootclass name="DefaultWeapon" />
\t</classes>
</economycore>
"""

SERVER_CONFIG = f"""hostname = "Test Server";
maxPlayers = 60;
class Missions
{{
    class DayZ
    {{
        template="{MAP_NAME}";
    }};
}};
"""


@pytest.fixture
def pool() -> Generator[WorkPool, None, None]:
    """A small pool that is always shut down after the test."""
    work_pool = WorkPool(2)
    yield work_pool
    work_pool.shutdown()


@pytest.fixture
def server_workdir(tmp_path: Path) -> Path:
    """
    A minimal DayZ server: serverDZ.cfg naming the mission, the mission's
    cfgeconomycore.xml and an empty keys folder.
    """
    workdir = tmp_path / "server"
    mission = workdir / "mpmissions" / MAP_NAME
    mission.mkdir(parents=True)
    (workdir / "keys").mkdir()
    (workdir / "serverDZ.cfg").write_text(SERVER_CONFIG, encoding="utf-8")
    (mission / "cfgeconomycore.xml").write_bytes(MANIFEST.encode("utf-8"))
    return workdir


@pytest.fixture
def manifest_file(server_workdir: Path) -> Path:
    return server_workdir / "mpmissions" / MAP_NAME / "cfgeconomycore.xml"


@pytest.fixture
def workshop(tmp_path: Path) -> Path:
    path = tmp_path / "workshop"
    path.mkdir()
    return path


@pytest.fixture
def make_mod(workshop: Path) -> Callable[..., Path]:
    """
    Create a workshop mod from a mapping of relative path -> file contents.
    """

    def _make_mod(name: str, files: dict[str, str | bytes]) -> Path:
        mod_path = workshop / name
        mod_path.mkdir(parents=True, exist_ok=True)
        for rel_path, contents in files.items():
            file_path = mod_path / rel_path
            file_path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(contents, bytes):
                file_path.write_bytes(contents)
            else:
                file_path.write_text(contents, encoding="utf-8")
        return mod_path

    return _make_mod


@pytest.fixture
def map_name() -> str:
    return MAP_NAME
