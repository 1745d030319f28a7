# tests/core/conftest.py
"""
Общие фикстуры для тестов ядра проверок (`src/xivdoctor/core`).

Реестр, UAC и сеть заменены фейками в памяти: FakeProbe хранит "файлы" и
записи реестра, FakeExecutor применяет команды удаления/перемещения к
этим файлам, FakeOracle отдает заранее заданный тег.
"""
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from src.xivdoctor.core.exceptions import NetworkFailure, SpawnFailure
from src.xivdoctor.core.flag_store import FlagStore
from src.xivdoctor.core.modules.consent import ScriptedConsentGateway
from src.xivdoctor.core.modules.system_probe import CompatibilityEntry, FileMetadata
from src.xivdoctor.core.modules.version_oracle import RemoteTag
from src.xivdoctor.core.runner import ProblemCheckRunner

GAME_PATH = Path("C:/Games/FFXIV")
GAME_FOLDER = GAME_PATH / "game"
START_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeFile:
    def __init__(self, product_name: str = "", readable: bool = True):
        self.product_name = product_name
        self.readable = readable


class FakeProbe:
    """Машина в памяти с тем же интерфейсом, что и SystemProbe."""

    def __init__(self):
        self.elevated = False
        self.alternate_platform = False
        self.compat_entries: Dict[str, str] = {}
        self.loaded_modules: List[str] = ["python.exe", "kernel32.dll"]
        self.files: Dict[Path, FakeFile] = {}
        self.subkeys: Dict[str, List[str]] = {}
        self.registry_strings: Dict[tuple, Optional[str]] = {}
        self.data_folder: Optional[Path] = None
        self.writable = True

    def add_shim(self, name: str, product_name: str = "GShade", readable: bool = True) -> None:
        self.files[GAME_FOLDER / name] = FakeFile(product_name, readable)

    def is_elevated(self) -> bool:
        return self.elevated

    def is_alternate_platform(self) -> bool:
        return self.alternate_platform

    def list_loaded_modules(self) -> List[str]:
        return list(self.loaded_modules)

    def read_compatibility_entries(self, store_path: str) -> List[CompatibilityEntry]:
        return [CompatibilityEntry(name, value) for name, value in self.compat_entries.items()]

    def delete_compatibility_entry(self, store_path: str, name: str) -> None:
        self.compat_entries.pop(name, None)

    def list_subkeys(self, path: str) -> List[str]:
        return list(self.subkeys.get(path, []))

    def read_registry_string(self, path: str, value_name: str) -> Optional[str]:
        return self.registry_strings.get((path, value_name))

    def file_exists(self, path: Path) -> bool:
        return Path(path) in self.files

    def is_valid_link(self, path: Path) -> bool:
        f = self.files.get(Path(path))
        return f is None or f.readable

    def read_version_metadata(self, path: Path) -> Optional[FileMetadata]:
        f = self.files.get(Path(path))
        if f is None:
            return None
        return FileMetadata(product_name=f.product_name)

    def has_write_access(self, directory: Path) -> bool:
        return self.writable

    def find_game_data_folder(self, folder_name: str) -> Optional[Path]:
        return self.data_folder


class FakeExecutor:
    """Записывает все привилегированные команды и применяет их к FakeProbe."""

    def __init__(self, probe: FakeProbe):
        self.probe = probe
        self.commands: List[tuple] = []
        self.fail = False

    def _check(self):
        if self.fail:
            raise SpawnFailure("UAC отклонен")

    def elevated_delete(self, *paths) -> int:
        self._check()
        self.commands.append(("delete",) + tuple(Path(p) for p in paths))
        for p in paths:
            self.probe.files.pop(Path(p), None)
        return 0

    def elevated_move(self, source, destination) -> int:
        self._check()
        self.commands.append(("move", Path(source), Path(destination)))
        self.probe.files[Path(destination)] = self.probe.files.pop(Path(source))
        return 0

    def elevated_reg_set(self, key_path: str, value_name: str, data: str) -> int:
        self._check()
        self.commands.append(("reg", key_path, value_name, data))
        return 0

    def launch_elevated(self, executable: str, arguments: str = "") -> None:
        self._check()
        self.commands.append(("launch", executable, arguments))


class FakeOracle:
    def __init__(self, tag_name: str = "v1.2.3"):
        self.tag_name = tag_name
        self.failure: Optional[Exception] = None
        self.calls = 0

    def latest_tag(self, endpoint: str) -> RemoteTag:
        self.calls += 1
        if self.failure:
            raise self.failure
        return RemoteTag(name=self.tag_name)


class Clock:
    def __init__(self, start: datetime = START_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def executor(probe: FakeProbe) -> FakeExecutor:
    return FakeExecutor(probe)


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def flags() -> FlagStore:
    """Хранилище флагов в памяти с заданным путем к игре."""
    return FlagStore(initial={"gamePath": str(GAME_PATH)})


@pytest.fixture
def consent() -> ScriptedConsentGateway:
    return ScriptedConsentGateway()


@pytest.fixture
def make_runner(flags, probe, executor, oracle, clock):
    """Фабрика раннера: позволяет подменить шлюз согласия и набор проверок."""
    def _make(consent, checks=None, config=None):
        return ProblemCheckRunner(
            flags=flags,
            consent=consent,
            probe=probe,
            executor=executor,
            oracle=oracle,
            config=config,
            checks=checks,
            clock=clock,
        )
    return _make


@pytest.fixture
def network_failure() -> NetworkFailure:
    return NetworkFailure("connection reset")


@pytest.fixture
def game_folder() -> Path:
    return GAME_FOLDER
