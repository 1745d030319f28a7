# src/xivdoctor/core/modules/system_probe.py
"""
Модуль для чтения состояния машины: права процесса, ветки реестра,
файлы надстройки в папке игры, загруженные в процесс библиотеки.

Все методы только читают состояние, кроме delete_compatibility_entry и
пробного файла в has_write_access. Изменения, требующие повышения прав,
выполняет ElevatedRunner.
"""
import os
import uuid
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import psutil

from src.utils.admin import check_admin_rights, is_running_under_wine

# winreg и pywin32 есть только в Windows. На Linux (CI) модули
# остаются None, а тесты подменяют их моками.
try:
    import winreg
except ImportError:
    winreg = None

try:
    import win32api
except ImportError:
    win32api = None

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompatibilityEntry:
    """Одна запись из ветки AppCompatFlags\\Layers: путь к exe и набор флагов."""
    name: str
    value: str


@dataclass(frozen=True)
class FileMetadata:
    product_name: str = ""
    product_version: str = ""


class SystemProbe:
    """
    Набор "зондов" для проверки окружения.
    """

    # --- Процесс и платформа ---

    def is_elevated(self) -> bool:
        return check_admin_rights()

    def is_alternate_platform(self) -> bool:
        return is_running_under_wine()

    def list_loaded_modules(self) -> List[str]:
        """Возвращает имена файлов всех модулей, отображенных в память текущего процесса."""
        try:
            maps = psutil.Process().memory_maps(grouped=True)
        except (psutil.AccessDenied, psutil.NoSuchProcess, NotImplementedError) as e:
            logger.warning(f"Не удалось получить список загруженных модулей: {e}")
            return []
        modules = []
        for mapping in maps:
            name = os.path.basename(mapping.path.replace("\\", "/"))
            if name:
                modules.append(name)
        return modules

    # --- Реестр ---

    def read_compatibility_entries(self, store_path: str) -> List[CompatibilityEntry]:
        """
        Перечисляет значения в ветке HKCU\\<store_path>.

        Отсутствие ветки не является ошибкой: возвращается пустой список.
        """
        entries: List[CompatibilityEntry] = []
        try:
            with winreg.OpenKey(winreg.HKEY_CURRENT_USER, store_path, 0, winreg.KEY_READ) as key:
                i = 0
                while True:
                    try:
                        name, value, _ = winreg.EnumValue(key, i)
                    except OSError:
                        break
                    entries.append(CompatibilityEntry(name=name, value=str(value or "")))
                    i += 1
        except FileNotFoundError:
            logger.debug(f"Ветка совместимости не найдена: {store_path}")
            return []
        logger.debug(f"Прочитано {len(entries)} записей совместимости.")
        return entries

    def delete_compatibility_entry(self, store_path: str, name: str) -> None:
        """Удаляет одну запись совместимости. Уже удаленная запись не считается ошибкой."""
        try:
            with winreg.OpenKey(winreg.HKEY_CURRENT_USER, store_path, 0, winreg.KEY_SET_VALUE) as key:
                winreg.DeleteValue(key, name)
            logger.info(f"Удалена запись совместимости: {name}")
        except FileNotFoundError:
            logger.debug(f"Запись совместимости уже отсутствует: {name}")

    def list_subkeys(self, path: str) -> List[str]:
        """Имена подключей HKLM\\<path>; пустой список, если ключа нет."""
        subkeys: List[str] = []
        try:
            with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, path, 0, winreg.KEY_READ) as key:
                for i in range(winreg.QueryInfoKey(key)[0]):
                    try:
                        subkeys.append(winreg.EnumKey(key, i))
                    except OSError:
                        continue
        except FileNotFoundError:
            return []
        return subkeys

    def read_registry_string(self, path: str, value_name: str) -> Optional[str]:
        """
        Читает строковое значение из 64-битного представления HKLM.

        Returns:
            None, если нет самого ключа; пустую строку, если нет только значения.
        """
        access = winreg.KEY_READ | winreg.KEY_WOW64_64KEY
        try:
            with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, path, 0, access) as key:
                try:
                    value = winreg.QueryValueEx(key, value_name)[0]
                except FileNotFoundError:
                    return ""
                return str(value or "")
        except FileNotFoundError:
            return None

    # --- Файловая система ---

    def file_exists(self, path: Path) -> bool:
        # lexists: битая ссылка тоже "существует"
        return os.path.lexists(path) and not os.path.isdir(path)

    def can_open_for_read(self, path: Path) -> bool:
        try:
            with open(path, "rb"):
                return True
        except OSError:
            return False

    def is_valid_link(self, path: Path) -> bool:
        """
        Битая символическая ссылка существует, но не открывается на чтение.
        Отсутствующий файл (или папка с тем же именем) считается корректным.
        """
        if not self.file_exists(path):
            return True
        return self.can_open_for_read(path)

    def read_version_metadata(self, path: Path) -> Optional[FileMetadata]:
        """
        Извлекает ProductName/ProductVersion из ресурса версии файла.

        Никогда не выбрасывает исключений на кривых метаданных: вместо
        этого возвращаются пустые строки.
        """
        if not self.file_exists(path):
            return None
        if win32api is None:
            logger.debug("pywin32 недоступен, метаданные файла не прочитаны.")
            return FileMetadata()
        try:
            lang, codepage = win32api.GetFileVersionInfo(str(path), "\\VarFileInfo\\Translation")[0]
            str_info_path = f"\\StringFileInfo\\{lang:04x}{codepage:04x}\\"
            product_name = win32api.GetFileVersionInfo(str(path), str_info_path + "ProductName") or ""
            product_version = win32api.GetFileVersionInfo(str(path), str_info_path + "ProductVersion") or ""
        except Exception as e:
            logger.debug(f"Не удалось прочитать метаданные версии для {path}: {e}")
            return FileMetadata()
        return FileMetadata(product_name=str(product_name).strip(), product_version=str(product_version).strip())

    def has_write_access(self, directory: Path) -> bool:
        """
        Создает и сразу удаляет файл со случайным именем.
        False только при отказе в доступе; любой другой исход не блокирует.
        """
        probe_file = Path(directory) / str(uuid.uuid4())
        try:
            with open(probe_file, "x"):
                pass
            probe_file.unlink()
        except PermissionError:
            logger.warning(f"Нет прав на запись в папку: {directory}")
            return False
        except OSError as e:
            logger.debug(f"Проверка записи в {directory} завершилась без вердикта: {e}")
            return True
        return True

    def find_game_data_folder(self, folder_name: str) -> Optional[Path]:
        """Ищет папку с данными игры в 'Documents\\My Games'."""
        my_games = Path.home() / "Documents" / "My Games"
        if not my_games.is_dir():
            return None
        target = my_games / folder_name
        return target if target.is_dir() else None


class ManagedFile:
    """
    Файл, за которым следят проверки (например, dxgi.dll надстройки).

    Атрибуты вычисляются лениво и кешируются до вызова refresh().
    После любой внепроцессной правки файловой системы их нужно обновить.
    """

    def __init__(self, path: Path, probe: SystemProbe):
        self.path = Path(path)
        self._probe = probe
        self._exists: Optional[bool] = None
        self._valid_link: Optional[bool] = None
        self._metadata: Optional[FileMetadata] = None
        self._metadata_loaded = False

    @property
    def name(self) -> str:
        return self.path.name

    def refresh(self) -> None:
        self._exists = None
        self._valid_link = None
        self._metadata = None
        self._metadata_loaded = False

    @property
    def exists(self) -> bool:
        if self._exists is None:
            self._exists = self._probe.file_exists(self.path)
        return self._exists

    @property
    def is_valid_link(self) -> bool:
        if self._valid_link is None:
            self._valid_link = self._probe.is_valid_link(self.path)
        return self._valid_link

    @property
    def metadata(self) -> Optional[FileMetadata]:
        if not self._metadata_loaded:
            self._metadata = self._probe.read_version_metadata(self.path) if self.exists else None
            self._metadata_loaded = True
        return self._metadata

    @property
    def product_name(self) -> str:
        return self.metadata.product_name if self.metadata else ""

    @property
    def product_version(self) -> str:
        return self.metadata.product_version if self.metadata else ""

    def is_product(self, product_name: str) -> bool:
        """Файл существует и подписан указанным продуктом (без учета регистра)."""
        return self.exists and self.product_name.casefold() == product_name.casefold()

    def __repr__(self) -> str:
        return f"ManagedFile({str(self.path)!r})"
