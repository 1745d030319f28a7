# src/xivdoctor/core/modules/elevated_runner.py
"""
Запуск внешних команд с повышением прав (UAC, глагол "runas").

Команды удаления, перемещения и записи в реестр выполняются через
cmd.exe / reg.exe в скрытом окне. Вызывающий код блокируется до
завершения процесса: работать "в фоне" здесь нельзя, следующие проверки
смотрят на результат предыдущих.
"""
import os
import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from ..exceptions import SpawnFailure

# pywin32 есть только в Windows. Без него любая попытка запуска
# заканчивается SpawnFailure, а не падением импорта.
try:
    import pywintypes
    import win32con
    import win32event
    import win32process
    from win32com.shell import shell, shellcon
except ImportError:
    pywintypes = win32con = win32event = win32process = shell = shellcon = None

logger = logging.getLogger(__name__)

Command = Tuple[str, str]
PathLike = Union[str, Path]


def _quote(path: PathLike) -> str:
    return f'"{path}"'


def get_cmd_path() -> str:
    return os.path.join(os.path.expandvars("%WINDIR%"), "System32", "cmd.exe")


def get_system_directory() -> str:
    return os.path.join(os.path.expandvars("%WINDIR%"), "System32")


def build_delete_command(*paths: PathLike) -> Command:
    """Команда удаления одного или нескольких файлов, все пути в кавычках."""
    if not paths:
        raise ValueError("Не переданы пути для удаления.")
    targets = "".join(f"{_quote(p)} " for p in paths)
    return get_cmd_path(), f'/C "del {targets}"'


def build_move_command(source: PathLike, destination: PathLike) -> Command:
    return get_cmd_path(), f'/C "move {_quote(source)} {_quote(destination)}"'


def build_reg_add_command(key_path: str, value_name: str, data: str) -> Command:
    """reg.exe add "<ключ>" /v "<имя>" /t "REG_SZ" /d "<данные>" /f"""
    return "reg.exe", f'add {_quote(key_path)} /v {_quote(value_name)} /t "REG_SZ" /d {_quote(data)} /f'


class ElevatedRunner:
    """
    Исполнитель привилегированных команд.

    Повторных попыток не делает: если пользователь отклонил UAC, он
    сможет согласиться при следующем запуске.
    """

    def __init__(self, resources_dir: Optional[Path] = None):
        self.resources_dir = Path(resources_dir) if resources_dir else None

    def run_elevated(self, executable: str, arguments: str, working_directory: Optional[PathLike] = None) -> int:
        """
        Запускает команду с правами администратора и ждет ее завершения.

        Returns:
            Код возврата процесса.

        Raises:
            SpawnFailure: Если процесс не удалось создать.
        """
        if shell is None:
            raise SpawnFailure("pywin32 недоступен: запуск с повышением прав невозможен.")

        logger.info(f"Запуск с повышением прав: {executable} {arguments}")
        try:
            info = shell.ShellExecuteEx(
                fMask=shellcon.SEE_MASK_NOCLOSEPROCESS,
                lpVerb="runas",
                lpFile=executable,
                lpParameters=arguments,
                lpDirectory=str(working_directory) if working_directory else None,
                nShow=win32con.SW_HIDE,
            )
        except pywintypes.error as e:
            raise SpawnFailure(f"Не удалось запустить {executable}: {e}") from e

        handle = info.get("hProcess")
        if not handle:
            raise SpawnFailure(f"Не удалось запустить {executable}: нет дескриптора процесса.")

        try:
            win32event.WaitForSingleObject(handle, win32event.INFINITE)
            exit_code = win32process.GetExitCodeProcess(handle)
        finally:
            handle.Close()

        if exit_code != 0:
            logger.warning(f"Команда {executable} завершилась с кодом {exit_code}.")
        return exit_code

    def launch_elevated(self, executable: str, arguments: str = "") -> None:
        """Запускает программу с повышением прав в обычном окне, не дожидаясь завершения."""
        if shell is None:
            raise SpawnFailure("pywin32 недоступен: запуск с повышением прав невозможен.")

        logger.info(f"Запуск внешней программы с повышением прав: {executable} {arguments}")
        try:
            shell.ShellExecuteEx(
                lpVerb="runas",
                lpFile=executable,
                lpParameters=arguments,
                nShow=win32con.SW_SHOWNORMAL,
            )
        except pywintypes.error as e:
            raise SpawnFailure(f"Не удалось запустить {executable}: {e}") from e

    # --- Готовые команды ---

    def elevated_delete(self, *paths: PathLike) -> int:
        executable, arguments = build_delete_command(*paths)
        return self.run_elevated(executable, arguments, self.resources_dir)

    def elevated_move(self, source: PathLike, destination: PathLike) -> int:
        executable, arguments = build_move_command(source, destination)
        return self.run_elevated(executable, arguments, self.resources_dir)

    def elevated_reg_set(self, key_path: str, value_name: str, data: str) -> int:
        executable, arguments = build_reg_add_command(key_path, value_name, data)
        return self.run_elevated(executable, arguments, get_system_directory())
