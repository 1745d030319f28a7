# src/main.py
"""
Главная точка входа и "лаунчер" для приложения XIVDoctor.

Задачи этого файла:
1.  Проверить совместимость окружения (ОС, версия Python).
2.  Настроить "аварийное" логирование на случай сбоев при импорте.
3.  Определить базовые пути для работы приложения, учитывая,
    запущено оно из исходников или как собранный .exe (PyInstaller).
4.  Разобрать аргументы командной строки.
5.  Передать управление основному модулю приложения.
"""
import sys
import os
import argparse
import traceback
from datetime import datetime
from pathlib import Path
from typing import Dict, List, NoReturn, Optional

# --- 1. Константы и флаги ---

IS_FROZEN = getattr(sys, 'frozen', False) and hasattr(sys, '_MEIPASS')
MIN_PYTHON_VERSION = (3, 10)


# --- 2. Функции проверки и аварийного логирования ---

def _show_critical_error_message(title: str, message: str) -> None:
    """Пытается показать ошибку в GUI, если это возможно."""
    try:
        from PyQt6.QtWidgets import QApplication, QMessageBox
        app = QApplication.instance() or QApplication(sys.argv)
        QMessageBox.critical(None, title, message)
    except ImportError:
        print(f"Критическая ошибка: {title}\n{message}", file=sys.stderr)

def check_environment() -> None:
    """Проверяет, подходит ли текущее окружение для запуска."""
    if sys.platform != "win32":
        _show_critical_error_message(
            "Ошибка совместимости",
            "XIVDoctor проверяет окружение Windows и работает только в Windows (в том числе под Wine)."
        )
        sys.exit(1)

    if sys.version_info < MIN_PYTHON_VERSION:
        error_msg = (f"Требуется Python версии {'.'.join(map(str, MIN_PYTHON_VERSION))} или выше.\n"
                     f"Ваша версия: {sys.version.split(' ')[0]}")
        _show_critical_error_message("Ошибка версии Python", error_msg)
        sys.exit(1)

def emergency_log(error_message: str) -> None:
    """
    Записывает критическую ошибку в файл, если основной логгер еще не работает.
    """
    try:
        log_dir = Path.home() / ".xivdoctor"
        log_dir.mkdir(exist_ok=True)

        log_file = log_dir / "xivdoctor_crash.log"
        with log_file.open("a", encoding="utf-8") as f:
            f.write(f"--- CRASH AT {datetime.now().strftime('%Y-%m-%d %H:%M:%S')} ---\n")
            f.write(error_message + "\n\n")
    except Exception as e:
        print(f"Не удалось записать аварийный лог: {e}", file=sys.stderr)
        print(f"Оригинальная ошибка:\n{error_message}", file=sys.stderr)

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="xivdoctor",
        description="Проверка окружения перед запуском игры и исправление известных проблем."
    )
    parser.add_argument("--settings", type=str, default=None,
                        help="Путь к YAML-файлу с флагами и путем к игре.")
    parser.add_argument("--assume-no", action="store_true",
                        help="Не показывать диалоги: отказываться от всех исправлений.")
    return parser.parse_args(argv)

def get_settings_path() -> Path:
    appdata = os.getenv("APPDATA")
    base = Path(appdata) if appdata else Path.home()
    return base / "XIVDoctor" / "settings.yaml"


# --- 3. Основная функция-лаунчер ---

def run_app(argv: Optional[List[str]] = None) -> NoReturn:
    """
    Главная функция-лаунчер.
    Настраивает окружение и передает управление основному приложению.
    """
    try:
        check_environment()
        args = parse_args(argv)

        if IS_FROZEN:
            # Режим .exe
            base_path = Path(sys._MEIPASS)
            log_dir = Path(sys.executable).parent / 'logs'
        else:
            # Режим разработки
            base_path = Path(__file__).parent.resolve()
            log_dir = base_path.parent / 'logs'

            src_root = str(base_path.parent)
            if src_root not in sys.path:
                sys.path.insert(0, src_root)

        from src.xivdoctor.application import main as app_main

        app_paths: Dict[str, Path] = {
            "base": base_path,
            "logs": log_dir,
            "data": base_path / 'xivdoctor' / 'data',
            "settings": get_settings_path(),
        }
        options = {"settings": args.settings, "assume_no": args.assume_no}

        sys.exit(app_main(app_paths, options))

    except SystemExit:
        raise
    except Exception:
        full_error_message = f"Критическая ошибка на этапе запуска:\n{traceback.format_exc()}"
        emergency_log(full_error_message)
        _show_critical_error_message(
            "Критическая ошибка запуска",
            "Не удалось запустить приложение из-за непредвиденной ошибки.\n\n"
            "Подробности были записаны в файл 'xivdoctor_crash.log' в вашей домашней папке."
        )
        sys.exit(1)

if __name__ == "__main__":
    run_app()
