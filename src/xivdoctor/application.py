# src/xivdoctor/application.py
"""
Основной модуль приложения XIVDoctor.
Содержит класс Application, который инкапсулирует всю логику запуска:
логирование, конфигурацию и прогон проверок окружения.
"""
import sys
import os
import ctypes
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from src.xivdoctor import APP_NAME, APP_VERSION
from src.xivdoctor.core import FlagStore, ProblemCheckRunner
from src.xivdoctor.core.modules import ElevatedRunner, QtConsentGateway, ScriptedConsentGateway

load_dotenv()

logger = logging.getLogger(__name__)


# --- Аварийный MessageBox, не зависящий от PyQt ---
def emergency_message_box(title: str, message: str):
    """Показывает системное окно с сообщением. Используется при сбоях до инициализации Qt."""
    try:
        ctypes.windll.user32.MessageBoxW(0, message, title, 0x10) # MB_ICONERROR
    except AttributeError:
        print(f"{title}\n{message}", file=sys.stderr)


def setup_logging(log_dir: Path) -> Path:
    """Настраивает логирование в файл с ротацией и в консоль. Возвращает путь к лог-файлу."""
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file_path = log_dir / 'xivdoctor.log'

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    file_handler = RotatingFileHandler(log_file_path, maxBytes=5*1024*1024, backupCount=3, encoding='utf-8')
    file_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s'))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter('[%(levelname)s] %(message)s'))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    if root_logger.hasHandlers():
        root_logger.handlers.clear()
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)
    logger.info(f"Система логирования для {APP_NAME} v{APP_VERSION} инициализирована. Уровень: {log_level_str}")
    return log_file_path


def load_messages(data_dir: Optional[Path]) -> Dict[str, str]:
    """
    Загружает каталог локализованных сообщений из messages.yaml.
    Отсутствующие ключи ядро возьмет из встроенного каталога.
    """
    if not data_dir:
        return {}
    messages_path = Path(data_dir) / "messages.yaml"
    if not messages_path.exists():
        logger.debug(f"Каталог сообщений не найден, используется встроенный: {messages_path}")
        return {}
    try:
        with open(messages_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Не удалось загрузить каталог сообщений {messages_path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Файл {messages_path.name} должен содержать словарь.")
        return {}
    return {str(k): str(v) for k, v in data.items()}


class Application:
    """
    Класс, инкапсулирующий жизненный цикл приложения XIVDoctor.
    """
    def __init__(self, app_paths: Dict[str, Path], options: Optional[Dict[str, Any]] = None):
        self.app_paths = app_paths
        self.options = options or {}
        self.runner: Optional[ProblemCheckRunner] = None
        self.log_file_path: Optional[Path] = None

        self._setup_exception_hook()

    def initialize(self) -> bool:
        """Выполняет всю предварительную настройку приложения."""
        self.log_file_path = setup_logging(Path(self.app_paths["logs"]))
        self._initialize_core()
        return True

    def exec(self) -> int:
        """Запускает проверки и возвращает код завершения процесса."""
        if not self.runner:
            logger.critical("Попытка запуска без предварительной инициализации.")
            return 1

        report = self.runner.run()
        if report.terminated:
            logger.info(f"Проверки требуют завершить приложение с кодом {report.exit_code}.")
            return report.exit_code
        return 0

    def _settings_path(self) -> Path:
        explicit = self.options.get("settings") or os.getenv("XIVDOCTOR_SETTINGS")
        if explicit:
            return Path(explicit)
        return Path(self.app_paths["settings"])

    def _initialize_core(self):
        logger.info("Инициализация ядра проверок...")
        flags = FlagStore(self._settings_path())
        consent = ScriptedConsentGateway() if self.options.get("assume_no") else QtConsentGateway()
        self.runner = ProblemCheckRunner(
            flags=flags,
            consent=consent,
            executor=ElevatedRunner(resources_dir=self.app_paths.get("base")),
            messages=load_messages(self.app_paths.get("data")),
        )

    def _setup_exception_hook(self):
        self.original_hook = sys.excepthook
        sys.excepthook = self._handle_exception

    def _handle_exception(self, exc_type, exc, tb):
        logger.critical("Перехвачено необработанное исключение:", exc_info=(exc_type, exc, tb))
        emergency_message_box("Критическая ошибка", f"Произошла непредвиденная ошибка: {exc}\n\nПодробности записаны в лог-файл.")


# --- Точка входа ---
def main(app_paths: Dict[str, Path], options: Optional[Dict[str, Any]] = None) -> int:
    """
    Создает приложение, прогоняет проверки и возвращает код завершения.
    """
    app_instance = Application(app_paths, options)
    if app_instance.initialize():
        return app_instance.exec()
    return 0
