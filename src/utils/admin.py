# src/utils/admin.py
import ctypes
import os
import logging

logger = logging.getLogger(__name__)


def check_admin_rights() -> bool:
    """Проверяет, запущено ли приложение с правами администратора."""
    try:
        return ctypes.windll.shell32.IsUserAnAdmin() != 0
    except (AttributeError, OSError):
        # На системах, отличных от Windows, или в тестовых окружениях
        return False


def is_running_under_wine() -> bool:
    """
    Определяет, работает ли процесс под Wine.

    Wine экспортирует из ntdll функцию wine_get_version, у настоящей
    Windows ее нет. Переменная XIVDOCTOR_FORCE_WINE=1 включает режим вручную.
    """
    if os.getenv("XIVDOCTOR_FORCE_WINE") == "1":
        return True
    try:
        ntdll = ctypes.windll.ntdll
    except (AttributeError, OSError):
        return False
    try:
        getattr(ntdll, "wine_get_version")
    except AttributeError:
        return False
    logger.info("Обнаружен слой совместимости Wine.")
    return True
