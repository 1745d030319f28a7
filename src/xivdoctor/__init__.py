"""
Инициализация пакета XIVDoctor.

Этот файл определяет основные метаданные приложения и делает их
доступными для импорта из других частей программы.
"""

__version__ = "1.0.0"
__author__ = "XIVDoctor contributors"

APP_NAME = "XIVDoctor"
APP_VERSION = __version__
ORG_NAME = __author__

__all__ = [
    "__version__",
    "__author__",
    "APP_NAME",
    "APP_VERSION",
    "ORG_NAME",
]
