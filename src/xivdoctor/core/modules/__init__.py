"""
Этот пакет содержит независимые адаптеры к системе: зонды окружения,
запуск команд с повышением прав, клиент версий и диалоги согласия.

Этот __init__.py файл экспортирует их классы, чтобы сделать их доступными
для импорта как единый набор инструментов.
"""

from .consent import (
    ConsentGateway,
    MessageButtons,
    MessageSeverity,
    QtConsentGateway,
    ScriptedConsentGateway,
    UserChoice,
)
from .elevated_runner import ElevatedRunner
from .system_probe import CompatibilityEntry, FileMetadata, ManagedFile, SystemProbe
from .version_oracle import RemoteTag, RemoteVersionOracle

__all__ = [
    "ConsentGateway",
    "MessageButtons",
    "MessageSeverity",
    "QtConsentGateway",
    "ScriptedConsentGateway",
    "UserChoice",
    "ElevatedRunner",
    "CompatibilityEntry",
    "FileMetadata",
    "ManagedFile",
    "SystemProbe",
    "RemoteTag",
    "RemoteVersionOracle",
]
