"""
Этот пакет содержит ядро проверок окружения: обнаружение проблем,
запрос согласия и исправление с повышением прав.

Он не зависит от GUI: диалоги передаются извне через ConsentGateway.
"""

from .flag_store import FlagStore
from .runner import ProblemCheckRunner, RunReport

__all__ = [
    "FlagStore",
    "ProblemCheckRunner",
    "RunReport",
]
