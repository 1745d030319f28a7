# src/xivdoctor/core/exceptions.py
"""
Исключения ядра проверок.

Ни одно из них не должно выходить за границы отдельной проверки, кроме
HostExit, которое сообщает раннеру, что приложение нужно завершить.
"""


class SpawnFailure(RuntimeError):
    """Не удалось создать привилегированный процесс (UAC отклонен, нет бинарника)."""


class NetworkFailure(ConnectionError):
    """Удаленный сервис версий недоступен или ответил ошибкой."""


class HostExit(Exception):
    """Проверка требует немедленно завершить приложение с указанным кодом."""

    def __init__(self, exit_code: int, reason: str = ""):
        super().__init__(reason or f"Завершение приложения с кодом {exit_code}")
        self.exit_code = exit_code
        self.reason = reason
