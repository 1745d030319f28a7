# src/xivdoctor/core/modules/consent.py
"""
Контракт "шлюза согласия": показать пользователю сообщение с фиксированным
набором кнопок и дождаться ответа.

Ядро не знает, как именно рисуется окно. Приложение передает реализацию:
QtConsentGateway для обычного запуска или ScriptedConsentGateway для
автоматического режима и тестов.
"""
import sys
import logging
from enum import Enum
from typing import Iterable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class MessageButtons(Enum):
    OK = "ok"
    OK_CANCEL = "ok_cancel"
    YES_NO = "yes_no"


class MessageSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class UserChoice(Enum):
    OK = "ok"
    CANCEL = "cancel"
    YES = "yes"
    NO = "no"

    @property
    def is_affirmative(self) -> bool:
        return self in (UserChoice.OK, UserChoice.YES)


# Ответ "по умолчанию" для каждого набора кнопок, если окно закрыли крестиком.
NEGATIVE_CHOICE = {
    MessageButtons.OK: UserChoice.OK,
    MessageButtons.OK_CANCEL: UserChoice.CANCEL,
    MessageButtons.YES_NO: UserChoice.NO,
}


class ConsentGateway(Protocol):
    def ask(self, message: str, buttons: MessageButtons, severity: MessageSeverity, title: str) -> UserChoice:
        ...


class QtConsentGateway:
    """
    Показывает QMessageBox без родительского окна.

    На раннем этапе запуска QApplication может еще не существовать,
    поэтому он создается по требованию.
    """

    def __init__(self):
        self._app = None

    def ask(self, message: str, buttons: MessageButtons, severity: MessageSeverity, title: str) -> UserChoice:
        from PyQt6.QtWidgets import QApplication, QMessageBox

        # QApplication должен пережить все окна, которые показывает шлюз
        if self._app is None:
            self._app = QApplication.instance() or QApplication(sys.argv)

        icons = {
            MessageSeverity.INFO: QMessageBox.Icon.Information,
            MessageSeverity.WARNING: QMessageBox.Icon.Warning,
            MessageSeverity.ERROR: QMessageBox.Icon.Critical,
        }
        std = QMessageBox.StandardButton
        button_sets = {
            MessageButtons.OK: std.Ok,
            MessageButtons.OK_CANCEL: std.Ok | std.Cancel,
            MessageButtons.YES_NO: std.Yes | std.No,
        }
        results = {
            std.Ok: UserChoice.OK,
            std.Cancel: UserChoice.CANCEL,
            std.Yes: UserChoice.YES,
            std.No: UserChoice.NO,
        }

        box = QMessageBox(icons[severity], title, message, button_sets[buttons])
        answer = box.exec()
        # exec() возвращает int, а не StandardButton
        choice = NEGATIVE_CHOICE[buttons]
        for button, candidate in results.items():
            if answer in (button, button.value):
                choice = candidate
                break
        logger.debug(f"Ответ пользователя на '{title}': {choice.value}")
        return choice


class ScriptedConsentGateway:
    """
    Отвечает заранее заданными ответами и запоминает все вопросы.

    Когда сценарий исчерпан, на вопросы с выбором отвечает отказом,
    а информационные сообщения просто подтверждает.
    """

    def __init__(self, answers: Optional[Iterable[UserChoice]] = None):
        self._answers: List[UserChoice] = list(answers or [])
        self.asked: List[Tuple[str, MessageButtons, MessageSeverity, str]] = []

    def ask(self, message: str, buttons: MessageButtons, severity: MessageSeverity, title: str) -> UserChoice:
        self.asked.append((message, buttons, severity, title))
        choice = self._answers.pop(0) if self._answers else NEGATIVE_CHOICE[buttons]
        logger.info(f"[{severity.value}] {title}: {message.splitlines()[0] if message else ''} -> {choice.value}")
        return choice
