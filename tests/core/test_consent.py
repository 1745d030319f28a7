# tests/core/test_consent.py
"""
Тесты для шлюзов согласия: сценарный (без окон) и Qt.
"""
import os
import subprocess
import sys
from pathlib import Path

import pytest

from src.xivdoctor.core.modules.consent import (
    MessageButtons,
    MessageSeverity,
    QtConsentGateway,
    ScriptedConsentGateway,
    UserChoice,
)


class TestScriptedConsentGateway:

    def test_answers_are_used_in_order(self):
        gateway = ScriptedConsentGateway([UserChoice.YES, UserChoice.CANCEL])

        first = gateway.ask("Исправить?", MessageButtons.YES_NO, MessageSeverity.ERROR, "XIVLauncher Problem")
        second = gateway.ask("Удалить?", MessageButtons.OK_CANCEL, MessageSeverity.WARNING, "XIVLauncher")

        assert (first, second) == (UserChoice.YES, UserChoice.CANCEL)
        assert gateway.asked[0] == ("Исправить?", MessageButtons.YES_NO, MessageSeverity.ERROR, "XIVLauncher Problem")
        assert len(gateway.asked) == 2

    @pytest.mark.parametrize("buttons, expected", [
        (MessageButtons.OK, UserChoice.OK),
        (MessageButtons.OK_CANCEL, UserChoice.CANCEL),
        (MessageButtons.YES_NO, UserChoice.NO),
    ])
    def test_exhausted_script_declines(self, buttons, expected):
        assert ScriptedConsentGateway().ask("?", buttons, MessageSeverity.INFO, "t") is expected

    def test_affirmative_choices(self):
        assert UserChoice.OK.is_affirmative
        assert UserChoice.YES.is_affirmative
        assert not UserChoice.NO.is_affirmative
        assert not UserChoice.CANCEL.is_affirmative


class TestQtConsentGateway:

    @pytest.fixture
    def qt(self, mocker):
        pytest.importorskip("PyQt6.QtWidgets")
        mock_qapplication = mocker.patch("PyQt6.QtWidgets.QApplication")
        mock_qmessagebox = mocker.patch("PyQt6.QtWidgets.QMessageBox")
        return mock_qapplication, mock_qmessagebox

    def test_yes_button_maps_to_yes(self, qt):
        # GIVEN
        _, mock_qmessagebox = qt
        mock_qmessagebox.return_value.exec.return_value = mock_qmessagebox.StandardButton.Yes

        # WHEN
        choice = QtConsentGateway().ask("Обновить?", MessageButtons.YES_NO, MessageSeverity.WARNING, "XIVLauncher Problem")

        # THEN
        assert choice is UserChoice.YES
        args = mock_qmessagebox.call_args[0]
        assert args[0] is mock_qmessagebox.Icon.Warning
        assert args[1] == "XIVLauncher Problem"
        assert args[2] == "Обновить?"

    def test_closed_window_is_negative(self, qt):
        # GIVEN: окно закрыто крестиком, exec() вернул неизвестный код
        _, mock_qmessagebox = qt
        mock_qmessagebox.return_value.exec.return_value = -1

        # WHEN
        choice = QtConsentGateway().ask("Удалить?", MessageButtons.OK_CANCEL, MessageSeverity.WARNING, "XIVLauncher")

        # THEN
        assert choice is UserChoice.CANCEL

    def test_reuses_existing_qapplication(self, qt):
        mock_qapplication, mock_qmessagebox = qt
        mock_qmessagebox.return_value.exec.return_value = mock_qmessagebox.StandardButton.Ok

        QtConsentGateway().ask("MacType", MessageButtons.OK, MessageSeverity.ERROR, "XIVLauncher Problem")

        mock_qapplication.instance.assert_called_once()
        mock_qapplication.assert_not_called()

    def test_created_qapplication_is_kept_between_prompts(self, qt):
        # GIVEN: QApplication еще не создан
        mock_qapplication, mock_qmessagebox = qt
        mock_qapplication.instance.return_value = None
        mock_qmessagebox.return_value.exec.return_value = mock_qmessagebox.StandardButton.No
        gateway = QtConsentGateway()

        # WHEN
        gateway.ask("Первый вопрос", MessageButtons.YES_NO, MessageSeverity.WARNING, "XIVLauncher Problem")
        gateway.ask("Второй вопрос", MessageButtons.YES_NO, MessageSeverity.WARNING, "XIVLauncher Problem")

        # THEN
        mock_qapplication.assert_called_once()
        assert gateway._app is mock_qapplication.return_value


# Скрипт выполняется в отдельном процессе: разрушенный QApplication
# завершает процесс аварийно, а не исключением.
REAL_QT_SCRIPT = """
from PyQt6.QtWidgets import QMessageBox
from src.xivdoctor.core.modules.consent import MessageButtons, MessageSeverity, QtConsentGateway

QMessageBox.exec = lambda self: QMessageBox.StandardButton.Yes.value

gateway = QtConsentGateway()
print(gateway.ask("Исправить?", MessageButtons.YES_NO, MessageSeverity.WARNING, "XIVLauncher Problem").value)
print(gateway.ask("Обновить?", MessageButtons.YES_NO, MessageSeverity.ERROR, "XIVLauncher Problem").value)
"""


def test_real_message_box_without_existing_qapplication():
    """Настоящий QMessageBox строится, когда QApplication создает сам шлюз."""
    # GIVEN
    pytest.importorskip("PyQt6.QtWidgets")
    project_root = Path(__file__).resolve().parents[2]
    env = {**os.environ, "QT_QPA_PLATFORM": "offscreen"}

    # WHEN
    result = subprocess.run(
        [sys.executable, "-c", REAL_QT_SCRIPT],
        cwd=project_root, env=env, capture_output=True, text=True, timeout=60,
    )

    # THEN
    assert result.returncode == 0, result.stderr
    assert result.stdout.split() == ["yes", "yes"]
