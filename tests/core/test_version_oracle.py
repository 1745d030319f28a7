# tests/core/test_version_oracle.py
"""
Тесты для клиента API тегов и периода охлаждения.
"""
import pytest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

import requests

from src.xivdoctor.core.exceptions import NetworkFailure
from src.xivdoctor.core.modules import version_oracle
from src.xivdoctor.core.modules.version_oracle import (
    RemoteTag,
    RemoteVersionOracle,
    cooldown_elapsed,
    get_build_revision,
)

TAGS_URL = "https://api.github.com/repos/mortalitas/gshade/tags"


@pytest.fixture
def session():
    mock_session = MagicMock()
    mock_session.headers = {}
    return mock_session


@pytest.fixture
def oracle(session, monkeypatch):
    monkeypatch.setenv("XIVDOCTOR_GIT_HASH", "abc1234")
    return RemoteVersionOracle(timeout=5, session=session)


class TestLatestTag:

    def test_returns_first_tag(self, oracle, session):
        # GIVEN: сервер отдает теги от новых к старым
        session.get.return_value.json.return_value = [
            {"name": "v4.1.1", "commit": {"sha": "deadbeef"}},
            {"name": "v4.1.0", "commit": {"sha": "cafebabe"}},
        ]

        # WHEN
        tag = oracle.latest_tag(TAGS_URL)

        # THEN
        assert tag == RemoteTag(name="v4.1.1", commit_sha="deadbeef")
        session.get.assert_called_once_with(TAGS_URL, timeout=5)

    def test_sends_identifying_user_agent(self, oracle, session):
        # GIVEN
        session.get.return_value.json.return_value = [{"name": "v4.1.1"}]

        # WHEN
        oracle.latest_tag(TAGS_URL)

        # THEN
        assert session.headers["User-Agent"] == "XIVDoctor/1.0.0 (abc1234)"
        assert session.headers["Accept"] == "application/json"

    def test_connection_error_becomes_network_failure(self, oracle, session):
        session.get.side_effect = requests.ConnectionError("connection reset")
        with pytest.raises(NetworkFailure):
            oracle.latest_tag(TAGS_URL)

    def test_http_error_becomes_network_failure(self, oracle, session):
        # GIVEN: ограничение частоты запросов
        session.get.return_value.raise_for_status.side_effect = requests.HTTPError("403 rate limit exceeded")

        # WHEN / THEN
        with pytest.raises(NetworkFailure):
            oracle.latest_tag(TAGS_URL)

    def test_invalid_json_becomes_network_failure(self, oracle, session):
        session.get.return_value.json.side_effect = ValueError("Expecting value")
        with pytest.raises(NetworkFailure):
            oracle.latest_tag(TAGS_URL)

    @pytest.mark.parametrize("payload", [[], {"message": "Not Found"}, [{"commit": {}}], ["v1.0.0"]])
    def test_unusable_payload_becomes_network_failure(self, oracle, session, payload):
        session.get.return_value.json.return_value = payload
        with pytest.raises(NetworkFailure):
            oracle.latest_tag(TAGS_URL)

    def test_tag_without_commit(self, oracle, session):
        session.get.return_value.json.return_value = [{"name": "v4.0.0"}]
        assert oracle.latest_tag(TAGS_URL) == RemoteTag(name="v4.0.0")


class TestCooldown:

    NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def test_recent_check_is_within_cooldown(self):
        assert cooldown_elapsed(self.NOW - timedelta(minutes=10), self.NOW) is False

    def test_exact_boundary_is_within_cooldown(self):
        assert cooldown_elapsed(self.NOW - timedelta(minutes=30), self.NOW) is False

    def test_old_check_has_elapsed(self):
        assert cooldown_elapsed(self.NOW - timedelta(minutes=31), self.NOW) is True

    def test_custom_period(self):
        assert cooldown_elapsed(self.NOW - timedelta(minutes=6), self.NOW, minutes=5) is True


class TestBuildRevision:

    def test_revision_from_environment(self, monkeypatch):
        monkeypatch.setenv("XIVDOCTOR_GIT_HASH", "f00ba12")
        assert get_build_revision() == "f00ba12"

    def test_revision_from_git(self, monkeypatch, mocker):
        monkeypatch.delenv("XIVDOCTOR_GIT_HASH", raising=False)
        mock_run = mocker.patch("src.xivdoctor.core.modules.version_oracle.subprocess.run")
        mock_run.return_value = MagicMock(returncode=0, stdout="1a2b3c4\n")
        assert get_build_revision() == "1a2b3c4"
        # git запускается из папки модуля, а не из текущей папки пользователя
        assert mock_run.call_args.kwargs["cwd"] == Path(version_oracle.__file__).resolve().parent

    def test_revision_unknown_without_git(self, monkeypatch, mocker):
        monkeypatch.delenv("XIVDOCTOR_GIT_HASH", raising=False)
        mocker.patch("src.xivdoctor.core.modules.version_oracle.subprocess.run", side_effect=FileNotFoundError)
        assert get_build_revision() == "unknown"


class TestLazySession:

    def test_construction_does_not_touch_git_or_network(self, mocker):
        # GIVEN
        mock_revision = mocker.patch("src.xivdoctor.core.modules.version_oracle.get_build_revision")
        mock_session_class = mocker.patch("src.xivdoctor.core.modules.version_oracle.requests.Session")

        # WHEN
        RemoteVersionOracle(timeout=5)

        # THEN
        mock_revision.assert_not_called()
        mock_session_class.assert_not_called()

    def test_revision_is_resolved_once(self, session, mocker):
        # GIVEN
        mock_revision = mocker.patch(
            "src.xivdoctor.core.modules.version_oracle.get_build_revision", return_value="abc1234"
        )
        session.get.return_value.json.return_value = [{"name": "v4.1.1"}]
        oracle = RemoteVersionOracle(timeout=5, session=session)

        # WHEN
        oracle.latest_tag(TAGS_URL)
        oracle.latest_tag(TAGS_URL)

        # THEN
        mock_revision.assert_called_once()
