# src/xivdoctor/core/modules/version_oracle.py
"""
Модуль для получения последней версии надстройки из удаленного API тегов.

Сервис может быть недоступен или ограничивать частоту запросов, поэтому
любая неудача превращается в NetworkFailure, а вызывающая проверка
обязана ее пережить. Частоту обращений ограничивает период охлаждения.
"""
import os
import logging
import subprocess
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import requests

from src.xivdoctor import APP_NAME, APP_VERSION
from ..exceptions import NetworkFailure

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_MINUTES = 30


@dataclass(frozen=True)
class RemoteTag:
    """Один тег из списка: имя (строка версии) и коммит, на который он указывает."""
    name: str
    commit_sha: str = ""


def get_build_revision() -> str:
    """Короткий хеш сборки: из окружения, из git или 'unknown'."""
    env_hash = os.getenv("XIVDOCTOR_GIT_HASH")
    if env_hash:
        return env_hash
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True, text=True, check=False, timeout=5,
            cwd=Path(__file__).resolve().parent,
        )
    except (OSError, subprocess.SubprocessError):
        return "unknown"
    revision = result.stdout.strip()
    return revision if result.returncode == 0 and revision else "unknown"


def cooldown_elapsed(last_checked: datetime, now: datetime, minutes: int = DEFAULT_COOLDOWN_MINUTES) -> bool:
    """True, если с последней проверки прошло больше периода охлаждения."""
    return last_checked + timedelta(minutes=minutes) < now


class RemoteVersionOracle:
    """
    Клиент API тегов. Порядок тегов задает сервер (новые первыми),
    локально список не сортируется.
    """

    def __init__(self, timeout: float = 15, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self._session = session
        self._headers_ready = False

    @property
    def session(self) -> requests.Session:
        """Сессия с заголовками создается при первом запросе, а не при запуске."""
        if self._session is None:
            self._session = requests.Session()
        if not self._headers_ready:
            self._session.headers.update({
                "User-Agent": f"{APP_NAME.replace(' ', '')}/{APP_VERSION} ({get_build_revision()})",
                "Accept": "application/json",
            })
            self._headers_ready = True
        return self._session

    def latest_tag(self, endpoint: str) -> RemoteTag:
        """
        Возвращает первый (самый свежий) тег из ответа.

        Raises:
            NetworkFailure: Сетевая ошибка, код ответа не 2xx, невалидный
                JSON или пустой список.
        """
        logger.debug(f"Запрос списка тегов: {endpoint}")
        try:
            response = self.session.get(endpoint, timeout=self.timeout)
            response.raise_for_status()
            tags = response.json()
        except requests.RequestException as e:
            raise NetworkFailure(f"Не удалось получить список тегов: {e}") from e
        except ValueError as e:
            raise NetworkFailure(f"Сервер вернул некорректный JSON: {e}") from e

        if not isinstance(tags, list) or not tags:
            raise NetworkFailure("Сервер вернул пустой список тегов.")

        first = tags[0]
        if not isinstance(first, dict) or not first.get("name"):
            raise NetworkFailure("В первом теге отсутствует поле 'name'.")

        commit = first.get("commit") or {}
        tag = RemoteTag(name=str(first["name"]), commit_sha=str(commit.get("sha", "")) if isinstance(commit, dict) else "")
        logger.debug(f"Последний тег: {tag.name}")
        return tag
