# src/xivdoctor/core/flag_store.py
"""
Хранилище флагов "уже предупреждали" и отметок времени.

Хранилище принадлежит приложению-хозяину; ядро читает и пишет только
известные ему ключи. Отсутствующий ключ означает False для флагов и
начало эпохи (UTC) для отметок времени.
"""
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class FlagStore:
    """
    YAML-файл с плоским словарем настроек.

    Если путь не задан, хранилище живет только в памяти (используется
    в тестах и в режиме без сохранения).
    """

    def __init__(self, path: Optional[Path] = None, initial: Optional[Dict[str, Any]] = None):
        self.path = Path(path) if path else None
        self._data: Dict[str, Any] = dict(initial or {})
        if self.path is not None:
            self._data.update(self._load())

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            logger.info(f"Файл настроек не найден, будут использованы значения по умолчанию: {self.path}")
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Не удалось прочитать файл настроек {self.path}: {e}", exc_info=True)
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Файл настроек {self.path} должен содержать словарь. Содержимое проигнорировано.")
            return {}
        return data

    def save(self) -> None:
        """Записывает текущее состояние на диск (если хранилище файловое)."""
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                yaml.safe_dump(self._data, f, allow_unicode=True, sort_keys=True)
        except OSError as e:
            logger.error(f"Не удалось сохранить файл настроек {self.path}: {e}", exc_info=True)

    def get_flag(self, key: str) -> bool:
        return bool(self._data.get(key, False))

    def set_flag(self, key: str, value: bool = True) -> None:
        logger.debug(f"Флаг '{key}' = {value}")
        self._data[key] = bool(value)
        self.save()

    def get_timestamp(self, key: str) -> datetime:
        """Возвращает отметку времени в UTC; битые или пустые значения считаются эпохой."""
        raw = self._data.get(key)
        if raw is None:
            return EPOCH
        if isinstance(raw, datetime):
            value = raw
        else:
            try:
                value = datetime.fromisoformat(str(raw))
            except ValueError:
                logger.warning(f"Некорректная отметка времени в ключе '{key}': {raw!r}")
                return EPOCH
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def set_timestamp(self, key: str, value: datetime) -> None:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        self._data[key] = value.astimezone(timezone.utc).isoformat()
        self.save()

    def get_path(self, key: str) -> Optional[Path]:
        raw = self._data.get(key)
        if raw is None or raw == "":
            return None
        if not isinstance(raw, str):
            logger.warning(f"Ключ '{key}' должен содержать строку с путем, получено: {raw!r}")
            return None
        return Path(raw)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._data)
