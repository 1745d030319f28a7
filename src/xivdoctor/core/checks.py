# src/xivdoctor/core/checks.py
"""
Таблица проверок окружения.

Каждая проверка описывается данными (ключ флага, фатальность, зависимость
от платформы) и двумя функциями: detect находит проблему и возвращает
Finding, remediate устраняет ее после согласия пользователя. Общий цикл
"обнаружить -> спросить -> исправить -> запомнить" живет в runner.py.
"""
import os
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .config import (
    FLAG_COMPLAINED_ABOUT_ADMIN,
    FLAG_COMPLAINED_ABOUT_SHIM_DXGI,
    FLAG_COMPLAINED_ABOUT_SHIM_OUT_OF_DATE,
    FLAG_COMPLAINED_ABOUT_WRITE_ACCESS,
    KEY_LAST_SHIM_VERSION_CHECK,
)
from .exceptions import HostExit, NetworkFailure, SpawnFailure
from .flag_store import FlagStore
from .modules.consent import MessageButtons, MessageSeverity
from .modules.elevated_runner import ElevatedRunner
from .modules.system_probe import ManagedFile, SystemProbe
from .modules.version_oracle import RemoteVersionOracle, cooldown_elapsed

logger = logging.getLogger(__name__)


class CheckState(Enum):
    NOT_RUN = "not_run"
    DETECTED = "detected"
    AWAITING_CONSENT = "awaiting_consent"
    REMEDIATING = "remediating"
    DONE = "done"
    SKIPPED = "skipped"


@dataclass
class Finding:
    """Результат шага detect: что показать пользователю и что передать в remediate."""
    message_key: str
    buttons: MessageButtons
    severity: MessageSeverity
    remediable: bool = True
    title_key: str = "problem_title"
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CheckContext:
    """Все, что нужно проверкам: зонды, исполнители и хранилище флагов."""
    probe: SystemProbe
    executor: ElevatedRunner
    oracle: RemoteVersionOracle
    flags: FlagStore
    config: Dict[str, Any]
    clock: Callable[[], datetime]
    game_path: Optional[Path] = None
    shim_files: Dict[str, ManagedFile] = field(default_factory=dict)

    @property
    def game_folder(self) -> Optional[Path]:
        return self.game_path / "game" if self.game_path else None

    def refresh_files(self) -> None:
        for managed in self.shim_files.values():
            managed.refresh()

    def now(self) -> datetime:
        return self.clock()


@dataclass(frozen=True)
class Check:
    name: str
    detect: Callable[[CheckContext], Optional[Finding]]
    remediate: Optional[Callable[[CheckContext, Finding], None]] = None
    flag_key: Optional[str] = None
    fatal: bool = False
    # Отказ (или просмотр информационного сообщения) ставит флаг навсегда.
    nag_once: bool = False
    # Пропускается под Wine: реестр и UAC там не имеют смысла.
    platform_specific: bool = True
    needs_game_path: bool = False


# ===================================================================
# 1. Принудительный запуск от имени администратора
# ===================================================================

def detect_admin_overrides(ctx: CheckContext) -> Optional[Finding]:
    cfg = ctx.config
    entries = ctx.probe.read_compatibility_entries(cfg["compat_flags_path"])
    to_fix = [
        entry.name for entry in entries
        if any(marker in entry.name for marker in cfg["compat_entry_markers"])
        and cfg["compat_runas_flag"] in entry.value
    ]
    if to_fix:
        logger.info(f"Найдены записи совместимости с запуском от администратора: {to_fix}")
        return Finding(
            "AdminCheck", MessageButtons.OK_CANCEL, MessageSeverity.WARNING,
            title_key="title", payload={"entries": to_fix},
        )

    if ctx.probe.is_elevated():
        logger.info("Лаунчер запущен с правами администратора.")
        return Finding("AdminCheckNag", MessageButtons.OK, MessageSeverity.WARNING, remediable=False)
    return None


def remediate_admin_overrides(ctx: CheckContext, finding: Finding) -> None:
    store_path = ctx.config["compat_flags_path"]
    for name in finding.payload["entries"]:
        ctx.probe.delete_compatibility_entry(store_path, name)


# ===================================================================
# 2. Несовместимый системный инжектор (MacType)
# ===================================================================

def detect_incompatible_injector(ctx: CheckContext) -> Optional[Finding]:
    loaded = {name.lower() for name in ctx.probe.list_loaded_modules()}
    found = [name for name in ctx.config["incompatible_modules"] if name.lower() in loaded]
    if not found:
        return None
    logger.error(f"Обнаружены несовместимые модули в процессе: {found}")
    return Finding("MacTypeNag", MessageButtons.OK, MessageSeverity.ERROR, remediable=False, payload={"modules": found})


# ===================================================================
# 3. Права на запись в папку "My Games"
# ===================================================================

def detect_data_folder_write_access(ctx: CheckContext) -> Optional[Finding]:
    folder = ctx.probe.find_game_data_folder(ctx.config["game_data_folder_name"])
    if folder is None:
        return None
    if ctx.probe.has_write_access(folder):
        return None
    return Finding(
        "MyGamesWriteAccessNag", MessageButtons.OK, MessageSeverity.WARNING,
        remediable=False, payload={"folder": folder},
    )


# ===================================================================
# 4-7. Шейдерная надстройка в папке игры
# ===================================================================

def _shim(ctx: CheckContext, key: str) -> ManagedFile:
    return ctx.shim_files[key]


def detect_broken_shim_links(ctx: CheckContext) -> Optional[Finding]:
    broken = [f for f in ctx.shim_files.values() if not f.is_valid_link]
    if not broken:
        return None
    logger.warning(f"Битые символические ссылки надстройки: {broken}")
    return Finding("ShimSymlinks", MessageButtons.YES_NO, MessageSeverity.ERROR)


def remediate_broken_shim_links(ctx: CheckContext, finding: Finding) -> None:
    try:
        for managed in ctx.shim_files.values():
            if managed.exists:
                ctx.executor.elevated_delete(managed.path)
    except SpawnFailure as e:
        logger.error(f"Не удалось удалить битые ссылки надстройки: {e}", exc_info=True)


def detect_duplicate_shim(ctx: CheckContext) -> Optional[Finding]:
    product = ctx.config["shim_product_name"]
    d3d11, dxgi = _shim(ctx, "d3d11"), _shim(ctx, "dxgi")
    if not (d3d11.exists and dxgi.exists):
        return None
    if not (d3d11.is_product(product) and dxgi.is_product(product)):
        return None
    logger.warning(f"Надстройка {product} установлена дважды: {d3d11.name} и {dxgi.name}.")
    return Finding("ShimDuplicate", MessageButtons.YES_NO, MessageSeverity.ERROR, payload={"files": [d3d11, dxgi]})


def remediate_duplicate_shim(ctx: CheckContext, finding: Finding) -> None:
    try:
        for managed in finding.payload["files"]:
            ctx.executor.elevated_delete(managed.path)
    except SpawnFailure as e:
        logger.error(f"Не удалось удалить дублирующую установку надстройки: {e}", exc_info=True)


def detect_wrong_mode_shim(ctx: CheckContext) -> Optional[Finding]:
    product = ctx.config["shim_product_name"]
    present = [f for f in (_shim(ctx, "d3d11"), _shim(ctx, "dinput8")) if f.exists]
    # d3d11.dll и dinput8.dll взаимоисключающие режимы установки
    if len(present) != 1 or not present[0].is_product(product):
        return None
    logger.info(f"Надстройка {product} установлена в режиме {present[0].name}.")
    return Finding("ShimWrongMode", MessageButtons.YES_NO, MessageSeverity.WARNING, payload={"source": present[0]})


def remediate_wrong_mode_shim(ctx: CheckContext, finding: Finding) -> None:
    cfg = ctx.config
    source: ManagedFile = finding.payload["source"]
    destination = ctx.game_folder / cfg["shim_file_names"]["dxgi"]
    try:
        ctx.executor.elevated_move(source.path, destination)

        installations_path = cfg["shim_installations_path"]
        for install in ctx.probe.list_subkeys(installations_path):
            if cfg["shim_installation_marker"] in install:
                ctx.executor.elevated_reg_set(f"HKLM\\{installations_path}\\{install}", cfg["shim_altdx_value"], "0")
    except SpawnFailure as e:
        logger.error(f"Не удалось исправить режим установки надстройки: {e}", exc_info=True)


def detect_outdated_shim(ctx: CheckContext) -> Optional[Finding]:
    cfg = ctx.config
    product = cfg["shim_product_name"]
    if not any(f.is_product(product) for f in ctx.shim_files.values()):
        return None

    now = ctx.now()
    last_checked = ctx.flags.get_timestamp(KEY_LAST_SHIM_VERSION_CHECK)
    if not cooldown_elapsed(last_checked, now, cfg["version_check_cooldown_minutes"]):
        logger.debug(f"Проверка версии {product} пропущена: последняя была {last_checked.isoformat()}.")
        return None

    installed = ctx.probe.read_registry_string(cfg["shim_registry_path"], cfg["shim_version_value"])
    if installed is None:
        logger.debug(f"Запись {product} в реестре не найдена. Проверка версии отключается.")
        ctx.flags.set_flag(FLAG_COMPLAINED_ABOUT_SHIM_OUT_OF_DATE)
        return None
    logger.debug(f"Версия {product} в реестре: {installed}")

    try:
        latest = ctx.oracle.latest_tag(cfg["shim_tags_url"])
    except NetworkFailure as e:
        logger.debug(f"Не удалось получить последнюю версию {product}: {e}")
        return None

    # Сравнение строковое, без семантики версий: так именуются теги
    local_tag = f"{cfg['version_tag_prefix']}{installed}"
    if local_tag == latest.name:
        logger.info(f"Версия {product} актуальна ({local_tag}).")
        ctx.flags.set_timestamp(KEY_LAST_SHIM_VERSION_CHECK, now)
        return None

    logger.info(f"Версия {product} устарела: установлена {local_tag}, последняя {latest.name}.")
    return Finding(
        "ShimOutOfDate", MessageButtons.YES_NO, MessageSeverity.WARNING,
        payload={"installed": local_tag, "latest": latest.name},
    )


def remediate_outdated_shim(ctx: CheckContext, finding: Finding) -> None:
    cfg = ctx.config
    updater = os.path.expandvars(cfg["shim_updater_path"])
    try:
        ctx.executor.launch_elevated(updater, cfg["shim_updater_args"])
    except SpawnFailure as e:
        logger.error(f"Не удалось запустить программу обновления: {e}. Запуск продолжается.", exc_info=True)
        return
    # Считаем, что пользователь обновился или закрыл окно: включаем период охлаждения
    ctx.flags.set_timestamp(KEY_LAST_SHIM_VERSION_CHECK, ctx.now())
    # Программа обновления не работает, пока запущен лаунчер
    raise HostExit(0, "Запущена программа обновления надстройки.")


DEFAULT_CHECKS: List[Check] = [
    Check(
        name="admin",
        detect=detect_admin_overrides,
        remediate=remediate_admin_overrides,
        flag_key=FLAG_COMPLAINED_ABOUT_ADMIN,
        nag_once=True,
    ),
    Check(
        name="injector",
        detect=detect_incompatible_injector,
        fatal=True,
    ),
    Check(
        name="data_folder_write_access",
        detect=detect_data_folder_write_access,
        flag_key=FLAG_COMPLAINED_ABOUT_WRITE_ACCESS,
        nag_once=True,
    ),
    Check(
        name="broken_shim_links",
        detect=detect_broken_shim_links,
        remediate=remediate_broken_shim_links,
        needs_game_path=True,
    ),
    Check(
        name="duplicate_shim",
        detect=detect_duplicate_shim,
        remediate=remediate_duplicate_shim,
        needs_game_path=True,
    ),
    Check(
        name="wrong_mode_shim",
        detect=detect_wrong_mode_shim,
        remediate=remediate_wrong_mode_shim,
        flag_key=FLAG_COMPLAINED_ABOUT_SHIM_DXGI,
        nag_once=True,
        needs_game_path=True,
    ),
    Check(
        name="outdated_shim",
        detect=detect_outdated_shim,
        remediate=remediate_outdated_shim,
        flag_key=FLAG_COMPLAINED_ABOUT_SHIM_OUT_OF_DATE,
        nag_once=True,
        needs_game_path=True,
    ),
]
