# src/xivdoctor/core/runner.py
"""
Главный класс-оркестратор. Последовательно выполняет проверки окружения
перед запуском игры, спрашивает согласие пользователя и применяет
исправления.

Проверки идут строго по очереди: следующие смотрят на файловую систему и
реестр, которые могли изменить предыдущие. Ошибка внутри одной проверки
логируется и не мешает остальным.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from .checks import DEFAULT_CHECKS, Check, CheckContext, CheckState, Finding
from .config import DEFAULT_CHECK_CONFIG, DEFAULT_MESSAGES, KEY_GAME_PATH
from .exceptions import HostExit
from .flag_store import FlagStore
from .modules.consent import ConsentGateway
from .modules.elevated_runner import ElevatedRunner
from .modules.system_probe import ManagedFile, SystemProbe
from .modules.version_oracle import RemoteVersionOracle

logger = logging.getLogger(__name__)

FATAL_EXIT_CODE = 1


@dataclass
class CheckReport:
    name: str
    state: CheckState = CheckState.NOT_RUN
    prompted: bool = False
    remediated: bool = False
    error: Optional[str] = None


@dataclass
class RunReport:
    checks: List[CheckReport] = field(default_factory=list)
    # None означает "продолжить обычный запуск"
    exit_code: Optional[int] = None

    @property
    def terminated(self) -> bool:
        return self.exit_code is not None

    def get(self, name: str) -> Optional[CheckReport]:
        return next((report for report in self.checks if report.name == name), None)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProblemCheckRunner:
    """
    Центральное ядро, управляющее всеми проверками.

    Все внешние возможности (диалоги, запуск с повышением прав, сеть,
    хранилище флагов) передаются явно, поэтому ядро тестируется без
    реального реестра и UAC.
    """

    def __init__(
        self,
        flags: FlagStore,
        consent: ConsentGateway,
        probe: Optional[SystemProbe] = None,
        executor: Optional[ElevatedRunner] = None,
        oracle: Optional[RemoteVersionOracle] = None,
        config: Optional[Dict[str, Any]] = None,
        messages: Optional[Dict[str, str]] = None,
        checks: Optional[Sequence[Check]] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        logger.info("Инициализация ядра проверок ProblemCheckRunner...")
        self.flags = flags
        self.consent = consent
        self.config = {**DEFAULT_CHECK_CONFIG, **(config or {})}
        self.messages = {**DEFAULT_MESSAGES, **(messages or {})}
        self.probe = probe or SystemProbe()
        self.executor = executor or ElevatedRunner()
        self.oracle = oracle or RemoteVersionOracle(timeout=self.config["http_timeout"])
        self.checks: List[Check] = list(checks if checks is not None else DEFAULT_CHECKS)
        self.clock = clock

    def _build_context(self) -> CheckContext:
        game_path = self.flags.get_path(KEY_GAME_PATH)
        ctx = CheckContext(
            probe=self.probe,
            executor=self.executor,
            oracle=self.oracle,
            flags=self.flags,
            config=self.config,
            clock=self.clock,
            game_path=game_path,
        )
        if ctx.game_folder is not None:
            # Атрибуты файлов перечитываются каждый запуск, между запусками не кешируются
            ctx.shim_files = {
                key: ManagedFile(ctx.game_folder / file_name, self.probe)
                for key, file_name in self.config["shim_file_names"].items()
            }
        return ctx

    def run(self) -> RunReport:
        """
        Выполняет все проверки по порядку.

        Returns:
            Отчет; если exit_code не None, приложение нужно завершить с этим кодом.
        """
        logger.info("--- НАЧАЛО ПРОВЕРКИ ОКРУЖЕНИЯ ---")
        report = RunReport()
        ctx = self._build_context()
        alternate_platform = self.probe.is_alternate_platform()

        for check in self.checks:
            check_report = CheckReport(name=check.name)
            report.checks.append(check_report)

            skip_reason = self._skip_reason(check, ctx, alternate_platform)
            if skip_reason:
                logger.debug(f"Проверка '{check.name}' пропущена: {skip_reason}.")
                check_report.state = CheckState.SKIPPED
                continue

            try:
                self._run_check(check, ctx, check_report)
            except HostExit as e:
                logger.info(f"Проверка '{check.name}' требует завершить приложение (код {e.exit_code}).")
                check_report.state = CheckState.DONE
                report.exit_code = e.exit_code
                break
            except Exception as e:
                logger.error(f"Ошибка в проверке '{check.name}': {e}", exc_info=True)
                check_report.state = CheckState.DONE
                check_report.error = str(e)

        logger.info("--- ПРОВЕРКА ОКРУЖЕНИЯ ЗАВЕРШЕНА ---")
        return report

    def _skip_reason(self, check: Check, ctx: CheckContext, alternate_platform: bool) -> Optional[str]:
        if check.platform_specific and alternate_platform:
            return "альтернативная платформа"
        if check.needs_game_path and ctx.game_path is None:
            return "путь к игре не задан"
        if check.flag_key and self.flags.get_flag(check.flag_key):
            return f"флаг '{check.flag_key}' уже установлен"
        return None

    def _run_check(self, check: Check, ctx: CheckContext, check_report: CheckReport) -> None:
        """Один цикл: обнаружить -> спросить -> исправить -> запомнить."""
        finding = check.detect(ctx)
        if finding is None:
            check_report.state = CheckState.DONE
            return

        check_report.state = CheckState.DETECTED
        logger.info(f"Проверка '{check.name}' обнаружила проблему: {finding.message_key}")

        check_report.state = CheckState.AWAITING_CONSENT
        choice = self._ask(finding)
        check_report.prompted = True

        if not finding.remediable:
            if check.fatal:
                raise HostExit(FATAL_EXIT_CODE, f"Фатальная проблема: {finding.message_key}")
            self._remember(check)
            check_report.state = CheckState.DONE
            return

        if not choice.is_affirmative:
            logger.info(f"Пользователь отказался от исправления '{check.name}'.")
            self._remember(check)
            check_report.state = CheckState.DONE
            return

        check_report.state = CheckState.REMEDIATING
        try:
            if check.remediate is not None:
                check.remediate(ctx, finding)
                check_report.remediated = True
        finally:
            # Исправления выполняются в другом процессе: кеш файлов устарел
            ctx.refresh_files()
        check_report.state = CheckState.DONE

    def _ask(self, finding: Finding):
        message = self.messages.get(finding.message_key, finding.message_key)
        title = self.messages.get(finding.title_key, self.messages["problem_title"])
        return self.consent.ask(message, finding.buttons, finding.severity, title)

    def _remember(self, check: Check) -> None:
        if check.nag_once and check.flag_key:
            self.flags.set_flag(check.flag_key)
