from __future__ import annotations

from .config import Settings, load_settings
from .services.report import ReportService
from .services.run_log import RunLog


class Container:
    """Application service container for dependency management."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or load_settings()
        self._run_log = RunLog()
        self._report_service = ReportService(
            run_log=self._run_log,
            locale=self._settings.report_locale,
            identifier_width=self._settings.identifier_width,
            max_parallel_reads=self._settings.max_parallel_reads,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def run_log(self) -> RunLog:
        return self._run_log

    @property
    def report_service(self) -> ReportService:
        return self._report_service
