from __future__ import annotations

from fastapi import Depends, Request

from .config import Settings
from .container import Container
from .services.report import ReportService
from .services.run_log import RunLog


def get_container(request: Request) -> Container:
    container = getattr(request.app.state, "container", None)
    if not isinstance(container, Container):
        raise RuntimeError("Application container is not configured on FastAPI app state.")
    return container


def get_settings(container: Container = Depends(get_container)) -> Settings:
    return container.settings


def get_run_log(container: Container = Depends(get_container)) -> RunLog:
    return container.run_log


def get_report_service(container: Container = Depends(get_container)) -> ReportService:
    return container.report_service
