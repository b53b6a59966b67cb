from __future__ import annotations

import io
import re
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.concurrency import run_in_threadpool

from ..config import Settings
from ..dependencies import get_report_service, get_run_log, get_settings
from ..services.report import (
    ConfigError,
    FileReadError,
    ReportConfig,
    ReportService,
    ReportWriteError,
    RunInProgressError,
)
from ..services.run_log import RunLog

router = APIRouter(prefix="/reports", tags=["reports"])


class ReportRequest(BaseModel):
    input_files: List[str] = Field(default_factory=list, alias="inputFiles", description="Input table paths, in merge order")
    output_dir: Optional[str] = Field(None, alias="outputDir", description="Directory for the generated report")
    identifier_tag: str = Field("", alias="identifierTag", description="Prefix for finding identifiers")
    sequence_offset: int = Field(0, alias="sequenceOffset", description="Sequence number offset")
    test_date: str = Field("", alias="testDate")
    code_version: str = Field("", alias="codeVersion")
    tester: str = Field("")

    model_config = ConfigDict(populate_by_name=True)


class PreviewRequest(BaseModel):
    path: str = Field(..., description="Input table to preview")


def _build_attachment_header(filename: str, *, default_filename: str = "findings-summary.csv") -> str:
    ascii_fallback = re.sub(r"[^A-Za-z0-9._-]+", "_", filename)
    if not ascii_fallback or not re.search(r"[A-Za-z0-9]", ascii_fallback):
        ascii_fallback = default_filename
    quoted = quote(filename)
    return f'attachment; filename="{ascii_fallback}"; filename*=UTF-8\'\'{quoted}'


@router.post("/generate")
async def generate_report(
    payload: ReportRequest,
    settings: Settings = Depends(get_settings),
    report_service: ReportService = Depends(get_report_service),
) -> Dict[str, Any]:
    output_dir = payload.output_dir or settings.default_output_dir
    config = ReportConfig.create(
        input_files=payload.input_files,
        output_dir=output_dir,
        identifier_tag=payload.identifier_tag,
        sequence_offset=payload.sequence_offset,
        test_date=payload.test_date,
        code_version=payload.code_version,
        tester=payload.tester,
        validate=False,
    )

    try:
        outcome = await run_in_threadpool(report_service.generate_report, config)
    except RunInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ConfigError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid report configuration: {exc}") from exc
    except FileReadError as exc:
        raise HTTPException(status_code=422, detail=f"Input file could not be read: {exc}") from exc
    except ReportWriteError as exc:
        raise HTTPException(status_code=500, detail=f"Report could not be written: {exc}") from exc

    return outcome.to_dict()


async def _preview(path: str, report_service: ReportService):
    try:
        return await run_in_threadpool(report_service.process_file, path)
    except FileReadError as exc:
        raise HTTPException(status_code=422, detail=f"Input file could not be read: {exc}") from exc


@router.post("/preview")
async def preview_file(
    payload: PreviewRequest,
    report_service: ReportService = Depends(get_report_service),
) -> Dict[str, Any]:
    result = await _preview(payload.path, report_service)
    return result.to_dict(report_service.labels)


@router.post("/preview/csv")
async def preview_file_csv(
    payload: PreviewRequest,
    report_service: ReportService = Depends(get_report_service),
) -> StreamingResponse:
    result = await _preview(payload.path, report_service)
    csv_text = report_service.build_summary_csv(result)
    filename = f"{result.path.stem} summary.csv"
    headers = {
        "Content-Disposition": _build_attachment_header(filename),
        "Cache-Control": "no-store",
    }
    return StreamingResponse(
        io.BytesIO(csv_text.encode("utf-8-sig")),
        media_type="text/csv",
        headers=headers,
    )


@router.get("/logs")
def list_logs(run_log: RunLog = Depends(get_run_log)) -> Dict[str, list[dict[str, str]]]:
    return {"logs": [entry.to_dict() for entry in run_log.list_logs()]}


@router.delete("/logs")
def clear_logs(run_log: RunLog = Depends(get_run_log)) -> Dict[str, str]:
    run_log.clear_logs()
    return {"status": "cleared"}


@router.get("/progress")
def get_progress(run_log: RunLog = Depends(get_run_log)) -> Dict[str, Any]:
    progress = run_log.get_progress()
    return {"progress": progress.to_dict() if progress is not None else None}


@router.delete("/progress")
def clear_progress(run_log: RunLog = Depends(get_run_log)) -> Dict[str, str]:
    run_log.clear_progress()
    return {"status": "cleared"}
