from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Application configuration loaded from environment variables."""

    frontend_origin_url: str
    default_output_dir: Optional[Path] = None
    report_locale: str = "zh"
    identifier_width: int = 4
    max_parallel_reads: int = 4

    @property
    def frontend_origin(self) -> str:
        parsed = urlparse(self.frontend_origin_url)
        if not parsed.scheme:
            return "*"
        return f"{parsed.scheme}://{parsed.netloc}"


def _int_from_env(name: str, default: int, *, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if value >= minimum else default


def load_settings() -> Settings:
    output_dir_env = os.getenv("REPORT_OUTPUT_DIR")
    output_dir = Path(output_dir_env).expanduser() if output_dir_env else None

    return Settings(
        frontend_origin_url=os.getenv("FRONTEND_ORIGIN", "http://localhost:5173/"),
        default_output_dir=output_dir,
        report_locale=os.getenv("REPORT_LOCALE", "zh").strip().lower() or "zh",
        identifier_width=_int_from_env("REPORT_IDENTIFIER_WIDTH", 4),
        max_parallel_reads=_int_from_env("REPORT_MAX_PARALLEL_READS", 4),
    )
