from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from threading import Lock
from typing import Callable, List, Optional, Protocol

__all__ = [
    "LogLevel",
    "RunStage",
    "RunStatus",
    "LogEntry",
    "ProgressInfo",
    "ProgressSink",
    "RunLog",
]


class LogLevel(str, Enum):
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"
    SUCCESS = "Success"


class RunStage(str, Enum):
    READING = "Reading"
    DEDUPLICATING = "Deduplicating"
    GROUPING = "Grouping"
    RANKING = "Ranking"
    ASSEMBLING = "Assembling"
    WRITING = "Writing"
    DONE = "Done"

    @property
    def ordinal(self) -> int:
        return _STAGE_ORDER.index(self)


_STAGE_ORDER: List[RunStage] = list(RunStage)


class RunStatus(str, Enum):
    RUNNING = "Running"
    SUCCESS = "Success"
    FAILURE = "Failure"


@dataclass(frozen=True)
class LogEntry:
    level: LogLevel
    message: str
    timestamp: str

    def to_dict(self) -> dict[str, str]:
        return {"level": self.level.value, "message": self.message, "timestamp": self.timestamp}


@dataclass(frozen=True)
class ProgressInfo:
    stage: RunStage
    current: int
    total: int
    percentage: float
    status: RunStatus = RunStatus.RUNNING
    message: str = ""
    error: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        payload = asdict(self)
        payload["stage"] = self.stage.value
        payload["status"] = self.status.value
        return payload


class ProgressSink(Protocol):
    def append_log(self, level: LogLevel, message: str) -> object:
        ...

    def set_progress(self, stage: RunStage, current: int, total: int) -> object:
        ...


class RunLog:
    """Thread-safe log and progress state shared between a running pipeline and its pollers."""

    def __init__(
        self,
        *,
        max_entries: int = 1000,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._lock = Lock()
        self._entries: List[LogEntry] = []
        self._progress: Optional[ProgressInfo] = None
        self._active = False
        self._max_entries = max_entries
        self._clock = clock

    def begin_run(self) -> bool:
        """Claim the sink for a new run and reset its progress.

        Returns ``False`` without changing anything when another run is active.
        """
        with self._lock:
            if self._active:
                return False
            self._active = True
            self._progress = None
        return True

    def end_run(self) -> None:
        with self._lock:
            self._active = False

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._active

    def append_log(self, level: LogLevel, message: str) -> LogEntry:
        entry = LogEntry(
            level=LogLevel(level),
            message=message,
            timestamp=self._clock().strftime("%H:%M:%S"),
        )
        with self._lock:
            self._entries.append(entry)
            if len(self._entries) > self._max_entries:
                del self._entries[: len(self._entries) - self._max_entries]
        return entry

    def set_progress(
        self,
        stage: RunStage,
        current: int,
        total: int,
        message: str = "",
    ) -> ProgressInfo:
        stage = RunStage(stage)
        if stage is RunStage.DONE:
            raise ValueError("Use finish() to move a run to the Done stage.")
        info = ProgressInfo(
            stage=stage,
            current=current,
            total=total,
            percentage=_percentage(current, total),
            message=message,
        )
        with self._lock:
            self._check_transition(stage, current)
            self._progress = info
        return info

    def finish(self, status: RunStatus, *, error: Optional[str] = None, message: str = "") -> ProgressInfo:
        status = RunStatus(status)
        if status is RunStatus.RUNNING:
            raise ValueError("A finished run must be either Success or Failure.")
        with self._lock:
            if self._progress is not None and self._progress.stage is RunStage.DONE:
                raise ValueError("Run has already finished.")
            previous = self._progress
            total = previous.total if previous else 0
            current = previous.current if previous else 0
            percentage = previous.percentage if previous else 0.0
            if status is RunStatus.SUCCESS:
                current, percentage = total, 100.0
            info = ProgressInfo(
                stage=RunStage.DONE,
                current=current,
                total=total,
                percentage=percentage,
                status=status,
                message=message,
                error=error,
            )
            self._progress = info
        return info

    def list_logs(self) -> List[LogEntry]:
        with self._lock:
            return list(self._entries)

    def get_progress(self) -> Optional[ProgressInfo]:
        with self._lock:
            return self._progress

    def clear_logs(self) -> None:
        with self._lock:
            self._entries.clear()

    def clear_progress(self) -> None:
        with self._lock:
            self._progress = None

    def _check_transition(self, stage: RunStage, current: int) -> None:
        previous = self._progress
        if previous is None:
            return
        if previous.stage is RunStage.DONE:
            raise ValueError("Run has already finished; clear progress before starting another.")
        if stage.ordinal < previous.stage.ordinal:
            raise ValueError(f"Progress cannot move back from {previous.stage.value} to {stage.value}.")
        if stage is previous.stage and current < previous.current:
            raise ValueError(f"Progress within {stage.value} cannot decrease.")


def _percentage(current: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(current / total * 100.0, 2)
