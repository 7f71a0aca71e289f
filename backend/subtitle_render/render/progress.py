"""Render progress tracking.

The engine pushes fractional progress into a ProgressSink. Reporting is
advisory: the sink never raises into the render and never blocks it.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class RenderStatus(Enum):
    """Render job status."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class RenderProgress:
    """Progress information for a render job."""

    job_id: str
    status: RenderStatus
    percent: float = 0.0
    current_step: Optional[str] = None
    elapsed_ms: int = 0
    error_message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "job_id": self.job_id,
            "status": self.status.value,
            "percent": self.percent,
            "current_step": self.current_step,
            "elapsed_ms": self.elapsed_ms,
            "error_message": self.error_message,
        }


ProgressListener = Callable[[RenderProgress], None]


class ProgressSink:
    """Collects progress for one render job and forwards it to a listener."""

    # Log every 5% of render progress
    LOG_STEP_PERCENT = 5.0

    def __init__(self, job_id: str, listener: Optional[ProgressListener] = None):
        self.progress = RenderProgress(job_id=job_id, status=RenderStatus.PENDING)
        self._listener = listener
        self._started = time.monotonic()
        self._last_logged_percent = 0.0

    @property
    def job_id(self) -> str:
        return self.progress.job_id

    def __call__(self, fraction: float) -> None:
        """Record render progress as a fraction between 0 and 1."""
        fraction = min(1.0, max(0.0, fraction))
        percent = round(fraction * 100, 1)
        if percent < self.progress.percent:
            return
        self.progress.percent = percent
        self._touch()

        if percent >= self._last_logged_percent + self.LOG_STEP_PERCENT or percent == 100.0:
            self._last_logged_percent = percent
            logger.info(f"[RENDER] {self.job_id} rendering progress: {round(percent)}%")

        self._notify()

    def set_step(self, step: str) -> None:
        self.progress.status = RenderStatus.PROCESSING
        self.progress.current_step = step
        self._touch()
        self._notify()

    def complete(self) -> None:
        self.progress.status = RenderStatus.COMPLETED
        self.progress.percent = 100.0
        self.progress.current_step = "Complete"
        self._touch()
        self._notify()

    def fail(self, error_message: str, cancelled: bool = False) -> None:
        self.progress.status = RenderStatus.CANCELLED if cancelled else RenderStatus.FAILED
        self.progress.error_message = error_message
        self._touch()
        self._notify()

    def _touch(self) -> None:
        self.progress.elapsed_ms = int((time.monotonic() - self._started) * 1000)

    def _notify(self) -> None:
        if self._listener is None:
            return
        try:
            self._listener(self.progress)
        except Exception as e:
            logger.warning(f"[RENDER] Progress listener failed for {self.job_id}: {e}")
