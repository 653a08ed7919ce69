"""
Job storage for shorts generation jobs.

The pipeline and routers only talk to the JobStore interface; the in-memory
implementation keeps jobs for the lifetime of the process.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    """Status of a shorts generation job."""

    QUEUED = "queued"
    DOWNLOADING = "downloading"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ShortClip:
    """A rendered short and where its captions can go."""

    clip_index: int
    output_path: str
    start_seconds: float
    end_seconds: float
    text_placement: float


@dataclass
class ShortsJob:
    """State of one job as reported to pollers."""

    job_id: str
    status: JobStatus = JobStatus.QUEUED
    video_id: Optional[str] = None
    video_title: Optional[str] = None
    video_length: Optional[float] = None
    shorts: list[str] = field(default_factory=list)
    clips: list[ShortClip] = field(default_factory=list)
    success_count: int = 0
    error: Optional[str] = None
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    updated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


def generate_job_id() -> str:
    """Short random job identifier, e.g. job_3f9a1c2be."""
    return f"job_{uuid.uuid4().hex[:9]}"


class JobStore(ABC):
    """Storage interface for job records."""

    @abstractmethod
    def get(self, job_id: str) -> Optional[ShortsJob]:
        """Return the job or None if unknown."""

    @abstractmethod
    def set(self, job: ShortsJob) -> None:
        """Insert or replace a job."""

    @abstractmethod
    def update(self, job_id: str, **changes: Any) -> ShortsJob:
        """Apply field changes to an existing job and return the new record."""

    @abstractmethod
    def list(self) -> list[ShortsJob]:
        """All jobs in insertion order."""


class InMemoryJobStore(JobStore):
    """
    Dict-backed job store.

    A lock serializes access so jobs running in executor threads and request
    handlers on the event loop see consistent records. Records are replaced,
    never mutated in place.
    """

    def __init__(self):
        self._jobs: dict[str, ShortsJob] = {}
        self._lock = threading.Lock()

    def get(self, job_id: str) -> Optional[ShortsJob]:
        with self._lock:
            return self._jobs.get(job_id)

    def set(self, job: ShortsJob) -> None:
        with self._lock:
            self._jobs[job.job_id] = job

    def update(self, job_id: str, **changes: Any) -> ShortsJob:
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                raise KeyError(f"Job not found: {job_id}")
            updated = replace(current, updated_at=datetime.now(timezone.utc).isoformat(), **changes)
            self._jobs[job_id] = updated

        if "status" in changes:
            logger.debug(f"Job {job_id}: {updated.status.value}")
        return updated

    def list(self) -> list[ShortsJob]:
        with self._lock:
            return list(self._jobs.values())
