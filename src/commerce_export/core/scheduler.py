"""Job scheduler abstraction.

Provides a protocol for arranging future runs (immediate, one-shot, and
recurring jobs) with an in-process implementation and a JSON-file backed one
that a host cron entry can drain with ``automation run-due``.  Swapping in a
real scheduler needs no service-layer changes.
"""

import enum
import json
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, time, timedelta, tzinfo
from pathlib import Path
from typing import Any, Protocol
from zoneinfo import ZoneInfo

from loguru import logger

from commerce_export.schemas.export_type import Frequency

ACTION_RUN_AUTOMATED = "run_automated"
ACTION_RUN_EXPORT_TYPE = "run_export_type"

RETRY_JOB_NAME = "retry:automated"
RECURRING_JOB_PREFIX = "export:"
AUTOMATED_JOB_NAME = "automated:run"


class JobKind(enum.StrEnum):
    """How a job repeats."""

    IMMEDIATE = "immediate"
    ONCE = "once"
    RECURRING = "recurring"


@dataclass
class ScheduledJob:
    """A job the scheduler will fire."""

    name: str
    action: str
    kind: JobKind
    next_run_at: datetime
    frequency: Frequency | None = None
    time_of_day: str | None = None
    timezone: str | None = None
    args: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "action": self.action,
            "kind": self.kind.value,
            "next_run_at": self.next_run_at.isoformat(),
            "frequency": self.frequency.value if self.frequency else None,
            "time_of_day": self.time_of_day,
            "timezone": self.timezone,
            "args": self.args,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScheduledJob":
        return cls(
            name=data["name"],
            action=data["action"],
            kind=JobKind(data["kind"]),
            next_run_at=datetime.fromisoformat(data["next_run_at"]),
            frequency=Frequency(data["frequency"]) if data.get("frequency") else None,
            time_of_day=data.get("time_of_day"),
            timezone=data.get("timezone"),
            args=data.get("args") or {},
        )


def _parse_time(time_of_day: str) -> time:
    hour, minute = (int(part) for part in time_of_day.split(":", 1))
    return time(hour, minute)


def compute_next_run(frequency: Frequency, time_of_day: str, now: datetime, tz: tzinfo) -> datetime:
    """Next fire time strictly after ``now`` for a recurring cadence.

    Hourly jobs fire at the configured minute of every hour; weekly jobs on
    Mondays; monthly jobs on the first day of the month.

    Args:
        frequency: Cadence.
        time_of_day: ``HH:MM`` in the reference timezone.
        now: Current aware datetime.
        tz: Reference timezone.

    Returns:
        The next run time in UTC.
    """
    at = _parse_time(time_of_day)
    local_now = now.astimezone(tz)

    if frequency == Frequency.HOURLY:
        candidate = local_now.replace(minute=at.minute, second=0, microsecond=0)
        if candidate <= local_now:
            candidate += timedelta(hours=1)
        return candidate.astimezone(UTC)

    today_at = datetime.combine(local_now.date(), at, tzinfo=tz)

    if frequency == Frequency.DAILY:
        candidate = today_at if today_at > local_now else today_at + timedelta(days=1)
    elif frequency == Frequency.WEEKLY:
        days_ahead = (7 - local_now.weekday()) % 7
        candidate = today_at + timedelta(days=days_ahead)
        if candidate <= local_now:
            candidate += timedelta(days=7)
    else:
        candidate = today_at.replace(day=1)
        if candidate <= local_now:
            year, month = (local_now.year + 1, 1) if local_now.month == 12 else (local_now.year, local_now.month + 1)
            candidate = candidate.replace(year=year, month=month)

    return candidate.astimezone(UTC)


class JobScheduler(Protocol):
    """Protocol for arranging future export runs."""

    def run_now(self, name: str, action: str, **args: Any) -> ScheduledJob:
        """Queue a job for immediate execution."""
        ...

    def schedule_once(self, name: str, run_at: datetime, action: str, **args: Any) -> ScheduledJob:
        """Fire a job exactly once at ``run_at``, replacing any job of the same name."""
        ...

    def schedule_recurring(
        self,
        name: str,
        frequency: Frequency,
        time_of_day: str,
        tz: tzinfo,
        action: str,
        **args: Any,
    ) -> ScheduledJob:
        """Fire a job repeatedly at a cadence, replacing any job of the same name."""
        ...

    def cancel(self, name: str) -> bool:
        """Remove a named job.  Returns False when no such job existed."""
        ...

    def list_jobs(self) -> list[ScheduledJob]: ...


class InMemoryJobScheduler:
    """In-process scheduler that records jobs and hands out the due ones.

    Nothing fires on its own; the caller drains ``due_jobs`` and retires each
    fired job with ``complete``.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, ScheduledJob] = {}

    def _now(self) -> datetime:
        return datetime.now(UTC)

    def _store(self, job: ScheduledJob) -> ScheduledJob:
        if job.name in self._jobs:
            logger.debug("Replacing scheduled job {!r}", job.name)
        self._jobs[job.name] = job
        self._persist()
        return job

    def _persist(self) -> None:
        """Hook for durable subclasses."""

    def run_now(self, name: str, action: str, **args: Any) -> ScheduledJob:
        job = ScheduledJob(name=name, action=action, kind=JobKind.IMMEDIATE, next_run_at=self._now(), args=args)
        return self._store(job)

    def schedule_once(self, name: str, run_at: datetime, action: str, **args: Any) -> ScheduledJob:
        logger.info("Scheduled one-shot job {!r} at {}", name, run_at.isoformat())
        return self._store(ScheduledJob(name=name, action=action, kind=JobKind.ONCE, next_run_at=run_at, args=args))

    def schedule_recurring(
        self,
        name: str,
        frequency: Frequency,
        time_of_day: str,
        tz: tzinfo,
        action: str,
        **args: Any,
    ) -> ScheduledJob:
        next_run = compute_next_run(frequency, time_of_day, self._now(), tz)
        logger.info(
            "Scheduled {} job {!r} at {}, next run {}", frequency.value, name, time_of_day, next_run.isoformat()
        )
        return self._store(
            ScheduledJob(
                name=name,
                action=action,
                kind=JobKind.RECURRING,
                next_run_at=next_run,
                frequency=frequency,
                time_of_day=time_of_day,
                timezone=str(tz),
                args=args,
            )
        )

    def cancel(self, name: str) -> bool:
        removed = self._jobs.pop(name, None) is not None
        if removed:
            self._persist()
        return removed

    def get(self, name: str) -> ScheduledJob | None:
        return self._jobs.get(name)

    def list_jobs(self) -> list[ScheduledJob]:
        return sorted(self._jobs.values(), key=lambda j: j.next_run_at)

    def due_jobs(self, now: datetime | None = None) -> list[ScheduledJob]:
        """Jobs due at ``now``, earliest first.  The job table is not changed.

        Call ``complete`` once a job's run has returned; a job whose run never
        returned stays due and fires again on the next drain.

        Args:
            now: Current time (defaults to the wall clock).

        Returns:
            Due jobs, earliest first.
        """
        now = now or self._now()
        return [job for job in self.list_jobs() if job.next_run_at <= now]

    def complete(self, job: ScheduledJob, now: datetime | None = None) -> None:
        """Retire a fired job: one-shot and immediate jobs are removed, recurring ones advanced.

        A job re-armed or cancelled while it ran is left as it now stands.

        Args:
            job: The job as returned by ``due_jobs``.
            now: Current time (defaults to the wall clock).
        """
        if self._jobs.get(job.name) != job:
            return
        now = now or self._now()
        if job.kind == JobKind.RECURRING and job.frequency and job.time_of_day:
            tz = ZoneInfo(job.timezone or "UTC")
            self._jobs[job.name] = replace(
                job,
                next_run_at=compute_next_run(job.frequency, job.time_of_day, max(now, job.next_run_at), tz),
            )
        else:
            del self._jobs[job.name]
        self._persist()


class JsonFileJobScheduler(InMemoryJobScheduler):
    """Scheduler whose job table survives restarts in a JSON file.

    Args:
        path: Job table location.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path
        if path.is_file():
            data = json.loads(path.read_text(encoding="utf-8"))
            self._jobs = {item["name"]: ScheduledJob.from_dict(item) for item in data.get("jobs", [])}

    def _persist(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"jobs": [job.to_dict() for job in self.list_jobs()]}
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
