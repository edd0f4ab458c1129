"""Shared machinery for plan metrics (rejections and corrections).

A ``MetricRecorder`` keeps process-wide aggregates (by reason, activity
level and day type) plus a bounded window of recent events, all guarded by
one lock so concurrent requests never lose an increment. A durable
``MetricStore`` is optional; writes to it run on a single background worker
and failures there are logged and counted, never raised.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections import Counter, deque
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Iterable, Mapping

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from fitplan.config import Settings, get_settings
from fitplan.db import session_scope
from fitplan.models import PlanMetricColumns

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)


def _window_bounds(since: datetime | None, until: datetime | None) -> tuple[datetime | None, datetime | None]:
    """Naive bounds are taken as UTC."""
    return (_as_utc(since) if since else None, _as_utc(until) if until else None)


@dataclass(frozen=True)
class PlanMetric:
    """One recorded event; the context is a read-only copy taken at record time."""
    reason: str
    timestamp: datetime
    context: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def activity_level(self) -> str | None:
        value = self.context.get("activityLevel")
        return str(value) if value else None

    @property
    def day_type(self) -> str | None:
        value = self.context.get("dayType")
        return str(value) if value else None


@dataclass
class MetricStatistics:
    total: int
    by_reason: dict[str, int]
    by_activity_level: dict[str, int]
    by_day_type: dict[str, int]
    recent: list[PlanMetric]
    since: datetime | None = None
    until: datetime | None = None


def aggregate_metrics(
    metrics: Iterable[PlanMetric],
    recent_limit: int = 100,
    since: datetime | None = None,
    until: datetime | None = None,
) -> MetricStatistics:
    """Aggregate metrics inside ``[since, until]``; ``recent`` is newest first."""
    since, until = _window_bounds(since, until)
    selected = [
        m for m in metrics
        if (since is None or m.timestamp >= since) and (until is None or m.timestamp <= until)
    ]
    by_reason: Counter[str] = Counter(m.reason for m in selected)
    by_level: Counter[str] = Counter(m.activity_level for m in selected if m.activity_level)
    by_day: Counter[str] = Counter(m.day_type for m in selected if m.day_type)
    recent = sorted(selected, key=lambda m: m.timestamp, reverse=True)[:recent_limit]
    return MetricStatistics(
        total=len(selected),
        by_reason=dict(by_reason),
        by_activity_level=dict(by_level),
        by_day_type=dict(by_day),
        recent=recent,
        since=since,
        until=until,
    )


# -- Stores --


class MetricStore(ABC):
    """Durable destination for plan metrics."""

    @abstractmethod
    def save(self, metric: PlanMetric) -> None:
        ...

    @abstractmethod
    def fetch(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[PlanMetric]:
        """Metrics in ``[start, end]``, newest first."""


class InMemoryMetricStore(MetricStore):
    def __init__(self, max_metrics: int = 10_000):
        self._lock = threading.Lock()
        self._metrics: deque[PlanMetric] = deque(maxlen=max_metrics)

    def save(self, metric: PlanMetric) -> None:
        with self._lock:
            self._metrics.append(metric)

    def fetch(self, start=None, end=None, limit=None) -> list[PlanMetric]:
        start, end = _window_bounds(start, end)
        with self._lock:
            items = list(self._metrics)
        items = [
            m for m in items
            if (start is None or m.timestamp >= start) and (end is None or m.timestamp <= end)
        ]
        items.sort(key=lambda m: m.timestamp, reverse=True)
        return items[:limit] if limit is not None else items


class SqlMetricStore(MetricStore):
    """Metrics persisted to the table mapped by ``model``."""

    model: ClassVar[type[PlanMetricColumns]]

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def save(self, metric: PlanMetric) -> None:
        with session_scope(self._session_factory) as session:
            session.add(self.model(
                reason=metric.reason,
                activity_level=metric.activity_level,
                day_type=metric.day_type,
                context_json=dict(metric.context),
                recorded_at=metric.timestamp,
            ))

    def fetch(self, start=None, end=None, limit=None) -> list[PlanMetric]:
        start, end = _window_bounds(start, end)
        model = self.model
        stmt = select(model).order_by(model.recorded_at.desc(), model.id.desc())
        if start is not None:
            stmt = stmt.where(model.recorded_at >= start)
        if end is not None:
            stmt = stmt.where(model.recorded_at <= end)
        if limit is not None:
            stmt = stmt.limit(limit)
        with session_scope(self._session_factory) as session:
            rows = session.scalars(stmt).all()
            return [
                PlanMetric(
                    reason=row.reason,
                    timestamp=_as_utc(row.recorded_at),
                    context=MappingProxyType(dict(row.context_json or {})),
                )
                for row in rows
            ]


# -- Recorder --


class MetricRecorder:
    """Thread-safe metric aggregates with optional background persistence.

    Subclasses name the event in logs and pick the logger and level used
    when an event is recorded.
    """

    event_message: ClassVar[str] = "Plan metric recorded: %s"
    event_level: ClassVar[int] = logging.INFO
    log: ClassVar[logging.Logger] = logger

    def __init__(
        self,
        store: MetricStore | None = None,
        max_metrics: int | None = None,
        recent_limit: int | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self._store = store
        self._recent_limit = recent_limit or settings.rejection_recent_limit
        self._lock = threading.Lock()
        self._window: deque[PlanMetric] = deque(maxlen=max_metrics or settings.rejection_metrics_max)
        self._total = 0
        self._by_reason: Counter[str] = Counter()
        self._by_level: Counter[str] = Counter()
        self._by_day_type: Counter[str] = Counter()
        self._persistence_failures = 0
        self._pending: set[Future] = set()
        self._executor = (
            ThreadPoolExecutor(max_workers=1, thread_name_prefix="plan-metrics-store") if store else None
        )

    @property
    def store(self) -> MetricStore | None:
        return self._store

    @property
    def persistence_failures(self) -> int:
        with self._lock:
            return self._persistence_failures

    def record(
        self,
        reason: Enum | str,
        context: Mapping[str, Any] | None = None,
        timestamp: datetime | None = None,
    ) -> PlanMetric:
        """Count an event and queue its durable write. Never raises."""
        tag = reason.value if isinstance(reason, Enum) else str(reason)
        metric = PlanMetric(
            reason=tag,
            timestamp=_as_utc(timestamp) if timestamp else _utcnow(),
            context=MappingProxyType(dict(context or {})),
        )
        with self._lock:
            self._window.append(metric)
            self._total += 1
            self._by_reason[tag] += 1
            if metric.activity_level:
                self._by_level[metric.activity_level] += 1
            if metric.day_type:
                self._by_day_type[metric.day_type] += 1

        self.log.log(
            self.event_level,
            self.event_message,
            tag,
            extra={"ctx_reason": tag, "ctx_activity_level": metric.activity_level, "ctx_day_type": metric.day_type},
        )
        if self._executor is not None:
            self._submit(metric)
        return metric

    def _submit(self, metric: PlanMetric) -> None:
        try:
            future = self._executor.submit(self._persist, metric)
        except RuntimeError as exc:
            # Executor already shut down.
            self._note_failure(exc)
            return
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _persist(self, metric: PlanMetric) -> None:
        try:
            self._store.save(metric)
        except Exception as exc:
            self._note_failure(exc)

    def _note_failure(self, exc: Exception) -> None:
        with self._lock:
            self._persistence_failures += 1
        self.log.warning(
            "Plan metric not persisted; keeping in-memory aggregates only",
            extra={"ctx_error": type(exc).__name__, "ctx_detail": str(exc)},
        )

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for queued writes; False if some were still pending at timeout."""
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self, timeout: float | None = None) -> None:
        self.flush(timeout)
        if self._executor is not None:
            self._executor.shutdown(wait=True)

    def statistics(self, since: datetime | None = None, until: datetime | None = None) -> MetricStatistics:
        """Aggregates from memory.

        Without a time window the counters cover every event recorded by
        this process; with one, only the bounded recent window is searched.
        """
        since, until = _window_bounds(since, until)
        with self._lock:
            window = list(self._window)
            if since is None and until is None:
                totals = (self._total, dict(self._by_reason), dict(self._by_level), dict(self._by_day_type))
            else:
                totals = None
        if totals is None:
            return aggregate_metrics(window, self._recent_limit, since, until)
        total, by_reason, by_level, by_day = totals
        recent = sorted(window, key=lambda m: m.timestamp, reverse=True)[: self._recent_limit]
        return MetricStatistics(total, by_reason, by_level, by_day, recent)

    def statistics_from_store(
        self,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> MetricStatistics:
        """Aggregates from the durable store, falling back to memory on failure."""
        since, until = _window_bounds(since, until)
        if self._store is None:
            return self.statistics(since, until)
        try:
            metrics = self._store.fetch(since, until)
        except Exception as exc:
            self.log.warning(
                "Metric store unavailable; using in-memory statistics",
                extra={"ctx_error": type(exc).__name__, "ctx_detail": str(exc)},
            )
            return self.statistics(since, until)
        return aggregate_metrics(metrics, self._recent_limit, since, until)

    def last_24_hours_statistics(self, now: datetime | None = None) -> MetricStatistics:
        until = _as_utc(now) if now else _utcnow()
        return self.statistics(until - timedelta(hours=24), until)

    def snapshot(self) -> Mapping[str, Any]:
        """Read-only view of the aggregate counters."""
        with self._lock:
            return MappingProxyType({
                "total": self._total,
                "by_reason": MappingProxyType(dict(self._by_reason)),
                "by_activity_level": MappingProxyType(dict(self._by_level)),
                "by_day_type": MappingProxyType(dict(self._by_day_type)),
                "persistence_failures": self._persistence_failures,
            })

    def clear(self) -> None:
        """Reset in-memory aggregates; the durable store is left untouched."""
        with self._lock:
            self._window.clear()
            self._total = 0
            self._by_reason.clear()
            self._by_level.clear()
            self._by_day_type.clear()
            self._persistence_failures = 0
