"""Plan rejection metrics: why candidate plans failed validation.

Every unusable candidate is counted by reason, activity level and day type.
Aggregation, windows and background persistence live in ``plan_metrics``;
this module binds them to ``RejectionReason`` and the
``plan_rejection_metrics`` table.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Mapping

from fitplan.config import Settings, get_settings
from fitplan.db import get_session_factory
from fitplan.models import PlanRejectionMetric
from fitplan.services.plan_metrics import (
    InMemoryMetricStore,
    MetricRecorder,
    MetricStatistics,
    MetricStore,
    PlanMetric,
    SqlMetricStore,
    aggregate_metrics,
)
from fitplan.services.plan_validator import RejectionReason

logger = logging.getLogger(__name__)

RejectionMetric = PlanMetric
RejectionStatistics = MetricStatistics
RejectionStore = MetricStore
InMemoryRejectionStore = InMemoryMetricStore
aggregate_rejections = aggregate_metrics


class SqlRejectionStore(SqlMetricStore):
    """Rejections persisted to the ``plan_rejection_metrics`` table."""
    model = PlanRejectionMetric


class PlanRejectionRecorder(MetricRecorder):
    """Thread-safe rejection aggregates with optional background persistence."""
    event_message = "Plan rejected: %s"
    event_level = logging.WARNING
    log = logger


def build_recorder(settings: Settings | None = None) -> PlanRejectionRecorder:
    settings = settings or get_settings()
    store = None
    if settings.persists_metrics:
        store = SqlRejectionStore(get_session_factory(settings.metrics_database_url))
    return PlanRejectionRecorder(store=store, settings=settings)


@lru_cache(maxsize=1)
def get_default_recorder() -> PlanRejectionRecorder:
    """Process-wide recorder for callers that do not inject their own."""
    return build_recorder()


def record_plan_rejection(
    reason: RejectionReason | str,
    context: Mapping[str, Any] | None = None,
    recorder: PlanRejectionRecorder | None = None,
) -> RejectionMetric:
    return (recorder or get_default_recorder()).record(reason, context)
