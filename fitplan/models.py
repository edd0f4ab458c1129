from __future__ import annotations

import datetime as dt
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class PlanMetricColumns:
    """Columns shared by the rejection and correction metric tables."""

    id: Mapped[int] = mapped_column(primary_key=True)
    reason: Mapped[str] = mapped_column(String(80))
    activity_level: Mapped[str | None] = mapped_column(String(40), index=True)
    day_type: Mapped[str | None] = mapped_column(String(40))
    context_json: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    recorded_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), index=True)


class PlanRejectionMetric(PlanMetricColumns, Base):
    __tablename__ = "plan_rejection_metrics"
    __table_args__ = (Index("ix_plan_rejection_metrics_reason_recorded", "reason", "recorded_at"),)


class PlanCorrectionMetric(PlanMetricColumns, Base):
    __tablename__ = "plan_correction_metrics"
    __table_args__ = (Index("ix_plan_correction_metrics_reason_recorded", "reason", "recorded_at"),)
