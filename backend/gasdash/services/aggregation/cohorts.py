# backend/gasdash/services/aggregation/cohorts.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Sequence

from gasdash.schemas.report import Report, ReportCounts

# 集計対象はこの日付以降のみ（運用上の固定値）
BASELINE_CUTOFF = "2025-07-01"

# 週の区切り：月曜 12:00 UTC
WEEK_START_HOUR_UTC = 12


class TimePeriod(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    ALL = "all"

    @classmethod
    def parse(cls, value: Optional[str]) -> "TimePeriod":
        try:
            return cls(value or "all")
        except ValueError:
            return cls.ALL


def week_start(now: datetime) -> datetime:
    now = now.astimezone(timezone.utc)
    monday = (now - timedelta(days=now.weekday())).replace(hour=WEEK_START_HOUR_UTC, minute=0, second=0, microsecond=0)
    if now < monday:
        monday -= timedelta(days=7)
    return monday


def period_start(period: TimePeriod, now: datetime) -> Optional[date]:
    now = now.astimezone(timezone.utc)
    if period is TimePeriod.TODAY:
        return now.date()
    if period is TimePeriod.WEEK:
        return week_start(now).date()
    if period is TimePeriod.MONTH:
        return now.date().replace(day=1)
    return None


def build_date_filter(period: TimePeriod, now: datetime) -> str:
    expr = f'report_date >= "{BASELINE_CUTOFF}"'
    start = period_start(period, now)
    if start is not None:
        expr += f' && report_date >= "{start.isoformat()}"'
    return expr


def final_filter(date_filter: str) -> str:
    return date_filter + " && report_final=1"


@dataclass(frozen=True)
class Cohorts:
    all: tuple
    with_surveys: tuple
    final: tuple
    final_with_surveys: tuple
    draft_with_surveys: tuple

    def counts(self) -> ReportCounts:
        return ReportCounts(
            all=len(self.all),
            with_surveys=len(self.with_surveys),
            final=len(self.final),
            final_with_surveys=len(self.final_with_surveys),
            draft_with_surveys=len(self.draft_with_surveys),
        )


def partition(reports: Sequence[Report]) -> Cohorts:
    """Split the fetched page into the cohorts used as metric denominators."""
    reports = tuple(reports)
    return Cohorts(
        all=reports,
        with_surveys=tuple(r for r in reports if r.has_surveys),
        final=tuple(r for r in reports if r.report_final),
        final_with_surveys=tuple(r for r in reports if r.has_surveys and r.report_final),
        draft_with_surveys=tuple(r for r in reports if r.has_surveys and not r.report_final),
    )


def displayed_reports(reports: Sequence[Report], with_surveys: bool) -> list[Report]:
    if with_surveys:
        return [r for r in reports if r.has_surveys]
    return list(reports)
