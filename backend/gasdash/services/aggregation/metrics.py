# backend/gasdash/services/aggregation/metrics.py
"""Fleet statistics over the report cohorts.

Distance, indication and gap figures only ever come from final reports
that have driving sessions; the ``*_draft_distance`` figures are the one
exception and use draft reports with sessions.
"""
from __future__ import annotations

import math
from typing import Iterable, Optional

from gasdash.schemas.report import Report, ReportStats
from gasdash.services.aggregation.cohorts import Cohorts, TimePeriod
from gasdash.services.aggregation.dedup import dedupe_indications
from gasdash.services.aggregation.normalize import coerce_number

VEHICLE_LABELS = ("Vehicle #1", "Vehicle #2", "Vehicle #3", "Vehicle #4")

WEEKLY_TARGET_KM = 200
DAILY_TARGET_KM = WEEKLY_TARGET_KM / 5  # 稼働5日


def _finite(value: float) -> float:
    # NaN / Infinity は JSON に出せない
    return value if math.isfinite(value) else 0


def sum_distance(reports: Iterable[Report], vehicle: Optional[str] = None) -> float:
    total = 0.0
    for r in reports:
        if vehicle is not None and r.surveyor_unit_desc != vehicle:
            continue
        total += coerce_number(r.dist_mains_covered_length)
    return _finite(total)


def unique_indications(reports: Iterable[Report]) -> list[dict]:
    """Union of all indications, each tagged with the vehicle of the report it was last seen in."""
    tagged = (
        {**indication, "surveyor_unit_desc": r.surveyor_unit_desc}
        for r in reports
        for indication in r.indications
    )
    _, unique = dedupe_indications(tagged)
    return unique


def rate(count: float, distance: float) -> float:
    return _finite(count / distance) if distance > 0 else 0


def compute_stats(cohorts: Cohorts, displayed_count: int, time_period: TimePeriod) -> ReportStats:
    final = cohorts.final_with_surveys
    drafts = cohorts.draft_with_surveys

    total_distance = sum_distance(final)
    car_distance = [sum_distance(final, v) for v in VEHICLE_LABELS]
    car_draft_distance = [sum_distance(drafts, v) for v in VEHICLE_LABELS]

    unique = unique_indications(final)
    car_lisa = [sum(1 for i in unique if i.get("surveyor_unit_desc") == v) for v in VEHICLE_LABELS]

    fields: dict = {}
    for n in range(1, len(VEHICLE_LABELS) + 1):
        fields[f"car{n}_distance"] = car_distance[n - 1]
        fields[f"car{n}_draft_distance"] = car_draft_distance[n - 1]
        fields[f"car{n}_lisa_count"] = car_lisa[n - 1]
        fields[f"car{n}_lisa_per_km"] = rate(car_lisa[n - 1], car_distance[n - 1])

    return ReportStats(
        total_reports=displayed_count,
        calculation_reports_count=len(cohorts.final),
        report_counts=cohorts.counts(),
        total_distance=total_distance,
        total_draft_distance=sum_distance(drafts),
        total_gaps=sum(r.field_of_view_gaps_count for r in final),
        total_indications=len(unique),
        total_raw_indications=sum(r.indications_count for r in final),
        total_lisa_per_km=rate(len(unique), total_distance),
        weekly_target_km=WEEKLY_TARGET_KM,
        daily_target_km=DAILY_TARGET_KM,
        weekly_progress=_finite(total_distance / WEEKLY_TARGET_KM * 100) if time_period is TimePeriod.WEEK else 0,
        daily_progress=_finite(total_distance / DAILY_TARGET_KM * 100) if time_period is TimePeriod.TODAY else 0,
        time_period=time_period.value,
        **fields,
    )
