# backend/gasdash/services/work_hours/estimator.py
"""Work-hours estimate with degrading precision.

Methods are tried in order; the first one that produces a positive total
wins. A failing method is logged and skipped. When nothing produces a
figure, a fixed historical average is returned and labelled
``fallback-estimation`` so it is never mistaken for a measurement.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Awaitable, Callable, Optional, Sequence

from gasdash.pocketbase import BackendClient
from gasdash.schemas.work_hours import WorkHours
from gasdash.services.aggregation.cohorts import BASELINE_CUTOFF

LOGGER = logging.getLogger(__name__)

AVERAGE_SESSION_HOURS = 1.5
SESSIONS_PAGE_SIZE = 100

HOURS_PER_REPORT = 8
TRACKED_VEHICLES = 2
HOURS_PER_VEHICLE_RATIO = 1 / TRACKED_VEHICLES
SESSIONS_PER_REPORT = 1.0
REPORTS_PAGE_SIZE = 50

_VEHICLE_NUMBER = re.compile(r"#(\d+)")

Strategy = Callable[[BackendClient, datetime], Awaitable[WorkHours]]


def _iso(now: datetime) -> str:
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def vehicle_number(label: Optional[str]) -> Optional[int]:
    m = _VEHICLE_NUMBER.search(label or "")
    return int(m.group(1)) if m else None


async def from_driving_sessions(pb: BackendClient, now: datetime) -> WorkHours:
    result = await pb.collection("driving_sessions").get_list(
        1,
        SESSIONS_PAGE_SIZE,
        fields="id,surveyor_unit_desc,created",
        filter=f'created >= "{BASELINE_CUTOFF}"',
        sort="-created",
    )
    sessions = result.items
    LOGGER.info("Processing %d driving sessions", len(sessions))

    per_car = {1: 0, 2: 0}
    for session in sessions:
        number = vehicle_number(session.get("surveyor_unit_desc"))
        if number in per_car:
            per_car[number] += 1

    return WorkHours(
        total_work_hours=round(len(sessions) * AVERAGE_SESSION_HOURS, 2),
        car1_work_hours=round(per_car[1] * AVERAGE_SESSION_HOURS, 2),
        car2_work_hours=round(per_car[2] * AVERAGE_SESSION_HOURS, 2),
        total_sessions=len(sessions),
        car1_session_count=per_car[1],
        car2_session_count=per_car[2],
        total_breadcrumbs=0,
        method="driving-sessions-basic",
        updated=_iso(now),
    )


async def from_gas_reports(pb: BackendClient, now: datetime) -> WorkHours:
    result = await pb.collection("gas_reports").get_list(
        1,
        REPORTS_PAGE_SIZE,
        filter=f'report_date >= "{BASELINE_CUTOFF}"',
        sort="-created",
        fields="id,report_name,report_date",
    )
    reports = len(result.items)
    total = reports * HOURS_PER_REPORT
    per_car = total * HOURS_PER_VEHICLE_RATIO
    LOGGER.info("Work hours via gas reports: %.2f hours from %d reports", total, reports)

    return WorkHours(
        total_work_hours=round(total, 2),
        car1_work_hours=round(per_car, 2),
        car2_work_hours=round(per_car, 2),
        total_sessions=round(reports * TRACKED_VEHICLES * SESSIONS_PER_REPORT),
        car1_session_count=round(reports * SESSIONS_PER_REPORT),
        car2_session_count=round(reports * SESSIONS_PER_REPORT),
        total_breadcrumbs=0,
        report_count=reports,
        method="gas-reports",
        updated=_iso(now),
    )


def fallback_estimate(now: datetime) -> WorkHours:
    # 過去実績ベースの固定値（計測値ではない）
    return WorkHours(
        total_work_hours=320.5,
        car1_work_hours=160.25,
        car2_work_hours=160.25,
        total_sessions=42,
        car1_session_count=21,
        car2_session_count=21,
        total_breadcrumbs=5280,
        method="fallback-estimation",
        error_info="All calculation methods failed, using fallback estimates",
        updated=_iso(now),
    )


STRATEGIES: Sequence[Strategy] = (from_driving_sessions, from_gas_reports)


async def estimate_work_hours(
    pb: BackendClient,
    now: datetime,
    strategies: Sequence[Strategy] = STRATEGIES,
) -> WorkHours:
    for strategy in strategies:
        try:
            result = await strategy(pb, now)
        except Exception:
            LOGGER.warning("Work hours method %s failed, trying next", strategy.__name__, exc_info=True)
            continue
        if result.total_work_hours > 0:
            return result
        LOGGER.info("Work hours method %s yielded no hours, trying next", strategy.__name__)
    return fallback_estimate(now)
