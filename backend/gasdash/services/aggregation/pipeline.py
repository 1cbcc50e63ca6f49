# backend/gasdash/services/aggregation/pipeline.py
from __future__ import annotations

import logging
from datetime import datetime

from pydantic import BaseModel

from gasdash.pocketbase import BackendClient
from gasdash.schemas.report import ReportsMeta, ReportsResponse
from gasdash.services.aggregation.cohorts import (
    TimePeriod,
    build_date_filter,
    displayed_reports,
    final_filter,
    partition,
)
from gasdash.services.aggregation.metrics import compute_stats
from gasdash.services.aggregation.normalize import normalize_report
from gasdash.services.aggregation.relations import flatten_relations

LOGGER = logging.getLogger(__name__)

REPORTS_COLLECTION = "gas_reports"
FALLBACK_NOTE = "No final reports found, returning all reports"


class ReportQuery(BaseModel):
    limit: int = 1000
    page: int = 1
    sort: str = "-report_date"
    final_only: bool = True
    include_unit_desc: bool = False
    with_surveys: bool = True
    time_period: TimePeriod = TimePeriod.ALL


def expand_param(include_unit_desc: bool) -> str:
    relations = ["indications_via_report", "field_of_view_gaps"]
    if include_unit_desc:
        relations.insert(0, "driving_sessions")
    return ",".join(relations)


async def list_reports(pb: BackendClient, query: ReportQuery, now: datetime) -> ReportsResponse:
    reports = pb.collection(REPORTS_COLLECTION)
    date_filter = build_date_filter(query.time_period, now)

    # 件数確認（日付条件のみ / final のみ）
    count_all = (await reports.get_list(1, 1, filter=date_filter)).total_items
    count_final = count_all
    if query.final_only:
        count_final = (await reports.get_list(1, 1, filter=final_filter(date_filter))).total_items

    # final が0件でも他に報告があれば全件を返す
    use_all_reports = query.final_only and count_final == 0 and count_all > 0
    if query.final_only and not use_all_reports:
        filter_expr = final_filter(date_filter)
    else:
        filter_expr = date_filter

    expand = expand_param(query.include_unit_desc)
    LOGGER.info("Fetching reports filter=%r expand=%r", filter_expr, expand)
    result = await reports.get_list(query.page, query.limit, sort=query.sort, filter=filter_expr, expand=expand)

    processed = [flatten_relations(normalize_report(item), query.include_unit_desc) for item in result.items]
    shown = displayed_reports(processed, query.with_surveys)
    cohorts = partition(processed)
    stats = compute_stats(cohorts, len(shown), query.time_period)

    LOGGER.info(
        "Processed reports: total=%d final=%d final_with_surveys=%d shown=%d raw_indications=%d unique_indications=%d gaps=%d",
        len(processed), len(cohorts.final), len(cohorts.final_with_surveys), len(shown),
        stats.total_raw_indications, stats.total_indications, stats.total_gaps,
    )

    meta = ReportsMeta(
        page=result.page,
        total_pages=result.total_pages,
        total_items=len(shown) if query.with_surveys else result.total_items,
        per_page=result.per_page,
        calculation_reports_count=len(cohorts.final),
        note=FALLBACK_NOTE if use_all_reports else None,
    )
    return ReportsResponse(reports=shown, stats=stats, meta=meta)
