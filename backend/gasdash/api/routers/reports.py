# backend/gasdash/api/routers/reports.py
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
from typing import Optional
import logging

from gasdash.pocketbase import BackendClient
from gasdash.session import get_backend
from gasdash.services.aggregation.cohorts import TimePeriod
from gasdash.services.aggregation.pipeline import ReportQuery, list_reports

LOGGER = logging.getLogger(__name__)

router = APIRouter()


def _int_param(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value else default
    except ValueError:
        return default


@router.get("/reports")
async def get_reports(
    limit: Optional[str] = None,
    page: Optional[str] = None,
    sort: Optional[str] = None,
    final_only: Optional[str] = Query(None, alias="finalOnly"),
    include_unit_desc: Optional[str] = Query(None, alias="includeUnitDesc"),
    with_surveys: Optional[str] = Query(None, alias="withSurveys"),
    time_period: Optional[str] = Query(None, alias="timePeriod"),
    pb: Optional[BackendClient] = Depends(get_backend),
) -> JSONResponse:
    """
    最終報告を集計してダッシュボード用の統計と一覧を返す。
    - finalOnly / withSurveys は "false" のときのみ無効（既定 true）
    - includeUnitDesc は "true" のときのみ有効（既定 false）
    """
    if pb is None:
        return JSONResponse({"error": "PocketBase instance not available", "reports": []}, status_code=500)

    query = ReportQuery(
        limit=_int_param(limit, 1000),
        page=_int_param(page, 1),
        sort=sort or "-report_date",
        final_only=final_only != "false",
        include_unit_desc=include_unit_desc == "true",
        with_surveys=with_surveys != "false",
        time_period=TimePeriod.parse(time_period),
    )
    LOGGER.info("Report query: %s", query.model_dump(mode="json"))

    try:
        result = await list_reports(pb, query, datetime.now(timezone.utc))
        # JSONResponse はここでシリアライズする
        return JSONResponse(result.to_json(), headers={"Cache-Control": "private, max-age=60"})
    except Exception as exc:
        LOGGER.exception("Error fetching reports from PocketBase")
        return JSONResponse(
            {"error": "Failed to fetch reports", "details": str(exc), "reports": []},
            status_code=500,
        )
