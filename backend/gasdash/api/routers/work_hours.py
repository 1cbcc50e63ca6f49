# backend/gasdash/api/routers/work_hours.py
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
from typing import Optional

from gasdash.pocketbase import BackendClient
from gasdash.session import SessionInfo, get_backend, get_session
from gasdash.services.work_hours.estimator import estimate_work_hours

router = APIRouter()


@router.get("/work-hours")
async def get_work_hours(
    pb: Optional[BackendClient] = Depends(get_backend),
    session: SessionInfo = Depends(get_session),
) -> JSONResponse:
    if pb is None:
        return JSONResponse(
            {
                "error": "Failed to calculate work hours",
                "details": "PocketBase client not initialized",
                "method": "failed",
            },
            status_code=500,
        )
    if not session.authenticated:
        return JSONResponse({"error": "Authentication required"}, status_code=401)

    result = await estimate_work_hours(pb, datetime.now(timezone.utc))
    return JSONResponse(result.to_json())
