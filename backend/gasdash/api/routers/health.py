# backend/gasdash/api/routers/health.py
from fastapi import APIRouter, Depends
from typing import Optional
import logging

from gasdash import config
from gasdash.pocketbase import BackendClient, BackendError
from gasdash.session import get_backend

LOGGER = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
@router.get("/")
def health() -> dict:
    return {"ok": True}


@router.get("/backend")
async def backend_health(pb: Optional[BackendClient] = Depends(get_backend)) -> dict:
    # PocketBase への疎通確認
    status, error = "connected", None
    if pb is None:
        status, error = "error", "PocketBase client not initialized"
    else:
        try:
            await pb.health()
        except BackendError as exc:
            LOGGER.warning("Backend health check failed: %s", exc.message)
            status = "error"
            error = f"Received response with status: {exc.status}" if exc.status else exc.message
    url = pb.base_url if pb is not None else config.POCKETBASE_URL
    return {"pbStatus": status, "pbError": error, "pbUrl": url}
