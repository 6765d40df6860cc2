# parlay_server/api/routes/resolution.py
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse

from ...config import CRON_SECRET, logger
from ...services.market_resolution import ResolutionService
from ..deps import get_resolution_service

router = APIRouter()


def _authorized(authorization: Optional[str]) -> bool:
    if not CRON_SECRET:
        return True
    return secrets.compare_digest(authorization or "", f"Bearer {CRON_SECRET}")


@router.api_route("/api/cron/resolve", methods=["GET", "POST"])
async def resolve_parlays(
    authorization: Optional[str] = Header(None),
    resolution_service: ResolutionService = Depends(get_resolution_service),
):
    """
    Settle open parlays whose markets have resolved.
    Called by the scheduler; protected by CRON_SECRET when it is set.
    """
    if not _authorized(authorization):
        return JSONResponse(status_code=401, content={"success": False, "error": "Unauthorized"})

    try:
        summary = await resolution_service.process_open_parlays()
        return JSONResponse(
            content={
                "success": True,
                **summary.to_dict()
            }
        )
    except Exception as e:
        logger.error(f"Failed to resolve parlays: {str(e)}")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": str(e)
            }
        )
