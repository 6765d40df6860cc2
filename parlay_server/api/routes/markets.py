from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
import httpx

from ...config import logger
from ...models.api import Leg, coerce_side
from ...services.market_service import MarketService
from ..deps import get_market_service

router = APIRouter()


async def _load_market(market_id: str, market_service: MarketService):
    try:
        market = await market_service.get_market(market_id)
    except httpx.HTTPError as e:
        logger.error(f"Market lookup for {market_id} failed: {str(e)}")
        return None, JSONResponse(
            status_code=502,
            content={"success": False, "error": "Market data is unavailable right now"}
        )

    if market is None:
        return None, JSONResponse(
            status_code=404,
            content={"success": False, "error": f"Market {market_id} not found"}
        )
    return market, None


@router.get("/api/markets/{market_id}")
async def get_market(market_id: str, market_service: MarketService = Depends(get_market_service)):
    market, error = await _load_market(market_id, market_service)
    if error:
        return error
    return {"success": True, "market": market.model_dump()}


@router.get("/api/markets/{market_id}/leg")
async def get_market_leg(
    market_id: str,
    side: str = Query("YES"),
    market_service: MarketService = Depends(get_market_service),
):
    """A leg priced at the current snapshot, ready to add to a parlay."""
    try:
        side = coerce_side(side)
    except ValueError:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "side must be YES or NO"}
        )

    market, error = await _load_market(market_id, market_service)
    if error:
        return error

    try:
        leg = Leg.from_market(market, side)
    except ValueError as e:
        return JSONResponse(status_code=400, content={"success": False, "error": str(e)})
    return {"success": True, "leg": leg.model_dump(mode="json")}
