# parlay_server/api/routes/parlay.py
from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from ...config import MIN_PARLAY_LEGS, PUBLIC_BASE_URL, logger
from ...models.api import (
    ParlayExecutionResult,
    ParlayQuote,
    ParlayQuoteRequest,
    ParlayRecord,
    ParlaySubmitRequest,
    SharedParlayLeg,
    SharedParlayView,
    ShareRequest,
    StoredLeg,
)
from ...services.leg_set import LegSet
from ...services.parlay_calculator import (
    calculate_parlay,
    calculate_parlay_slippage,
    check_liquidity,
    format_odds,
    get_correlation_warnings,
)
from ...services.parlay_executor import ParlayExecutor
from ...services.parlay_store import ParlayStore
from ..deps import get_parlay_executor, get_parlay_store

router = APIRouter()

SHARE_QUESTION_MAX_LENGTH = 80


@router.post("/api/parlay/quote")
async def quote_parlay(request: ParlayQuoteRequest):
    """
    Price a leg selection. Legs are added one by one, so a later pick on the
    same market replaces an earlier one, exactly as in the slip.
    """
    leg_set = LegSet(stake=request.stake)
    for leg in request.legs:
        leg_set.add_leg(leg)

    calculation = leg_set.calculation
    quote = ParlayQuote(
        calculation=calculation,
        odds_display=format_odds(calculation.combined_odds),
        correlation_warnings=get_correlation_warnings(leg_set.legs),
        slippage=calculate_parlay_slippage(leg_set.legs, calculation.stake),
        liquidity={
            leg.id: check_liquidity(leg, calculation.stake_per_leg)
            for leg in leg_set.legs
        },
    )
    return {"success": True, "quote": quote.model_dump(mode="json")}


def _persist_parlay(
    request: ParlaySubmitRequest,
    result: ParlayExecutionResult,
    store: ParlayStore,
) -> Optional[str]:
    legs_by_id = {leg.id: leg for leg in request.legs}
    order_ids = {order.leg_id: order.order_id for order in result.orders}

    missing = [o.leg_id for o in request.signed_orders if o.leg_id not in legs_by_id]
    if missing:
        logger.warning(f"Not storing parlay for {request.user_address}: no leg details for {', '.join(missing)}")
        return None

    legs = [legs_by_id[o.leg_id] for o in request.signed_orders]
    stake = request.total_stake or sum(o.size_usd for o in request.signed_orders)
    calculation = calculate_parlay(legs, stake)

    stored_legs: List[StoredLeg] = [
        StoredLeg(
            market_id=leg.market_id,
            token_id=leg.token_id,
            question=leg.question,
            side=leg.side,
            price=leg.price,
            order_id=order_ids.get(leg.id),
        )
        for leg in legs
    ]

    try:
        return store.create({
            "user_address": request.user_address,
            "stake": stake,
            "combined_odds": calculation.combined_odds,
            "potential_payout": calculation.potential_payout,
            "legs": stored_legs,
        })
    except SQLAlchemyError as e:
        logger.error(f"Orders for {request.user_address} were placed but the parlay was not stored: {str(e)}")
        return None


@router.post("/api/parlay")
async def submit_parlay(
    request: ParlaySubmitRequest,
    executor: ParlayExecutor = Depends(get_parlay_executor),
    store: ParlayStore = Depends(get_parlay_store),
):
    if not request.signed_orders:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "No signed orders provided"}
        )
    if not request.user_address:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "User address required"}
        )

    result = await executor.execute(request.signed_orders, request.user_address, request.user_credentials)

    if result.precondition == "user_credentials":
        return JSONResponse(status_code=401, content={"success": False, "error": result.errors[0]})
    if result.precondition == "builder_credentials":
        return JSONResponse(status_code=503, content={"success": False, "error": result.errors[0]})

    # Only a fully placed parlay is recorded
    parlay_id = _persist_parlay(request, result, store) if result.success else None

    accepted = sum(1 for order in result.orders if order.success)
    return {
        "success": result.success,
        "accepted": accepted,
        "rejected": len(result.orders) - accepted,
        "orders": [order.model_dump(mode="json") for order in result.orders],
        "errors": result.errors,
        "parlay_id": parlay_id,
    }


@router.get("/api/parlays/{parlay_id}")
async def get_parlay(parlay_id: str, store: ParlayStore = Depends(get_parlay_store)):
    try:
        record = store.get(parlay_id)
    except SQLAlchemyError:
        return JSONResponse(status_code=500, content={"success": False, "error": "Failed to fetch parlay"})

    if record is None:
        return JSONResponse(status_code=404, content={"success": False, "error": "Parlay not found"})
    return {"success": True, "parlay": ParlayRecord(**record).model_dump(mode="json")}


@router.post("/api/parlay/share")
async def share_parlay(request: ShareRequest, store: ParlayStore = Depends(get_parlay_store)):
    if len(request.legs) < MIN_PARLAY_LEGS:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": f"Need at least {MIN_PARLAY_LEGS} legs"}
        )

    calculation = calculate_parlay(request.legs, request.stake)
    legs = [
        SharedParlayLeg(
            q=leg.question[:SHARE_QUESTION_MAX_LENGTH],
            side=leg.side,
            price=leg.price,
            market_id=leg.market_id,
        ).model_dump(mode="json")
        for leg in request.legs
    ]

    try:
        share_id = store.create_share(legs, request.stake, calculation.combined_odds)
    except SQLAlchemyError:
        return JSONResponse(status_code=500, content={"success": False, "error": "Failed to share parlay"})

    return {"success": True, "id": share_id, "url": f"{PUBLIC_BASE_URL}/s/{share_id}"}


@router.get("/api/parlay/share/{share_id}")
async def get_shared_parlay(share_id: str, store: ParlayStore = Depends(get_parlay_store)):
    try:
        shared = store.get_share(share_id)
    except SQLAlchemyError:
        return JSONResponse(status_code=500, content={"success": False, "error": "Failed to fetch shared parlay"})

    if shared is None:
        return JSONResponse(status_code=404, content={"success": False, "error": "Shared parlay not found"})
    return {"success": True, "parlay": SharedParlayView(**shared).model_dump(mode="json")}
