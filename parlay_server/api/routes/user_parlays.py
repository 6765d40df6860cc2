from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from ...models.api import ParlayRecord, UserParlaysResponse
from ...services.parlay_store import ParlayStore, compute_stats
from ..deps import get_parlay_store

router = APIRouter()


@router.get("/api/user/parlays")
async def get_user_parlays(
    address: str = Query(""),
    store: ParlayStore = Depends(get_parlay_store),
):
    if not address:
        return JSONResponse(status_code=400, content={"success": False, "error": "address required"})

    try:
        records = store.list_by_user(address)
    except SQLAlchemyError:
        return JSONResponse(status_code=500, content={"success": False, "error": "Failed to fetch parlays"})

    response = UserParlaysResponse(
        parlays=[ParlayRecord(**record) for record in records],
        stats=compute_stats(records),
    )
    return response.model_dump(mode="json")
