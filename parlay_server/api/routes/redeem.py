from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from web3 import Web3

from ...config import logger
from ...models.api import RedeemRequest
from ...services.web3_service import Web3Service
from ..deps import get_web3_service

router = APIRouter()


@router.post("/api/redeem")
async def build_redeem(request: RedeemRequest, web3_service: Web3Service = Depends(get_web3_service)):
    """Unsigned redeemPositions transaction for a resolved condition; the user's wallet signs it."""
    if not Web3.is_address(request.user_address):
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid user address", "type": "validation_error"}
        )

    try:
        tx = web3_service.build_redeem_transaction(request.user_address, request.condition_id)
    except ValueError as e:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": str(e), "type": "validation_error"}
        )
    except Exception as e:
        logger.error(f"Failed to build redeem transaction for {request.user_address}: {str(e)}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(e)}
        )

    return {
        "success": True,
        "transaction": dict(tx)
    }
