from fastapi import APIRouter
from .routes.status import router as status_router
from .routes.markets import router as markets_router
from .routes.parlay import router as parlay_router
from .routes.user_parlays import router as user_parlays_router
from .routes.resolution import router as resolution_router
from .routes.redeem import router as redeem_router

router = APIRouter()

router.include_router(status_router)
router.include_router(markets_router)
router.include_router(parlay_router)
router.include_router(user_parlays_router)
router.include_router(resolution_router)
router.include_router(redeem_router)
