# parlay_server/api/deps.py
from functools import lru_cache
from typing import Optional

from fastapi import Depends

from ..config import VERIFY_ORDER_SIGNATURES
from ..services.cache import build_cache
from ..services.clob_service import CLOBService
from ..services.market_resolution import ResolutionService
from ..services.market_service import MarketService
from ..services.parlay_executor import ParlayExecutor
from ..services.parlay_store import ParlayStore
from ..services.signature_service import SignatureService
from ..services.web3_service import Web3Service


@lru_cache
def get_parlay_store() -> ParlayStore:
    return ParlayStore()


@lru_cache
def get_market_service() -> MarketService:
    return MarketService(cache=build_cache())


@lru_cache
def get_clob_service() -> CLOBService:
    return CLOBService()


@lru_cache
def get_signature_service() -> Optional[SignatureService]:
    return SignatureService() if VERIFY_ORDER_SIGNATURES else None


@lru_cache
def get_web3_service() -> Web3Service:
    return Web3Service()


def get_parlay_executor(
    clob_service: CLOBService = Depends(get_clob_service),
    signature_service: Optional[SignatureService] = Depends(get_signature_service),
) -> ParlayExecutor:
    return ParlayExecutor(clob_service, signature_service)


def get_resolution_service(
    store: ParlayStore = Depends(get_parlay_store),
    market_service: MarketService = Depends(get_market_service),
) -> ResolutionService:
    return ResolutionService(store, market_service)
