from fastapi import APIRouter

from ...config import CHAIN_ID, CLOB_HOST
from ...models.api import BuilderCredentials

router = APIRouter()


@router.get("/api/status")
async def get_status():
    missing = BuilderCredentials.from_env().missing()
    return {
        "status": "healthy",
        "chain_id": CHAIN_ID,
        "clob_host": CLOB_HOST,
        "builder_configured": not missing,
        "missing_builder_credentials": missing,
    }
