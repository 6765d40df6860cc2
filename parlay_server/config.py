# parlay_server/config.py
import os
from dotenv import load_dotenv
import logging
load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

CHAIN_ID = 137

# Venue endpoints
CLOB_HOST = os.getenv("CLOB_HOST", "https://clob.polymarket.com")
GAMMA_URL = os.getenv("GAMMA_URL", "https://gamma-api.polymarket.com")
GAMMA_MARKETS_ENDPOINT = f"{GAMMA_URL}/markets"
POLYGON_RPC = os.getenv("POLYGON_RPC", "https://polygon-rpc.com")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "https://polyparlay.app")

# Contract addresses
USDC_ADDRESS = "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174"
CTF_ADDRESS = "0x4D97DCd97eC945f40cF65F87097ACe5EA0476045"
EXCHANGE_ADDRESS = "0x4bFb41d5B3570DeFd03C39a9A4D8dE6Bd8B8982E"
NEG_RISK_EXCHANGE_ADDRESS = "0xC5d563A36AE78145C45a50134d48A1215220f80a"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
ZERO_BYTES32 = "0x" + "0" * 64

# Every upstream call (signing, submission, resolution lookup) is bounded by this
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "15"))

# Parlay pricing
DEFAULT_STAKE = float(os.getenv("DEFAULT_STAKE", "50"))
MIN_PARLAY_LEGS = 2
EXTREME_PRICE_LOW = 0.02
EXTREME_PRICE_HIGH = 0.98
ORDER_FEE_RATE_BPS = int(os.getenv("ORDER_FEE_RATE_BPS", "0"))

# Resolution sweep
RESOLUTION_THRESHOLD = 0.99
RESOLUTION_BATCH_SIZE = int(os.getenv("RESOLUTION_BATCH_SIZE", "10"))
CRON_SECRET = os.getenv("CRON_SECRET", "")

# Reject submitted orders whose EIP-712 signature does not recover to their signer
VERIFY_ORDER_SIGNATURES = os.getenv("VERIFY_ORDER_SIGNATURES", "true").lower() == "true"

# Market lookup cache
REDIS_URL = os.getenv("REDIS_URL")
MARKET_CACHE_TTL = float(os.getenv("MARKET_CACHE_TTL", "30"))
MARKET_CACHE_MAX_ENTRIES = int(os.getenv("MARKET_CACHE_MAX_ENTRIES", "1000"))

# Optional server-held wallet for signing legs on behalf of a user
SIGNER_PRIVATE_KEY = os.getenv("SIGNER_PRIVATE_KEY")
SIGNER_FUNDER_ADDRESS = os.getenv("SIGNER_FUNDER_ADDRESS")

BUILDER_CREDENTIAL_VARS = (
    "POLYMARKET_BUILDER_API_KEY",
    "POLYMARKET_BUILDER_SECRET",
    "POLYMARKET_BUILDER_PASSPHRASE",
)


def get_builder_env() -> dict:
    """Read builder credentials at call time so rotated keys apply without a restart."""
    return {name: os.getenv(name, "") for name in BUILDER_CREDENTIAL_VARS}


# Contract ABIs
CTF_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "", "type": "bytes32"}],
        "name": "payoutDenominator",
        "outputs": [{"name": "", "type": "uint256"}],
        "payable": False,
        "stateMutability": "view",
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [{"name": "", "type": "bytes32"}, {"name": "", "type": "uint256"}],
        "name": "payoutNumerators",
        "outputs": [{"name": "", "type": "uint256"}],
        "payable": False,
        "stateMutability": "view",
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [{"name": "conditionId", "type": "bytes32"}],
        "name": "getOutcomeSlotCount",
        "outputs": [{"name": "", "type": "uint256"}],
        "payable": False,
        "stateMutability": "view",
        "type": "function"
    },
    {
        "constant": False,
        "inputs": [
            {"name": "collateralToken", "type": "address"},
            {"name": "parentCollectionId", "type": "bytes32"},
            {"name": "conditionId", "type": "bytes32"},
            {"name": "indexSets", "type": "uint256[]"}
        ],
        "name": "redeemPositions",
        "outputs": [],
        "payable": False,
        "stateMutability": "nonpayable",
        "type": "function"
    }
]
