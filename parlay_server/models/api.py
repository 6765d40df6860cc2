# parlay_server/models/api.py
from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, confloat, field_validator

from ..config import BUILDER_CREDENTIAL_VARS, DEFAULT_STAKE, ZERO_ADDRESS, get_builder_env


class Side(str, Enum):
    YES = "YES"
    NO = "NO"


def coerce_side(value: Union["Side", str]) -> "Side":
    if isinstance(value, Side):
        return value
    return Side(str(value).strip().upper())


class MarketSnapshot(BaseModel):
    market_id: str
    question: str
    yes_price: float
    no_price: float
    token_ids: List[str] = Field(default_factory=list)
    condition_id: Optional[str] = None
    end_date: Optional[str] = None
    liquidity: Optional[float] = None
    category: Optional[str] = None
    active: bool = True
    closed: bool = False


class MarketResolution(BaseModel):
    market_id: str
    closed: bool
    active: bool = True
    outcome_prices: List[float] = Field(default_factory=list)


class Leg(BaseModel):
    """One side of one market, priced at the moment the user picked it."""

    model_config = ConfigDict(frozen=True)

    id: str
    market_id: str
    token_id: str
    question: str
    side: Side
    price: confloat(ge=0, le=1) = Field(description="Implied probability snapshot, 0-1")
    category: Optional[str] = None
    end_date: Optional[str] = None
    liquidity: Optional[float] = None

    @staticmethod
    def make_id(market_id: str, side: Union[Side, str]) -> str:
        return f"{market_id}-{coerce_side(side).value}"

    @classmethod
    def from_market(cls, market: MarketSnapshot, side: Union[Side, str]) -> "Leg":
        side = coerce_side(side)
        index = 0 if side is Side.YES else 1
        if len(market.token_ids) <= index:
            raise ValueError(f"Market {market.market_id} has no token for side {side.value}")

        return cls(
            id=cls.make_id(market.market_id, side),
            market_id=market.market_id,
            token_id=market.token_ids[index],
            question=market.question,
            side=side,
            price=market.yes_price if side is Side.YES else market.no_price,
            category=market.category,
            end_date=market.end_date,
            liquidity=market.liquidity,
        )


class ParlayWarning(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: Literal["too_few_legs", "extreme_price", "infeasible"]
    message: str
    leg_id: Optional[str] = None


class LegDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    leg_id: str
    stake: float
    shares: float
    potential_return: float


class ParlayCalculation(BaseModel):
    model_config = ConfigDict(frozen=True)

    legs: List[Leg]
    stake: float
    combined_probability: float
    combined_odds: float
    potential_payout: float
    roi: float
    stake_per_leg: float
    leg_details: List[LegDetail] = Field(default_factory=list)
    warnings: List[ParlayWarning] = Field(default_factory=list)


class CorrelationWarning(BaseModel):
    message: str
    level: Literal["HIGH", "MEDIUM"]
    leg_ids: List[str]


class LegSlippage(BaseModel):
    leg_id: str
    slippage: float
    stake: float


class SlippageEstimate(BaseModel):
    total_slippage: float
    leg_slippage: List[LegSlippage] = Field(default_factory=list)
    warning: Optional[str] = None


class LiquidityCheck(BaseModel):
    adequate: bool
    warning: Optional[str] = None
    estimated_slippage: Optional[float] = None


# Venue wire names for SignedOrder fields
ORDER_WIRE_FIELDS: Dict[str, str] = {
    "salt": "salt",
    "maker": "maker",
    "signer": "signer",
    "taker": "taker",
    "token_id": "tokenId",
    "maker_amount": "makerAmount",
    "taker_amount": "takerAmount",
    "expiration": "expiration",
    "nonce": "nonce",
    "fee_rate_bps": "feeRateBps",
    "side": "side",
    "signature_type": "signatureType",
    "signature": "signature",
}


class SignedOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    salt: int
    maker: str
    signer: str
    taker: str = ZERO_ADDRESS
    token_id: str
    maker_amount: str
    taker_amount: str
    expiration: str = "0"
    nonce: str = "0"
    fee_rate_bps: str = "0"
    side: int = Field(0, description="0 = BUY, 1 = SELL")
    signature_type: int = 0
    signature: str

    @field_validator("side", mode="before")
    @classmethod
    def _normalize_side(cls, value):
        if isinstance(value, str) and value.upper() in ("BUY", "SELL"):
            return 0 if value.upper() == "BUY" else 1
        return value

    @field_validator("token_id", "maker_amount", "taker_amount", "expiration", "nonce", "fee_rate_bps", mode="before")
    @classmethod
    def _as_string(cls, value):
        return str(value)

    @field_validator("signature")
    @classmethod
    def _prefixed_signature(cls, value: str) -> str:
        return value if value.startswith("0x") else f"0x{value}"

    @property
    def side_label(self) -> str:
        return "BUY" if self.side == 0 else "SELL"

    @classmethod
    def from_clob(cls, data: Dict) -> "SignedOrder":
        """Build from the camelCase dict produced by py-clob-client / the browser signer."""
        return cls(**{
            field: data[wire]
            for field, wire in ORDER_WIRE_FIELDS.items()
            if wire in data
        })


class SignedLegOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    leg_id: str
    signed_order: SignedOrder
    token_id: str
    side: Literal["BUY", "SELL"] = "BUY"
    price_per_share: float
    size_usd: float
    neg_risk: bool = False


class UserCredentials(BaseModel):
    api_key: str = ""
    secret: str = ""
    passphrase: str = ""
    address: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.api_key and self.secret and self.passphrase)


class BuilderCredentials(BaseModel):
    api_key: str = ""
    secret: str = ""
    passphrase: str = ""

    @classmethod
    def from_env(cls) -> "BuilderCredentials":
        env = get_builder_env()
        api_key, secret, passphrase = (env[name] for name in BUILDER_CREDENTIAL_VARS)
        return cls(api_key=api_key, secret=secret, passphrase=passphrase)

    def missing(self) -> List[str]:
        values = (self.api_key, self.secret, self.passphrase)
        return [name for name, value in zip(BUILDER_CREDENTIAL_VARS, values) if not value]


class ErrorCategory(str, Enum):
    APPROVAL_REQUIRED = "approval_required"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INVALID_SIGNATURE = "invalid_signature"
    SESSION_EXPIRED = "session_expired"
    PRICE_MOVED = "price_moved"
    NETWORK_ERROR = "network_error"
    SIGNING_FAILED = "signing_failed"
    UNCLASSIFIED = "unclassified"


class OrderResult(BaseModel):
    leg_id: str
    success: bool
    order_id: Optional[str] = None
    error: Optional[str] = None
    error_category: Optional[ErrorCategory] = None


class ParlayExecutionResult(BaseModel):
    success: bool
    orders: List[OrderResult] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    precondition: Optional[Literal["builder_credentials", "user_credentials"]] = None


class LegStatus(str, Enum):
    PENDING = "pending"
    WON = "won"
    LOST = "lost"


class ParlayStatus(str, Enum):
    OPEN = "open"
    ACTIVE = "active"
    WON = "won"
    LOST = "lost"
    PARTIAL = "partial"


class StoredLeg(BaseModel):
    market_id: str
    token_id: str
    question: str
    side: Side
    price: float
    order_id: Optional[str] = None
    status: LegStatus = LegStatus.PENDING
    outcome: str = "?"


class ParlayRecord(BaseModel):
    id: str
    user_address: str
    created_at: datetime
    stake: float
    combined_odds: float
    potential_payout: float
    status: ParlayStatus
    payout: Optional[float] = None
    resolved_at: Optional[datetime] = None
    legs: List[StoredLeg]


class ParlayStats(BaseModel):
    total: int = 0
    active: int = 0
    won: int = 0
    lost: int = 0
    total_staked: float = 0.0
    total_won: float = 0.0
    win_rate: float = 0.0


class UserParlaysResponse(BaseModel):
    success: bool = True
    parlays: List[ParlayRecord]
    stats: ParlayStats


class ParlayQuoteRequest(BaseModel):
    legs: List[Leg] = Field(default_factory=list)
    stake: float = DEFAULT_STAKE


class ParlayQuote(BaseModel):
    calculation: ParlayCalculation
    odds_display: str
    correlation_warnings: List[CorrelationWarning] = Field(default_factory=list)
    slippage: SlippageEstimate
    liquidity: Dict[str, LiquidityCheck] = Field(default_factory=dict)


class ParlaySubmitRequest(BaseModel):
    signed_orders: List[SignedLegOrder] = Field(default_factory=list)
    user_address: str = ""
    user_credentials: UserCredentials = Field(default_factory=UserCredentials)
    legs: List[Leg] = Field(default_factory=list)
    total_stake: float = Field(0.0, ge=0)


class ShareRequest(BaseModel):
    legs: List[Leg] = Field(default_factory=list)
    stake: float = Field(0.0, ge=0)


class SharedParlayLeg(BaseModel):
    q: str
    side: Side
    price: float
    market_id: str


class SharedParlayView(BaseModel):
    id: str
    legs: List[SharedParlayLeg]
    stake: float
    odds: float
    created_at: datetime


class RedeemRequest(BaseModel):
    user_address: str
    condition_id: str
