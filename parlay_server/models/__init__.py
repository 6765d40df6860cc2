from .api import (
    Side,
    Leg,
    MarketSnapshot,
    MarketResolution,
    ParlayCalculation,
    ParlayWarning,
    SignedOrder,
    SignedLegOrder,
    UserCredentials,
    BuilderCredentials,
    ErrorCategory,
    OrderResult,
    ParlayExecutionResult,
    LegStatus,
    ParlayStatus,
    ParlayRecord,
)
from .db import Parlay, SharedParlay, Base

__all__ = [
    # API Models
    'Side',
    'Leg',
    'MarketSnapshot',
    'MarketResolution',
    'ParlayCalculation',
    'ParlayWarning',
    'SignedOrder',
    'SignedLegOrder',
    'UserCredentials',
    'BuilderCredentials',
    'ErrorCategory',
    'OrderResult',
    'ParlayExecutionResult',
    'LegStatus',
    'ParlayStatus',
    'ParlayRecord',

    # Database Models
    'Parlay',
    'SharedParlay',
    'Base',
]
