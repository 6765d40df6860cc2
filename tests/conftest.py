import os

# The engine in parlay_server.database is created at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.pop("REDIS_URL", None)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from parlay_server.models.api import (
    BuilderCredentials,
    Leg,
    SignedLegOrder,
    SignedOrder,
    UserCredentials,
)
from parlay_server.models.db import Base
from parlay_server.services.parlay_store import ParlayStore

USER_ADDRESS = "0x" + "a" * 40
USER_SECRET = "dXNlci1zZWNyZXQtMDEyMzQ1Njc4OQ=="
BUILDER_SECRET = "YnVpbGRlci1zZWNyZXQtMDEyMzQ1Ng=="


@pytest.fixture
def store(tmp_path) -> ParlayStore:
    engine = create_engine(f"sqlite:///{tmp_path / 'parlays.db'}")
    Base.metadata.create_all(engine)
    yield ParlayStore(sessionmaker(autoflush=False, bind=engine))
    engine.dispose()


@pytest.fixture
def make_leg():
    def _make(
        market_id: str = "m1",
        side: str = "YES",
        price: float = 0.5,
        question: str = "Will it snow in Paris?",
        category=None,
        liquidity=None,
    ) -> Leg:
        return Leg(
            id=Leg.make_id(market_id, side),
            market_id=market_id,
            token_id=f"tok-{market_id}-{side}",
            question=question,
            side=side,
            price=price,
            category=category,
            liquidity=liquidity,
        )
    return _make


@pytest.fixture
def user_credentials() -> UserCredentials:
    return UserCredentials(
        api_key="user-key",
        secret=USER_SECRET,
        passphrase="user-pass",
        address=USER_ADDRESS,
    )


@pytest.fixture
def builder_credentials() -> BuilderCredentials:
    return BuilderCredentials(api_key="builder-key", secret=BUILDER_SECRET, passphrase="builder-pass")


@pytest.fixture
def make_signed_leg_order():
    def _make(leg_id: str = "m1-YES", token_id: str = "1001", price: float = 0.5, size_usd: float = 5.0) -> SignedLegOrder:
        return SignedLegOrder(
            leg_id=leg_id,
            signed_order=SignedOrder(
                salt=12345,
                maker=USER_ADDRESS,
                signer=USER_ADDRESS,
                token_id=token_id,
                maker_amount="5000000",
                taker_amount="10000000",
                side="BUY",
                signature="0xdeadbeef",
            ),
            token_id=token_id,
            price_per_share=price,
            size_usd=size_usd,
        )
    return _make
