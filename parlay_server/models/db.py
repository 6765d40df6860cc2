from sqlalchemy import Column, String, Numeric, Float, DateTime, Index, JSON, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()

JSONType = JSON().with_variant(JSONB(), 'postgresql')


class Parlay(Base):
    __tablename__ = 'parlays'

    id = Column(String(64), primary_key=True)
    user_address = Column(String(42), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    stake = Column(Numeric(78, 18), nullable=False)
    combined_odds = Column(Float, nullable=False)
    potential_payout = Column(Numeric(78, 18), nullable=False)
    status = Column(String(20), nullable=False, default='open')
    payout = Column(Numeric(78, 18), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    # Ordered as submitted; each entry carries its own status and outcome
    legs = Column(JSONType, nullable=False)

    __table_args__ = (
        Index('ix_parlays_status', 'status'),
        Index('ix_parlays_user_address', 'user_address'),
        Index('ix_parlays_user_created', 'user_address', 'created_at'),
    )


class SharedParlay(Base):
    __tablename__ = 'shared_parlays'

    id = Column(String(16), primary_key=True)
    legs = Column(JSONType, nullable=False)
    stake = Column(Numeric(78, 18), nullable=False)
    odds = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
