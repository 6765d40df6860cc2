from datetime import datetime, timezone
import secrets
import uuid
from typing import Optional, Dict, Any, List, Iterable

from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..config import logger
from ..database import SessionLocal
from ..models.api import ParlayStats, ParlayStatus, StoredLeg
from ..models.db import Parlay, SharedParlay

OPEN_STATUSES = (ParlayStatus.OPEN.value, ParlayStatus.ACTIVE.value)
PATCHABLE_FIELDS = ("status", "payout", "resolved_at", "legs")

SHARE_ID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghjkmnpqrstuvwxyz23456789"
SHARE_ID_LENGTH = 8


def generate_share_id(length: int = SHARE_ID_LENGTH) -> str:
    return "".join(secrets.choice(SHARE_ID_ALPHABET) for _ in range(length))


def compute_stats(records: List[Dict[str, Any]]) -> ParlayStats:
    """History totals; win_rate is won over all parlays, as a percentage."""
    total = len(records)
    won = sum(1 for r in records if r["status"] == ParlayStatus.WON.value)
    return ParlayStats(
        total=total,
        active=sum(1 for r in records if r["status"] in OPEN_STATUSES),
        won=won,
        lost=sum(1 for r in records if r["status"] == ParlayStatus.LOST.value),
        total_staked=sum(r["stake"] or 0.0 for r in records),
        total_won=sum(r["payout"] or 0.0 for r in records),
        win_rate=(won / total) * 100 if total else 0.0,
    )


def _as_float(value) -> Optional[float]:
    return float(value) if value is not None else None


def _leg_dicts(legs: Iterable[Any]) -> List[Dict[str, Any]]:
    return [
        leg.model_dump(mode="json") if isinstance(leg, BaseModel) else StoredLeg(**leg).model_dump(mode="json")
        for leg in legs
    ]


class ParlayStore:
    """
    Persistence for executed and shared parlays.

    Each record has a single writer at a time (the submit route creates it,
    the resolution sweep patches it); no row locking is done here.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.SessionLocal = session_factory

    def get_db(self) -> Session:
        return self.SessionLocal()

    @staticmethod
    def _to_dict(parlay: Parlay) -> Dict[str, Any]:
        return {
            'id': str(parlay.id),
            'user_address': str(parlay.user_address),
            'created_at': parlay.created_at,
            'stake': _as_float(parlay.stake),
            'combined_odds': float(parlay.combined_odds),
            'potential_payout': _as_float(parlay.potential_payout),
            'status': str(parlay.status),
            'payout': _as_float(parlay.payout),
            'resolved_at': parlay.resolved_at,
            'legs': list(parlay.legs or []),
        }

    def create(self, record: Dict[str, Any]) -> str:
        """
        Persist a new parlay and return its id.

        Args:
            record: user_address, stake, combined_odds, potential_payout and
                legs (StoredLeg models or dicts); status and created_at are optional
        """
        db = self.get_db()
        try:
            parlay_id = uuid.uuid4().hex
            parlay = Parlay(
                id=parlay_id,
                user_address=record['user_address'],
                created_at=record.get('created_at') or datetime.now(timezone.utc),
                stake=record['stake'],
                combined_odds=record['combined_odds'],
                potential_payout=record['potential_payout'],
                status=record.get('status', ParlayStatus.OPEN.value),
                legs=_leg_dicts(record['legs']),
            )
            db.add(parlay)
            db.commit()
            logger.info(f"Stored parlay {parlay_id} for {record['user_address']} with {len(parlay.legs)} legs")
            return parlay_id
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to store parlay: {str(e)}")
            raise
        finally:
            db.close()

    def get(self, parlay_id: str) -> Optional[Dict[str, Any]]:
        db = self.get_db()
        try:
            parlay = db.get(Parlay, parlay_id)
            return self._to_dict(parlay) if parlay else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to load parlay {parlay_id}: {str(e)}")
            raise
        finally:
            db.close()

    def list_by_user(self, user_address: str) -> List[Dict[str, Any]]:
        """All parlays for an address, matched case-insensitively, newest first."""
        db = self.get_db()
        try:
            parlays = db.query(Parlay).filter(
                func.lower(Parlay.user_address) == user_address.lower()
            ).order_by(Parlay.created_at.desc()).all()
            return [self._to_dict(p) for p in parlays]
        except SQLAlchemyError as e:
            logger.error(f"Failed to list parlays for {user_address}: {str(e)}")
            raise
        finally:
            db.close()

    def list_open(self) -> List[Dict[str, Any]]:
        db = self.get_db()
        try:
            parlays = db.query(Parlay).filter(
                Parlay.status.in_(OPEN_STATUSES)
            ).order_by(Parlay.created_at).all()
            return [self._to_dict(p) for p in parlays]
        except SQLAlchemyError as e:
            logger.error(f"Failed to list open parlays: {str(e)}")
            raise
        finally:
            db.close()

    def update(self, parlay_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply a partial update; returns the updated record, or None if it does not exist."""
        unknown = set(patch) - set(PATCHABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update parlay fields: {', '.join(sorted(unknown))}")

        db = self.get_db()
        try:
            parlay = db.get(Parlay, parlay_id)
            if not parlay:
                return None

            for key, value in patch.items():
                if key == 'status' and isinstance(value, ParlayStatus):
                    value = value.value
                if key == 'legs':
                    value = _leg_dicts(value)
                setattr(parlay, key, value)

            db.commit()
            db.refresh(parlay)
            return self._to_dict(parlay)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update parlay {parlay_id}: {str(e)}")
            raise
        finally:
            db.close()

    def create_share(self, legs: List[Dict[str, Any]], stake: float, odds: float) -> str:
        db = self.get_db()
        try:
            share_id = generate_share_id()
            while db.get(SharedParlay, share_id) is not None:
                share_id = generate_share_id()

            db.add(SharedParlay(
                id=share_id,
                legs=legs,
                stake=stake,
                odds=odds,
                created_at=datetime.now(timezone.utc),
            ))
            db.commit()
            return share_id
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to store shared parlay: {str(e)}")
            raise
        finally:
            db.close()

    def get_share(self, share_id: str) -> Optional[Dict[str, Any]]:
        db = self.get_db()
        try:
            shared = db.get(SharedParlay, share_id)
            if not shared:
                return None
            return {
                'id': shared.id,
                'legs': list(shared.legs or []),
                'stake': float(shared.stake),
                'odds': float(shared.odds),
                'created_at': shared.created_at,
            }
        except SQLAlchemyError as e:
            logger.error(f"Failed to load shared parlay {share_id}: {str(e)}")
            raise
        finally:
            db.close()
