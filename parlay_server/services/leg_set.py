# parlay_server/services/leg_set.py
"""
Leg selection for a single user session.

State is immutable; every transition goes through `reduce_leg_set`, which
returns either the same state object (no-op) or a new state whose
`calculation` already reflects the new legs and stake.
"""
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple, Union

from ..config import DEFAULT_STAKE
from ..models.api import Leg, ParlayCalculation, Side
from .parlay_calculator import calculate_parlay


@dataclass(frozen=True)
class AddLeg:
    leg: Leg


@dataclass(frozen=True)
class RemoveLeg:
    leg_id: str


@dataclass(frozen=True)
class ClearAll:
    pass


@dataclass(frozen=True)
class SetStake:
    stake: float


LegSetAction = Union[AddLeg, RemoveLeg, ClearAll, SetStake]


@dataclass(frozen=True)
class LegSetState:
    legs: Tuple[Leg, ...] = ()
    stake: float = DEFAULT_STAKE
    calculation: ParlayCalculation = field(default=None, compare=False)

    def __post_init__(self):
        if self.calculation is None:
            object.__setattr__(self, "calculation", calculate_parlay(self.legs, self.stake))

    def is_leg_added(self, leg_id: str) -> bool:
        return any(leg.id == leg_id for leg in self.legs)

    def is_market_in_parlay(self, market_id: str) -> bool:
        return any(leg.market_id == market_id for leg in self.legs)

    def get_market_side(self, market_id: str) -> Optional[Side]:
        return next((leg.side for leg in self.legs if leg.market_id == market_id), None)


def _with(state: LegSetState, legs: Tuple[Leg, ...], stake: float) -> LegSetState:
    return replace(state, legs=legs, stake=stake, calculation=calculate_parlay(legs, stake))


def reduce_leg_set(state: LegSetState, action: LegSetAction) -> LegSetState:
    if isinstance(action, AddLeg):
        if state.is_leg_added(action.leg.id):
            return state
        # picking the other side of a market replaces the earlier pick
        legs = tuple(leg for leg in state.legs if leg.market_id != action.leg.market_id)
        return _with(state, legs + (action.leg,), state.stake)

    if isinstance(action, RemoveLeg):
        if not state.is_leg_added(action.leg_id):
            return state
        return _with(state, tuple(leg for leg in state.legs if leg.id != action.leg_id), state.stake)

    if isinstance(action, ClearAll):
        return _with(state, (), state.stake)

    if isinstance(action, SetStake):
        return _with(state, state.legs, max(0.0, float(action.stake)))

    raise TypeError(f"Unknown leg set action: {action!r}")


class LegSet:
    """Single-writer holder around the reducer, one per user session."""

    def __init__(self, stake: float = DEFAULT_STAKE):
        self.state = LegSetState(stake=max(0.0, float(stake)))

    def dispatch(self, action: LegSetAction) -> LegSetState:
        self.state = reduce_leg_set(self.state, action)
        return self.state

    def add_leg(self, leg: Leg) -> LegSetState:
        return self.dispatch(AddLeg(leg))

    def remove_leg(self, leg_id: str) -> LegSetState:
        return self.dispatch(RemoveLeg(leg_id))

    def clear_all(self) -> LegSetState:
        return self.dispatch(ClearAll())

    def set_stake(self, stake: float) -> LegSetState:
        return self.dispatch(SetStake(stake))

    @property
    def legs(self) -> Tuple[Leg, ...]:
        return self.state.legs

    @property
    def calculation(self) -> ParlayCalculation:
        return self.state.calculation
