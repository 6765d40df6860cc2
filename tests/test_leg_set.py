import pytest

from parlay_server.config import DEFAULT_STAKE
from parlay_server.models.api import Side
from parlay_server.services.leg_set import (
    AddLeg,
    ClearAll,
    LegSet,
    LegSetState,
    RemoveLeg,
    SetStake,
    reduce_leg_set,
)
from parlay_server.services.parlay_calculator import calculate_parlay


def test_initial_state():
    state = LegSetState()
    assert state.legs == ()
    assert state.stake == DEFAULT_STAKE
    assert state.calculation.combined_odds == 1.0


def test_add_leg_recalculates(make_leg):
    state = reduce_leg_set(LegSetState(stake=10), AddLeg(make_leg("a", price=0.5)))
    state = reduce_leg_set(state, AddLeg(make_leg("b", price=0.25)))

    assert [leg.id for leg in state.legs] == ["a-YES", "b-YES"]
    assert state.calculation == calculate_parlay(state.legs, 10)
    assert state.calculation.combined_odds == pytest.approx(8.0)


def test_adding_same_leg_is_a_no_op(make_leg):
    state = reduce_leg_set(LegSetState(), AddLeg(make_leg("a")))
    assert reduce_leg_set(state, AddLeg(make_leg("a"))) is state


def test_other_side_replaces_earlier_pick(make_leg):
    state = reduce_leg_set(LegSetState(), AddLeg(make_leg("a", "YES", price=0.6)))
    state = reduce_leg_set(state, AddLeg(make_leg("b")))
    state = reduce_leg_set(state, AddLeg(make_leg("a", "NO", price=0.4)))

    assert [leg.id for leg in state.legs] == ["b-YES", "a-NO"]
    assert len({leg.market_id for leg in state.legs}) == len(state.legs)


def test_remove_unknown_leg_is_a_no_op(make_leg):
    state = reduce_leg_set(LegSetState(), AddLeg(make_leg("a")))
    assert reduce_leg_set(state, RemoveLeg("missing")) is state


def test_remove_leg(make_leg):
    state = reduce_leg_set(LegSetState(stake=10), AddLeg(make_leg("a", price=0.5)))
    state = reduce_leg_set(state, AddLeg(make_leg("b", price=0.5)))
    state = reduce_leg_set(state, RemoveLeg("a-YES"))

    assert [leg.id for leg in state.legs] == ["b-YES"]
    assert state.calculation.combined_odds == pytest.approx(2.0)


def test_clear_all_keeps_stake(make_leg):
    state = reduce_leg_set(LegSetState(stake=12), AddLeg(make_leg("a")))
    state = reduce_leg_set(state, ClearAll())

    assert state.legs == ()
    assert state.stake == 12
    assert state.calculation.potential_payout == pytest.approx(12)


@pytest.mark.parametrize("stake,expected", [(20, 20.0), (0, 0.0), (-5, 0.0)])
def test_set_stake_is_clamped(stake, expected):
    state = reduce_leg_set(LegSetState(), SetStake(stake))
    assert state.stake == expected
    assert state.calculation.stake == expected


def test_unknown_action_raises():
    with pytest.raises(TypeError):
        reduce_leg_set(LegSetState(), object())


def test_states_are_not_mutated(make_leg):
    before = LegSetState()
    after = reduce_leg_set(before, AddLeg(make_leg("a")))
    assert before.legs == ()
    assert after is not before


def test_leg_set_holder(make_leg):
    leg_set = LegSet(stake=10)
    leg_set.add_leg(make_leg("a", "NO", price=0.5))
    leg_set.add_leg(make_leg("b", price=0.5))

    assert leg_set.state.is_leg_added("a-NO")
    assert leg_set.state.is_market_in_parlay("b")
    assert not leg_set.state.is_market_in_parlay("c")
    assert leg_set.state.get_market_side("a") is Side.NO
    assert leg_set.state.get_market_side("c") is None
    assert leg_set.calculation.potential_payout == pytest.approx(40.0)

    leg_set.remove_leg("a-NO")
    leg_set.set_stake(-1)
    assert [leg.id for leg in leg_set.legs] == ["b-YES"]
    assert leg_set.calculation.stake == 0.0

    leg_set.clear_all()
    assert leg_set.legs == ()
