"""
Conservation Conformance Tests

INVARIANT: Supply is conserved.

    ∀ reachable state S:
        S.total_supply == Σ S.balances[a]
        S.total_supply <= S.max_supply

    transfer, transfer_from, emergency_transfer : Δtotal_supply = 0
    mint(x)                                     : Δtotal_supply = +x
    burn(x)                                     : Δtotal_supply = -x
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from token_ledger import (
    EventType, SupplyCapExceeded, ZERO_ADDRESS, DAILY_MINT_LIMIT, parse_units,
)

from tests.accounts import OWNER, ALICE, BOB, CAROL, DAY, make_token
from tests.conformance.strategies import operations, apply_operation, amounts


def _supply_from_events(token):
    """Rebuild total supply from the Transfer audit trail."""
    supply = 0
    for event in token.events(EventType.TRANSFER):
        if event.args['from'] == ZERO_ADDRESS:
            supply += event.args['value']
        if event.args['to'] == ZERO_ADDRESS:
            supply -= event.args['value']
    return supply


class TestConservationProperties:
    """Property-based conservation tests."""

    @given(st.lists(operations(), min_size=1, max_size=40))
    @settings(max_examples=75, deadline=None)
    def test_supply_invariants_hold_after_every_operation(self, ops):
        """
        PROPERTY: total_supply == sum(balances) <= max_supply after every call.
        """
        token = make_token()
        for op in ops:
            apply_operation(token, op)
            result = token.verify_supply()
            assert result['valid'], f"After {op}: {result}"

    @given(st.lists(operations(), min_size=1, max_size=40))
    @settings(max_examples=50, deadline=None)
    def test_audit_trail_accounts_for_supply(self, ops):
        """
        PROPERTY: Mints and burns recorded in the trail sum to total_supply.
        """
        token = make_token()
        for op in ops:
            apply_operation(token, op)
        assert _supply_from_events(token) == token.total_supply

    @given(st.sampled_from([OWNER, ALICE, BOB, CAROL]), amounts)
    @settings(max_examples=100, deadline=None)
    def test_transfer_preserves_supply(self, recipient, amount):
        """
        PROPERTY: A transfer never changes total supply, accepted or not.
        """
        token = make_token()
        before = token.total_supply
        apply_operation(token, ('transfer', (OWNER, recipient, amount)))
        assert token.total_supply == before

    @given(st.integers(min_value=0, max_value=10**24))
    @settings(max_examples=100, deadline=None)
    def test_mint_then_burn_restores_supply(self, amount):
        """
        PROPERTY: mint(x) followed by burn(x) returns supply to its start.
        """
        token = make_token()
        start = token.total_supply
        token.mint(OWNER, ALICE, amount)
        assert token.total_supply == start + amount
        token.burn(ALICE, amount)
        assert token.total_supply == start


class TestConservationExamples:
    """Explicit conservation examples."""

    def test_supply_never_exceeds_cap_over_many_days(self):
        token = make_token()
        for _ in range(17):
            token.mint(OWNER, ALICE, DAILY_MINT_LIMIT)
            token.advance_time(token.current_time + DAY)
        assert token.total_supply == token.max_supply == parse_units("18000000")
        with pytest.raises(SupplyCapExceeded):
            token.mint(OWNER, ALICE, 1)
        assert token.remaining_daily_limit == DAILY_MINT_LIMIT

    def test_self_transfer_conserves(self):
        token = make_token()
        token.transfer(OWNER, OWNER, token.balance_of(OWNER))
        assert token.verify_supply()['valid']
        assert token.balance_of(OWNER) == token.total_supply
