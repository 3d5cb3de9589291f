"""
Replay Conformance Tests

INVARIANT: Each permit signature is usable at most once.

    ∀ owner O:
        nonces(O) starts at 0
        accepted permit by O ⟹ nonces(O) += 1
        rejected permit      ⟹ nonces(O) unchanged
        signature for nonce n is valid only while nonces(O) == n

Signatures are bound to the token's domain (name, version, chain id,
address): a signature for one token is never valid on another.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from token_ledger import InvalidSignature, MAX_UINT256

from tests.accounts import OWNER, ALICE, BOB, RELAYER, START_TIME, make_token, sign, submit


DEADLINE = START_TIME + 3600


class TestReplayProperties:
    """Property-based replay tests."""

    @given(st.lists(st.integers(min_value=0, max_value=MAX_UINT256), min_size=1, max_size=5))
    @settings(max_examples=25, deadline=None)
    def test_sequential_permits_advance_nonce(self, values):
        """
        PROPERTY: N accepted permits leave nonces(owner) == N and the last
        value as the allowance.
        """
        token = make_token()
        for value in values:
            submit(token, RELAYER, OWNER, ALICE, value, DEADLINE,
                   sign(token, OWNER, ALICE, value, DEADLINE))
        assert token.nonces(OWNER) == len(values)
        assert token.allowance(OWNER, ALICE) == values[-1]

    @given(st.integers(min_value=0, max_value=10**24))
    @settings(max_examples=25, deadline=None)
    def test_replay_always_rejected(self, value):
        """
        PROPERTY: Submitting the same signature twice fails the second time.
        """
        token = make_token()
        sig = sign(token, OWNER, ALICE, value, DEADLINE)
        submit(token, RELAYER, OWNER, ALICE, value, DEADLINE, sig)
        snapshot = token.state_snapshot()
        with pytest.raises(InvalidSignature):
            submit(token, RELAYER, OWNER, ALICE, value, DEADLINE, sig)
        assert token.state_snapshot() == snapshot


class TestReplayExamples:
    """Explicit replay examples."""

    def test_future_nonce_rejected(self):
        token = make_token()
        sig = sign(token, OWNER, ALICE, 1, DEADLINE, nonce=1)
        with pytest.raises(InvalidSignature):
            submit(token, RELAYER, OWNER, ALICE, 1, DEADLINE, sig)

    def test_out_of_order_signatures(self):
        token = make_token()
        first = sign(token, OWNER, ALICE, 1, DEADLINE, nonce=0)
        second = sign(token, OWNER, ALICE, 2, DEADLINE, nonce=1)
        with pytest.raises(InvalidSignature):
            submit(token, RELAYER, OWNER, ALICE, 2, DEADLINE, second)
        submit(token, RELAYER, OWNER, ALICE, 1, DEADLINE, first)
        submit(token, RELAYER, OWNER, ALICE, 2, DEADLINE, second)
        assert token.nonces(OWNER) == 2

    def test_cross_token_replay_rejected(self):
        token_a = make_token()
        token_b = make_token(address=BOB)
        sig = sign(token_a, OWNER, ALICE, 5, DEADLINE)
        with pytest.raises(InvalidSignature):
            submit(token_b, RELAYER, OWNER, ALICE, 5, DEADLINE, sig)

    def test_cross_chain_replay_rejected(self):
        token_a = make_token()
        token_b = make_token(chain_id=1)
        sig = sign(token_a, OWNER, ALICE, 5, DEADLINE)
        with pytest.raises(InvalidSignature):
            submit(token_b, RELAYER, OWNER, ALICE, 5, DEADLINE, sig)

    def test_direct_approve_does_not_consume_nonce(self):
        token = make_token()
        sig = sign(token, OWNER, ALICE, 5, DEADLINE)
        token.approve(OWNER, ALICE, 9)
        submit(token, RELAYER, OWNER, ALICE, 5, DEADLINE, sig)
        assert token.allowance(OWNER, ALICE) == 5
