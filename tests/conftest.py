"""
conftest.py - Shared pytest fixtures for token tests

Provides common fixtures used across unit, conformance and functional tests:
- A freshly deployed token (owner holds the initial supply)
- A funded token (alice and bob hold balances, bob is a minter)
- A standalone Ledger for component-level tests
"""

import pytest

from token_ledger import Ledger, Token, parse_units

from tests.accounts import (
    OWNER, ALICE, BOB, CAROL, RELAYER, MALLORY,
    make_token,
)


# =============================================================================
# TOKEN FIXTURES
# =============================================================================

@pytest.fixture
def token() -> Token:
    """Freshly deployed token: 1,000,000 MYGT held by the owner."""
    return make_token()


@pytest.fixture
def funded_token() -> Token:
    """
    Token with balances spread out and a second minter.

    owner: 998,500   alice: 1,000   bob: 500   bob is a minter
    """
    tok = make_token()
    tok.transfer(OWNER, ALICE, parse_units("1000"))
    tok.transfer(OWNER, BOB, parse_units("500"))
    tok.add_minter(OWNER, BOB)
    return tok


@pytest.fixture
def ledger() -> Ledger:
    """Empty ledger with the default supply cap."""
    return Ledger()


@pytest.fixture
def funded_ledger() -> Ledger:
    """Ledger where alice holds 1,000 base units."""
    led = Ledger()
    led.mint(ALICE, 1000)
    return led


# =============================================================================
# ADDRESS FIXTURES
# =============================================================================

@pytest.fixture
def owner() -> str:
    return OWNER


@pytest.fixture
def alice() -> str:
    return ALICE


@pytest.fixture
def bob() -> str:
    return BOB


@pytest.fixture
def carol() -> str:
    return CAROL


@pytest.fixture
def relayer() -> str:
    return RELAYER


@pytest.fixture
def mallory() -> str:
    return MALLORY
