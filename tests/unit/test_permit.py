"""
test_permit.py - Unit tests for EIP-712 hashing and permit authorization

Tests:
- Typehash constants and domain separator composition
- Signing and signer recovery
- Signature component parsing (v normalisation, bytes, hex)
- Malleability and range checks
- PermitAuthorizer nonces, deadlines and failure atomicity
"""

import pytest
from eth_abi import encode
from eth_utils import keccak

from token_ledger import (
    Ledger, PermitAuthorizer, PermitDomain, PermitSignature,
    domain_separator, permit_digest, recover_signer, sign_permit,
    EIP712_DOMAIN_TYPEHASH, PERMIT_TYPEHASH,
    InvalidSignature, PermitExpired, ZeroAddress, InvalidAddress,
    DEFAULT_TOKEN_ADDRESS,
)
from token_ledger.permit import SECP256K1_N

from tests.accounts import ALICE, ALICE_KEY, BOB, BOB_KEY, CAROL, ZERO


NOW = 1_700_000_000
DEADLINE = NOW + 3600


@pytest.fixture
def domain():
    return PermitDomain(name="GenericToken", chain_id=31337, verifying_contract=DEFAULT_TOKEN_ADDRESS)


@pytest.fixture
def authorizer(domain):
    ledger = Ledger()
    ledger.mint(ALICE, 1000)
    return PermitAuthorizer(domain, ledger)


def _sign(domain, value=100, nonce=0, deadline=DEADLINE, key=ALICE_KEY, owner=ALICE, spender=BOB):
    return sign_permit(key, domain, owner, spender, value, nonce, deadline)


class TestTypedData:

    def test_typehashes(self):
        assert EIP712_DOMAIN_TYPEHASH.hex() == (
            "8b73c3c69bb8fe3d512ecc4cf759cc79239f7b179b0ffacaa9a75d522b39400f"
        )
        assert PERMIT_TYPEHASH.hex() == (
            "6e71edae12b1b97f4d1f60370fef10105fa2faae0126114a169c64845d6126c9"
        )

    def test_domain_separator_composition(self, domain):
        expected = keccak(encode(
            ['bytes32', 'bytes32', 'bytes32', 'uint256', 'address'],
            [EIP712_DOMAIN_TYPEHASH, keccak(text="GenericToken"), keccak(text="1"),
             31337, domain.verifying_contract],
        ))
        assert domain_separator(domain) == expected

    def test_domain_separator_depends_on_chain(self, domain):
        other = PermitDomain(name=domain.name, chain_id=1, verifying_contract=DEFAULT_TOKEN_ADDRESS)
        assert domain_separator(other) != domain_separator(domain)

    def test_domain_normalises_address(self, domain):
        assert domain.verifying_contract != DEFAULT_TOKEN_ADDRESS
        assert domain.verifying_contract.lower() == DEFAULT_TOKEN_ADDRESS

    def test_domain_rejects_bad_address(self):
        with pytest.raises(InvalidAddress):
            PermitDomain(name="X", chain_id=1, verifying_contract="0x12")

    def test_digest_is_32_bytes_and_prefixed(self, domain):
        digest = permit_digest(domain, ALICE, BOB, 100, 0, DEADLINE)
        assert len(digest) == 32
        assert digest != permit_digest(domain, ALICE, BOB, 100, 1, DEADLINE)


class TestSignatures:

    def test_recover_signer(self, domain):
        sig = _sign(domain)
        digest = permit_digest(domain, ALICE, BOB, 100, 0, DEADLINE)
        assert recover_signer(digest, sig) == ALICE

    def test_signatures_are_low_s(self, domain):
        sig = _sign(domain)
        assert sig.v in (27, 28)
        assert sig.s <= SECP256K1_N // 2

    def test_v_zero_one_normalised(self):
        assert PermitSignature.from_components(0, 1, 2).v == 27
        assert PermitSignature.from_components(1, 1, 2).v == 28
        assert PermitSignature.from_components(28, 1, 2).v == 28

    def test_bytes_round_trip(self, domain):
        sig = _sign(domain)
        raw = sig.to_bytes()
        assert len(raw) == 65
        assert PermitSignature.from_bytes(raw) == sig
        assert PermitSignature.from_bytes("0x" + raw.hex()) == sig

    def test_components_accept_bytes_and_hex(self, domain):
        sig = _sign(domain)
        r_bytes = sig.r.to_bytes(32, "big")
        s_hex = "0x" + sig.s.to_bytes(32, "big").hex()
        assert PermitSignature.from_components(sig.v, r_bytes, s_hex) == sig

    @pytest.mark.parametrize("word", [b"\x01" * 31, "0xnothex", True, 1.5])
    def test_bad_components(self, word):
        with pytest.raises(InvalidSignature):
            PermitSignature.from_components(27, word, 1)

    def test_wrong_length_bytes(self):
        with pytest.raises(InvalidSignature):
            PermitSignature.from_bytes(b"\x00" * 64)

    @pytest.mark.parametrize("raw", ["0xzz", "0x" + "g" * 130, "not hex"])
    def test_non_hex_string(self, raw):
        with pytest.raises(InvalidSignature):
            PermitSignature.from_bytes(raw)

    def test_invalid_v(self, domain):
        sig = _sign(domain)
        digest = permit_digest(domain, ALICE, BOB, 100, 0, DEADLINE)
        with pytest.raises(InvalidSignature):
            recover_signer(digest, PermitSignature(v=29, r=sig.r, s=sig.s))

    def test_high_s_rejected(self, domain):
        sig = _sign(domain)
        digest = permit_digest(domain, ALICE, BOB, 100, 0, DEADLINE)
        flipped = PermitSignature(v=55 - sig.v, r=sig.r, s=SECP256K1_N - sig.s)
        with pytest.raises(InvalidSignature):
            recover_signer(digest, flipped)

    def test_zero_r_rejected(self, domain):
        digest = permit_digest(domain, ALICE, BOB, 100, 0, DEADLINE)
        with pytest.raises(InvalidSignature):
            recover_signer(digest, PermitSignature(v=27, r=0, s=1))

    def test_tampered_digest_recovers_someone_else(self, domain):
        sig = _sign(domain)
        digest = permit_digest(domain, ALICE, BOB, 101, 0, DEADLINE)
        assert recover_signer(digest, sig) != ALICE


class TestAuthorizer:

    def test_permit_sets_allowance_and_nonce(self, authorizer, domain):
        used = authorizer.permit(ALICE, BOB, 100, DEADLINE, _sign(domain), NOW)
        assert used == 0
        assert authorizer.nonces(ALICE) == 1
        assert authorizer._ledger.allowance(ALICE, BOB) == 100

    def test_replay_rejected(self, authorizer, domain):
        sig = _sign(domain)
        authorizer.permit(ALICE, BOB, 100, DEADLINE, sig, NOW)
        with pytest.raises(InvalidSignature):
            authorizer.permit(ALICE, BOB, 100, DEADLINE, sig, NOW)
        assert authorizer.nonces(ALICE) == 1

    def test_deadline_inclusive(self, authorizer, domain):
        authorizer.permit(ALICE, BOB, 100, NOW, _sign(domain, deadline=NOW), NOW)
        assert authorizer.nonces(ALICE) == 1

    def test_expired(self, authorizer, domain):
        with pytest.raises(PermitExpired):
            authorizer.permit(ALICE, BOB, 100, NOW - 1, _sign(domain, deadline=NOW - 1), NOW)
        assert authorizer.nonces(ALICE) == 0

    def test_wrong_signer(self, authorizer, domain):
        sig = _sign(domain, key=BOB_KEY)
        with pytest.raises(InvalidSignature):
            authorizer.permit(ALICE, BOB, 100, DEADLINE, sig, NOW)

    def test_value_mismatch(self, authorizer, domain):
        with pytest.raises(InvalidSignature):
            authorizer.permit(ALICE, BOB, 200, DEADLINE, _sign(domain, value=100), NOW)

    def test_signature_for_other_spender(self, authorizer, domain):
        with pytest.raises(InvalidSignature):
            authorizer.permit(ALICE, CAROL, 100, DEADLINE, _sign(domain), NOW)

    def test_zero_spender_consumes_no_nonce(self, authorizer, domain):
        sig = _sign(domain, spender=ZERO)
        with pytest.raises(ZeroAddress):
            authorizer.permit(ALICE, ZERO, 100, DEADLINE, sig, NOW)
        assert authorizer.nonces(ALICE) == 0

    def test_signature_bound_to_domain(self, authorizer):
        other = PermitDomain(name="GenericToken", chain_id=1, verifying_contract=DEFAULT_TOKEN_ADDRESS)
        with pytest.raises(InvalidSignature):
            authorizer.permit(ALICE, BOB, 100, DEADLINE, _sign(other), NOW)

    def test_nonces_are_per_owner(self, authorizer, domain):
        authorizer.permit(ALICE, BOB, 1, DEADLINE, _sign(domain, value=1), NOW)
        assert authorizer.nonces(BOB) == 0
        assert authorizer.snapshot() == {'nonces': {ALICE: 1}}
