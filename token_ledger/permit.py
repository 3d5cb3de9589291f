"""
permit.py - EIP-2612 Permit Authorization

Signature-based approvals: an owner signs a typed-data message off-ledger and
anyone may submit it. On success the allowance is written exactly as a direct
approve() would write it and the owner's nonce advances by one, so each
signature is usable once.

Hashing follows EIP-712:

    DOMAIN_SEPARATOR = keccak256(abi.encode(
        EIP712_DOMAIN_TYPEHASH, keccak256(name), keccak256(version),
        chainId, verifyingContract))

    structHash = keccak256(abi.encode(
        PERMIT_TYPEHASH, owner, spender, value, nonce, deadline))

    digest = keccak256(0x19 0x01 || DOMAIN_SEPARATOR || structHash)

The signer is recovered from (v, r, s) with secp256k1 public-key recovery.
Signatures with s in the upper half of the curve order are rejected so a
signature has a single valid encoding.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Union

from eth_abi import encode
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import decode_hex, keccak

from .core import (
    PERMIT_VERSION,
    InvalidSignature, PermitExpired,
    normalize_address, require_amount,
)
from .ledger import Ledger


EIP712_DOMAIN_TYPEHASH = keccak(
    text="EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)

PERMIT_TYPEHASH = keccak(
    text="Permit(address owner,address spender,uint256 value,uint256 nonce,uint256 deadline)"
)

# Order of the secp256k1 group.
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


# ============================================================================
# TYPED DATA
# ============================================================================

@dataclass(frozen=True, slots=True)
class PermitDomain:
    """
    EIP-712 domain binding signatures to one token on one chain.

    Attributes:
        name: Token name (hashed into the domain)
        chain_id: Chain the token lives on
        verifying_contract: Address identifying the token instance
        version: Domain version, "1" for this token
    """
    name: str
    chain_id: int
    verifying_contract: str
    version: str = PERMIT_VERSION

    def __post_init__(self):
        if not self.name:
            raise ValueError("PermitDomain name cannot be empty")
        require_amount(self.chain_id, "chain_id")
        object.__setattr__(self, 'verifying_contract', normalize_address(self.verifying_contract))


def domain_separator(domain: PermitDomain) -> bytes:
    """Compute the 32-byte EIP-712 domain separator."""
    return keccak(encode(
        ['bytes32', 'bytes32', 'bytes32', 'uint256', 'address'],
        [
            EIP712_DOMAIN_TYPEHASH,
            keccak(text=domain.name),
            keccak(text=domain.version),
            domain.chain_id,
            domain.verifying_contract,
        ],
    ))


def permit_struct_hash(owner: str, spender: str, value: int, nonce: int, deadline: int) -> bytes:
    """Hash of one Permit message."""
    return keccak(encode(
        ['bytes32', 'address', 'address', 'uint256', 'uint256', 'uint256'],
        [PERMIT_TYPEHASH, owner, spender, value, nonce, deadline],
    ))


def permit_digest(
    domain: PermitDomain,
    owner: str,
    spender: str,
    value: int,
    nonce: int,
    deadline: int,
) -> bytes:
    """The 32-byte digest an owner signs to authorize a permit."""
    return keccak(
        b"\x19\x01"
        + domain_separator(domain)
        + permit_struct_hash(owner, spender, value, nonce, deadline)
    )


# ============================================================================
# SIGNATURES
# ============================================================================

Word = Union[int, bytes, str]


def _to_word(value: Word, name: str) -> int:
    """Coerce a 32-byte signature component given as int, bytes or hex."""
    if isinstance(value, bool):
        raise InvalidSignature(f"{name} must be a 32-byte word")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = decode_hex(value)
        except ValueError:
            raise InvalidSignature(f"{name} is not valid hex") from None
    if isinstance(value, (bytes, bytearray)) and len(value) == 32:
        return int.from_bytes(value, "big")
    raise InvalidSignature(f"{name} must be a 32-byte word")


@dataclass(frozen=True, slots=True)
class PermitSignature:
    """
    Raw (v, r, s) components of a secp256k1 signature.

    v uses the 27/28 convention; 0/1 are accepted and shifted by 27.
    """
    v: int
    r: int
    s: int

    @classmethod
    def from_components(cls, v: int, r: Word, s: Word) -> PermitSignature:
        if isinstance(v, bool) or not isinstance(v, int):
            raise InvalidSignature(f"v must be an int, got {type(v).__name__}")
        if v in (0, 1):
            v += 27
        return cls(v=v, r=_to_word(r, "r"), s=_to_word(s, "s"))

    @classmethod
    def from_bytes(cls, signature: Union[bytes, str]) -> PermitSignature:
        """Split a 65-byte r || s || v signature."""
        if isinstance(signature, str):
            try:
                signature = decode_hex(signature)
            except ValueError:
                raise InvalidSignature("signature is not valid hex") from None
        if len(signature) != 65:
            raise InvalidSignature(f"Expected 65 signature bytes, got {len(signature)}")
        return cls.from_components(signature[64], signature[:32], signature[32:64])

    def to_bytes(self) -> bytes:
        return self.r.to_bytes(32, "big") + self.s.to_bytes(32, "big") + bytes([self.v])


def recover_signer(digest: bytes, signature: PermitSignature) -> str:
    """
    Recover the checksummed address that signed digest.

    Raises:
        InvalidSignature: If v is not 27/28, r or s is out of range, s is in
                          the upper half of the curve order, or no public key
                          can be recovered
    """
    if signature.v not in (27, 28):
        raise InvalidSignature(f"Invalid v value: {signature.v}")
    if not 0 < signature.r < SECP256K1_N:
        raise InvalidSignature("r out of range")
    if not 0 < signature.s <= SECP256K1_N // 2:
        raise InvalidSignature("s out of range or not in lower half order")
    try:
        sig = keys.Signature(vrs=(signature.v - 27, signature.r, signature.s))
        public_key = sig.recover_public_key_from_msg_hash(digest)
    except (BadSignature, ValidationError) as exc:
        raise InvalidSignature(f"Signature recovery failed: {exc}") from exc
    return public_key.to_checksum_address()


def sign_permit(
    private_key: Union[keys.PrivateKey, bytes, str],
    domain: PermitDomain,
    owner: str,
    spender: str,
    value: int,
    nonce: int,
    deadline: int,
) -> PermitSignature:
    """
    Produce the signature an owner would submit with a permit.

    For off-ledger signers and tests; the ledger itself never holds keys.
    """
    if isinstance(private_key, str):
        private_key = decode_hex(private_key)
    if isinstance(private_key, bytes):
        private_key = keys.PrivateKey(private_key)
    digest = permit_digest(
        domain, normalize_address(owner), normalize_address(spender), value, nonce, deadline
    )
    sig = private_key.sign_msg_hash(digest)
    return PermitSignature(v=sig.v + 27, r=sig.r, s=sig.s)


# ============================================================================
# AUTHORIZER
# ============================================================================

class PermitAuthorizer:
    """
    Verifies permits and tracks per-owner nonces.

    Writes approvals through the Ledger's approval path, so a permit and a
    direct approve leave identical ledger state.
    """

    def __init__(self, domain: PermitDomain, ledger: Ledger):
        self.domain = domain
        self._ledger = ledger
        self._separator = domain_separator(domain)
        self._nonces: Dict[str, int] = {}

    @property
    def domain_separator(self) -> bytes:
        return self._separator

    def nonces(self, owner: str) -> int:
        """Nonce the next permit signed by owner must carry."""
        return self._nonces.get(owner, 0)

    def digest(self, owner: str, spender: str, value: int, deadline: int) -> bytes:
        """Digest for a permit using owner's current nonce."""
        return keccak(
            b"\x19\x01"
            + self._separator
            + permit_struct_hash(owner, spender, value, self.nonces(owner), deadline)
        )

    def check(
        self,
        owner: str,
        spender: str,
        value: int,
        deadline: int,
        signature: PermitSignature,
        now: int,
    ) -> None:
        """
        Raise if the permit would be rejected. Never mutates state.

        Raises:
            PermitExpired: If now > deadline
            InvalidSignature: If the recovered signer is not owner
            ZeroAddress: If spender is the null address
        """
        require_amount(value, "value")
        require_amount(deadline, "deadline")
        if now > deadline:
            raise PermitExpired(f"Permit deadline {deadline} passed (now {now})")
        signer = recover_signer(self.digest(owner, spender, value, deadline), signature)
        if signer != owner:
            raise InvalidSignature(f"Signer {signer} is not owner {owner}")
        self._ledger.check_approve(owner, spender, value)

    def permit(
        self,
        owner: str,
        spender: str,
        value: int,
        deadline: int,
        signature: PermitSignature,
        now: int,
    ) -> int:
        """
        Verify a permit, write the allowance and consume the nonce.

        Returns:
            The nonce that was consumed
        """
        self.check(owner, spender, value, deadline, signature, now)
        used = self.nonces(owner)
        self._ledger.approve(owner, spender, value)
        self._nonces[owner] = used + 1
        return used

    def snapshot(self) -> Dict[str, Any]:
        return {'nonces': dict(self._nonces)}
