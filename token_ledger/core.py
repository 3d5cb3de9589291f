"""
Core types and pure functions for the token ledger.

This module provides the foundational pieces every component builds on:
1. Constants: supply ceilings, quota window, sentinel values
2. Exceptions: TokenError and one subclass per rejection kind
3. Enums: Capability (caller roles) and EventType (audit trail)
4. Immutable records: TokenEvent, Account
5. Validation helpers: address normalisation and uint256 amount checks
6. Unit conversion: parse_units / format_units

Nothing in this module holds or mutates ledger state.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, localcontext
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

from eth_utils import is_address, to_checksum_address


# ============================================================================
# CONSTANTS
# ============================================================================

# Number of decimals of the token's base unit (1 token = 10**18 base units).
DECIMALS = 18

# One whole token in base units.
ONE_TOKEN = 10 ** DECIMALS

# Largest value representable by a uint256 word. An allowance set to this
# value is treated as unlimited and is never decremented.
MAX_UINT256 = 2 ** 256 - 1

# Hard ceiling on total supply (immutable per token instance).
MAX_SUPPLY = 18_000_000 * ONE_TOKEN

# Maximum amount that may be minted within one quota window.
DAILY_MINT_LIMIT = 1_000_000 * ONE_TOKEN

# Length of the rolling mint-quota window, in seconds.
MINT_WINDOW_SECONDS = 24 * 60 * 60

# The null identifier: never a valid recipient, spender or role holder.
ZERO_ADDRESS = "0x" + "00" * 20

# Permit domain version, fixed by the EIP-2612 profile this token implements.
PERMIT_VERSION = "1"

# Chain id of a local development network.
DEFAULT_CHAIN_ID = 31337

# Address of the first contract a fresh development node deploys; used as the
# token's permit-domain address when none is given.
DEFAULT_TOKEN_ADDRESS = "0x5fbdb2315678afecb367f032d93f642f64180aa3"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class TokenError(Exception):
    """Base exception for all token ledger errors."""
    pass


class Unauthorized(TokenError):
    """Raised when the caller lacks the role (owner or minter) an operation requires."""
    pass


class ContractPaused(TokenError):
    """Raised when a ledger-mutating call is attempted while the token is paused."""
    pass


class AddressBlacklisted(TokenError):
    """Raised when a blacklisted address participates in a ledger-mutating call."""
    pass


class ZeroAddress(TokenError):
    """Raised when the null address is used as a recipient, spender or role holder."""
    pass


class InsufficientBalance(TokenError):
    """Raised when an amount exceeds the balance it would be debited from."""
    pass


class InsufficientAllowance(TokenError):
    """Raised when transfer_from exceeds the spender's allowance."""
    pass


class SupplyCapExceeded(TokenError):
    """Raised when a mint would push total supply above the maximum supply."""
    pass


class DailyLimitExceeded(TokenError):
    """Raised when a mint would exceed the quota of the current mint window."""
    pass


class PermitExpired(TokenError):
    """Raised when a permit is submitted after its deadline."""
    pass


class InvalidSignature(TokenError):
    """Raised when a permit signature is malformed or not produced by the owner."""
    pass


class AlreadyPaused(TokenError):
    """Raised when pausing a token that is already paused."""
    pass


class AlreadyUnpaused(TokenError):
    """Raised when unpausing a token that is not paused."""
    pass


class AlreadyInEmergencyMode(TokenError):
    """Raised when activating emergency mode while it is already active."""
    pass


class NotInEmergencyMode(TokenError):
    """Raised when emergency mode is required but inactive, or deactivated twice."""
    pass


class InvalidAddress(TokenError, ValueError):
    """Raised when a value is not a 20-byte hex address."""
    pass


class InvalidAmount(TokenError, ValueError):
    """Raised when an amount is not an integer in the uint256 range."""
    pass


# ============================================================================
# ENUMS
# ============================================================================

class Capability(Enum):
    """
    Role a caller holds with respect to the token.

    Every caller holds PUBLIC. MINTER and OWNER are granted through the
    AccessRegistry. The dispatch layer checks the capability an operation
    requires instead of relying on inheritance.
    """
    PUBLIC = "public"
    MINTER = "minter"
    OWNER = "owner"


class EventType(Enum):
    """Kinds of records written to the audit trail."""
    TRANSFER = "Transfer"
    APPROVAL = "Approval"
    MINTER_ADDED = "MinterAdded"
    MINTER_REMOVED = "MinterRemoved"
    BLACKLISTED = "Blacklisted"
    UNBLACKLISTED = "Unblacklisted"
    PAUSED = "Paused"
    UNPAUSED = "Unpaused"
    EMERGENCY_MODE_ACTIVATED = "EmergencyModeActivated"
    EMERGENCY_MODE_DEACTIVATED = "EmergencyModeDeactivated"
    EMERGENCY_TRANSFER = "EmergencyTransfer"
    OWNERSHIP_TRANSFERRED = "OwnershipTransferred"


# ============================================================================
# IMMUTABLE RECORDS
# ============================================================================

def _freeze_args(args: Optional[Dict[str, Any]]) -> Tuple[Tuple[str, Any], ...]:
    """Convert an argument dict into a sorted tuple of pairs."""
    if not args:
        return ()
    return tuple(sorted(args.items()))


@dataclass(frozen=True, slots=True)
class TokenEvent:
    """
    An executed, immutable record of one state change - the audit trail entry.

    Attributes:
        sequence_number: Monotonic position within the token's event log
        event_type: What happened
        timestamp: Logical time at which the change was committed
        caller: The authenticated identity that triggered the change
        _frozen_args: Event arguments as sorted (name, value) pairs
    """
    sequence_number: int
    event_type: EventType
    timestamp: int
    caller: str
    _frozen_args: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    @property
    def args(self) -> Dict[str, Any]:
        """Event arguments as a fresh dict."""
        return dict(self._frozen_args)

    def __repr__(self) -> str:
        rendered = ", ".join(f"{k}={v}" for k, v in self._frozen_args)
        return f"#{self.sequence_number} {self.event_type.value}({rendered}) @ {self.timestamp}"


@dataclass(frozen=True, slots=True)
class Account:
    """
    Read-only view of everything the token records about one address.

    Attributes:
        address: Checksummed address
        balance: Balance in base units
        allowances: Spender -> remaining allowance (non-zero entries only)
        nonce: Next permit nonce
        is_minter: Whether the address may mint
        is_blacklisted: Whether the address is frozen
    """
    address: str
    balance: int
    allowances: Dict[str, int]
    nonce: int
    is_minter: bool
    is_blacklisted: bool


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def normalize_address(value: Any) -> str:
    """
    Return the EIP-55 checksummed form of an address.

    Accepts hex strings with or without mixed case. Raises InvalidAddress for
    anything that is not a 20-byte hex address.
    """
    if not isinstance(value, str) or not is_address(value):
        raise InvalidAddress(f"Not a valid address: {value!r}")
    return to_checksum_address(value)


def is_zero_address(address: str) -> bool:
    return int(address, 16) == 0


def require_amount(amount: Any, name: str = "amount") -> int:
    """
    Validate that amount is an int in [0, MAX_UINT256].

    bool is rejected even though it subclasses int.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"{name} must be an int, got {type(amount).__name__}")
    if amount < 0 or amount > MAX_UINT256:
        raise InvalidAmount(f"{name} out of uint256 range: {amount}")
    return amount


def capabilities_for(is_owner: bool, is_minter: bool) -> FrozenSet[Capability]:
    """Build the capability set of a caller from its role flags."""
    caps = {Capability.PUBLIC}
    if is_minter:
        caps.add(Capability.MINTER)
    if is_owner:
        caps.add(Capability.OWNER)
    return frozenset(caps)


# ============================================================================
# UNIT CONVERSION
# ============================================================================

def parse_units(value: Any, decimals: int = DECIMALS) -> int:
    """
    Convert a human-readable token amount into base units.

    Args:
        value: Amount as str, int or Decimal (e.g. "1000000", "0.5")
        decimals: Number of decimals of the base unit

    Returns:
        Integer amount in base units

    Raises:
        InvalidAmount: If the value is not a finite, non-negative number or has
                       more fractional digits than the base unit supports

    Example:
        parse_units("1.5") == 1_500_000_000_000_000_000
    """
    if isinstance(value, float):
        value = repr(value)
    try:
        quantity = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidAmount(f"Not a number: {value!r}") from None
    if not quantity.is_finite() or quantity < 0:
        raise InvalidAmount(f"Amount must be finite and non-negative: {value!r}")
    # uint256 needs 78 significant digits; the module default of 28 is too small
    with localcontext() as ctx:
        ctx.prec = 100
        scaled = quantity.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise InvalidAmount(f"{value!r} has more than {decimals} decimal places")
        return require_amount(int(scaled))


def format_units(amount: int, decimals: int = DECIMALS) -> str:
    """
    Render a base-unit amount as a human-readable decimal string.

    Trailing fractional zeros are dropped: format_units(10**18) == "1".
    """
    require_amount(amount)
    whole, frac = divmod(amount, 10 ** decimals)
    if frac == 0:
        return str(whole)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{frac_str}"
