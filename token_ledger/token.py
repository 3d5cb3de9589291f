"""
token.py - Token Engine and Dispatch Layer

The Token owns one instance of every component and is the only public entry
point that mutates state. Each mutating call runs under a single re-entrant
lock and follows the same pipeline:

    1. Normalise inputs (addresses, amounts)
    2. OperationalGate   - paused / emergency-mode rules
    3. AccessRegistry    - required capability, then blacklist
    4. Component checks  - zero address, supply cap, daily quota, allowance, balance
    5. Apply             - mutate the ledger (and quota / nonce)
    6. Record            - append one TokenEvent to the audit trail

Every check in steps 2-4 runs before anything in step 5, so a rejected call
leaves no trace: no balance, quota, nonce or event changes.
"""

from __future__ import annotations
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Tuple
import copy
import threading

from eth_utils import encode_hex

from .core import (
    # Constants
    DAILY_MINT_LIMIT, DECIMALS, DEFAULT_CHAIN_ID, DEFAULT_TOKEN_ADDRESS,
    MAX_SUPPLY, ONE_TOKEN, ZERO_ADDRESS,
    # Types
    Account, Capability, EventType, TokenEvent,
    # Exceptions
    TokenError,
    # Helpers
    _freeze_args, format_units, normalize_address, require_amount,
)
from .access import AccessRegistry
from .gate import OperationalGate
from .ledger import Ledger
from .permit import PermitAuthorizer, PermitDomain, PermitSignature
from .rate_limiter import RateLimiter


# Capability each entry point requires of its caller.
REQUIRED_CAPABILITY: Dict[str, Capability] = {
    'transfer': Capability.PUBLIC,
    'approve': Capability.PUBLIC,
    'transfer_from': Capability.PUBLIC,
    'burn': Capability.PUBLIC,
    'permit': Capability.PUBLIC,
    'mint': Capability.MINTER,
    'pause': Capability.OWNER,
    'unpause': Capability.OWNER,
    'add_minter': Capability.OWNER,
    'remove_minter': Capability.OWNER,
    'blacklist': Capability.OWNER,
    'unblacklist': Capability.OWNER,
    'activate_emergency_mode': Capability.OWNER,
    'deactivate_emergency_mode': Capability.OWNER,
    'emergency_transfer': Capability.OWNER,
    'transfer_ownership': Capability.OWNER,
}

# Entry points rejected with ContractPaused while the token is paused.
PAUSABLE_OPERATIONS: FrozenSet[str] = frozenset({
    'transfer', 'approve', 'transfer_from', 'mint', 'burn', 'permit',
})

# Entry points that only run in emergency mode (and ignore the pause flag).
EMERGENCY_OPERATIONS: FrozenSet[str] = frozenset({'emergency_transfer'})


class Token:
    """
    Fungible token with permits, capped role-gated minting, blacklist,
    pause and emergency controls.

    Every mutating method takes the already-authenticated caller as its
    first argument and returns the TokenEvent it recorded, or None when an
    idempotent call changed nothing. Rejections raise a TokenError subclass.

    Thread Safety:
        Mutating calls are serialised by an internal RLock; their order is the
        order of nonce assignment, quota consumption and balance changes.
        Reads do not lock.

    Example:
        token = Token("GenericToken", "MYGT", owner, initial_supply=10**24, verbose=False)
        token.transfer(owner, alice, 10**18)
        token.mint(owner, bob, 5 * 10**18)
        assert token.total_supply == 10**24 + 5 * 10**18
    """

    def __init__(
        self,
        name: str,
        symbol: str,
        owner: str,
        initial_supply: int = 1_000_000 * ONE_TOKEN,
        address: str = DEFAULT_TOKEN_ADDRESS,
        chain_id: int = DEFAULT_CHAIN_ID,
        max_supply: int = MAX_SUPPLY,
        daily_mint_limit: int = DAILY_MINT_LIMIT,
        initial_holder: Optional[str] = None,
        initial_time: int = 0,
        verbose: bool = True,
    ):
        """
        Create a token and mint the initial supply.

        Args:
            name: Token name (also the permit domain name)
            symbol: Ticker symbol
            owner: Address receiving the owner and minter roles
            initial_supply: Base units minted to initial_holder (not counted
                            against the daily quota)
            address: Address identifying this token instance in permits
            chain_id: Chain id bound into permit signatures
            max_supply: Immutable supply ceiling
            daily_mint_limit: Immutable per-window mint quota
            initial_holder: Recipient of the initial supply (default: owner)
            initial_time: Starting logical time, Unix seconds
            verbose: Print every recorded event and rejection (default: True)

        Raises:
            SupplyCapExceeded: If initial_supply > max_supply
            InvalidAddress: If owner, address or initial_holder is malformed
        """
        if not name or not name.strip():
            raise ValueError("Token name cannot be empty")
        if not symbol or not symbol.strip():
            raise ValueError("Token symbol cannot be empty")
        owner = normalize_address(owner)
        holder = normalize_address(initial_holder) if initial_holder is not None else owner
        require_amount(initial_supply, "initial_supply")

        self.name = name
        self.symbol = symbol
        self.decimals = DECIMALS
        self.verbose = verbose
        self._current_time = require_amount(initial_time, "initial_time")
        self._initial_supply = initial_supply
        self._deployer = owner
        self._lock = threading.RLock()
        self.event_log: List[TokenEvent] = []

        self.ledger = Ledger(max_supply=max_supply)
        self.access = AccessRegistry(owner)
        self.rate_limiter = RateLimiter(daily_limit=daily_mint_limit, window_start=initial_time)
        self.gate = OperationalGate()
        self.domain = PermitDomain(name=name, chain_id=chain_id, verifying_contract=address)
        self.permits = PermitAuthorizer(self.domain, self.ledger)
        self.address = self.domain.verifying_contract

        self._emit(EventType.OWNERSHIP_TRANSFERRED, owner,
                   {'previous_owner': ZERO_ADDRESS, 'new_owner': owner})
        self.access.add_minter(owner, owner)
        self._emit(EventType.MINTER_ADDED, owner, {'account': owner})
        if initial_supply:
            self.ledger.mint(holder, initial_supply)
            self._emit(EventType.TRANSFER, owner,
                       {'from': ZERO_ADDRESS, 'to': holder, 'value': initial_supply})

    # ========================================================================
    # READ ACCESSORS
    # ========================================================================

    @property
    def current_time(self) -> int:
        """Current logical time, Unix seconds."""
        return self._current_time

    @property
    def total_supply(self) -> int:
        return self.ledger.total_supply

    @property
    def max_supply(self) -> int:
        return self.ledger.max_supply

    @property
    def owner(self) -> str:
        return self.access.owner

    @property
    def paused(self) -> bool:
        return self.gate.paused

    @property
    def emergency_mode(self) -> bool:
        return self.gate.emergency_mode

    @property
    def daily_mint_limit(self) -> int:
        return self.rate_limiter.daily_limit

    @property
    def daily_minted(self) -> int:
        """Amount minted in the quota window as it stands now."""
        return self.rate_limiter.daily_minted(self._current_time)

    @property
    def remaining_daily_limit(self) -> int:
        """Amount that can still be minted in the window as it stands now."""
        return self.rate_limiter.remaining(self._current_time)

    @property
    def domain_separator(self) -> bytes:
        """The EIP-712 DOMAIN_SEPARATOR of this token."""
        return self.permits.domain_separator

    def balance_of(self, address: str) -> int:
        return self.ledger.balance_of(normalize_address(address))

    def allowance(self, owner: str, spender: str) -> int:
        return self.ledger.allowance(normalize_address(owner), normalize_address(spender))

    def is_minter(self, address: str) -> bool:
        return self.access.is_minter(normalize_address(address))

    def is_blacklisted(self, address: str) -> bool:
        return self.access.is_blacklisted(normalize_address(address))

    def nonces(self, owner: str) -> int:
        return self.permits.nonces(normalize_address(owner))

    def capabilities(self, address: str) -> FrozenSet[Capability]:
        return self.access.capabilities(normalize_address(address))

    def account(self, address: str) -> Account:
        """Everything recorded about one address."""
        address = normalize_address(address)
        return Account(
            address=address,
            balance=self.ledger.balance_of(address),
            allowances=self.ledger.allowances_of(address),
            nonce=self.permits.nonces(address),
            is_minter=self.access.is_minter(address),
            is_blacklisted=self.access.is_blacklisted(address),
        )

    def events(self, event_type: Optional[EventType] = None) -> List[TokenEvent]:
        """Audit trail, optionally filtered by event type."""
        if event_type is None:
            return list(self.event_log)
        return [e for e in self.event_log if e.event_type is event_type]

    def verify_supply(self) -> Dict[str, Any]:
        """Verify total_supply == sum(balances) <= max_supply. See Ledger.verify_supply."""
        return self.ledger.verify_supply()

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: int) -> None:
        """
        Advance the logical clock.

        Time can only move forward, never backward.

        Raises:
            InvalidAmount: If new_time is not an int in uint256 range
            ValueError: If new_time is before the current time
        """
        require_amount(new_time, "new_time")
        with self._lock:
            if new_time < self._current_time:
                raise ValueError(
                    f"Cannot move time backwards: {new_time} < {self._current_time}"
                )
            self._current_time = new_time

    # ========================================================================
    # DISPATCH
    # ========================================================================

    @contextmanager
    def _operation(self, operation: str) -> Iterator[None]:
        """Serialise one entry point and report its rejection."""
        with self._lock:
            try:
                yield
            except TokenError as exc:
                if self.verbose:
                    print(f"✗ REJECTED {operation}: {type(exc).__name__}: {exc}")
                raise

    def _authorize(self, operation: str, caller: str) -> None:
        """Gate checks first, then the capability the operation requires."""
        if operation in PAUSABLE_OPERATIONS:
            self.gate.require_not_paused()
        if operation in EMERGENCY_OPERATIONS:
            self.gate.require_emergency_mode()
        self.access.require_capability(caller, REQUIRED_CAPABILITY[operation])

    def _emit(self, event_type: EventType, caller: str, args: Dict[str, Any]) -> TokenEvent:
        event = TokenEvent(
            sequence_number=len(self.event_log),
            event_type=event_type,
            timestamp=self._current_time,
            caller=caller,
            _frozen_args=_freeze_args(args),
        )
        self.event_log.append(event)
        if self.verbose:
            print(f"✓ {event!r}")
        return event

    @staticmethod
    def _addresses(*values: str) -> Tuple[str, ...]:
        return tuple(normalize_address(v) for v in values)

    # ========================================================================
    # LEDGER OPERATIONS (pausable)
    # ========================================================================

    def transfer(self, caller: str, recipient: str, amount: int) -> TokenEvent:
        """
        Move amount from caller to recipient.

        Raises:
            ContractPaused, AddressBlacklisted, ZeroAddress, InsufficientBalance
        """
        with self._operation('transfer'):
            caller, recipient = self._addresses(caller, recipient)
            require_amount(amount)
            self._authorize('transfer', caller)
            self.access.require_not_blacklisted(caller, recipient)
            self.ledger.transfer(caller, recipient, amount)
            return self._emit(EventType.TRANSFER, caller,
                              {'from': caller, 'to': recipient, 'value': amount})

    def approve(self, caller: str, spender: str, amount: int) -> TokenEvent:
        """Set spender's allowance over caller's balance to amount (overwrite)."""
        with self._operation('approve'):
            caller, spender = self._addresses(caller, spender)
            require_amount(amount)
            self._authorize('approve', caller)
            self.access.require_not_blacklisted(caller, spender)
            self.ledger.approve(caller, spender, amount)
            return self._emit(EventType.APPROVAL, caller,
                              {'owner': caller, 'spender': spender, 'value': amount})

    def transfer_from(self, caller: str, owner: str, recipient: str, amount: int) -> TokenEvent:
        """
        Move amount from owner to recipient using caller's allowance.

        Raises:
            ContractPaused, AddressBlacklisted, ZeroAddress,
            InsufficientAllowance, InsufficientBalance
        """
        with self._operation('transfer_from'):
            caller, owner, recipient = self._addresses(caller, owner, recipient)
            require_amount(amount)
            self._authorize('transfer_from', caller)
            self.access.require_not_blacklisted(caller, owner, recipient)
            self.ledger.transfer_from(caller, owner, recipient, amount)
            return self._emit(EventType.TRANSFER, caller,
                              {'from': owner, 'to': recipient, 'value': amount})

    def mint(self, caller: str, to: str, amount: int) -> TokenEvent:
        """
        Create amount new tokens for to.

        The supply cap is checked before the daily quota so a mint rejected for
        the cap never consumes quota.

        Raises:
            ContractPaused, Unauthorized, AddressBlacklisted, ZeroAddress,
            SupplyCapExceeded, DailyLimitExceeded
        """
        with self._operation('mint'):
            caller, to = self._addresses(caller, to)
            require_amount(amount)
            self._authorize('mint', caller)
            self.access.require_not_blacklisted(caller, to)
            self.ledger.check_mint(to, amount)
            self.rate_limiter.check_and_consume(amount, self._current_time)
            self.ledger.mint(to, amount)
            return self._emit(EventType.TRANSFER, caller,
                              {'from': ZERO_ADDRESS, 'to': to, 'value': amount})

    def burn(self, caller: str, amount: int) -> TokenEvent:
        """Destroy amount of caller's tokens."""
        with self._operation('burn'):
            (caller,) = self._addresses(caller)
            require_amount(amount)
            self._authorize('burn', caller)
            self.access.require_not_blacklisted(caller)
            self.ledger.burn(caller, amount)
            return self._emit(EventType.TRANSFER, caller,
                              {'from': caller, 'to': ZERO_ADDRESS, 'value': amount})

    def permit(
        self,
        caller: str,
        owner: str,
        spender: str,
        value: int,
        deadline: int,
        v: int,
        r: Any,
        s: Any,
    ) -> TokenEvent:
        """
        Apply an owner-signed approval submitted by caller.

        caller is the relayer and need not be owner or spender. r and s may be
        ints, 32-byte values or hex strings.

        Raises:
            ContractPaused, AddressBlacklisted, PermitExpired,
            InvalidSignature, ZeroAddress
        """
        with self._operation('permit'):
            caller, owner, spender = self._addresses(caller, owner, spender)
            require_amount(value, "value")
            require_amount(deadline, "deadline")
            signature = PermitSignature.from_components(v, r, s)
            self._authorize('permit', caller)
            self.access.require_not_blacklisted(owner, spender)
            self.permits.permit(owner, spender, value, deadline, signature, self._current_time)
            return self._emit(EventType.APPROVAL, caller,
                              {'owner': owner, 'spender': spender, 'value': value})

    # ========================================================================
    # OPERATIONAL CONTROLS (owner-only)
    # ========================================================================

    def pause(self, caller: str) -> TokenEvent:
        with self._operation('pause'):
            (caller,) = self._addresses(caller)
            self._authorize('pause', caller)
            self.gate.pause()
            return self._emit(EventType.PAUSED, caller, {'account': caller})

    def unpause(self, caller: str) -> TokenEvent:
        with self._operation('unpause'):
            (caller,) = self._addresses(caller)
            self._authorize('unpause', caller)
            self.gate.unpause()
            return self._emit(EventType.UNPAUSED, caller, {'account': caller})

    def activate_emergency_mode(self, caller: str) -> TokenEvent:
        with self._operation('activate_emergency_mode'):
            (caller,) = self._addresses(caller)
            self._authorize('activate_emergency_mode', caller)
            self.gate.activate_emergency_mode()
            return self._emit(EventType.EMERGENCY_MODE_ACTIVATED, caller, {'account': caller})

    def deactivate_emergency_mode(self, caller: str) -> TokenEvent:
        with self._operation('deactivate_emergency_mode'):
            (caller,) = self._addresses(caller)
            self._authorize('deactivate_emergency_mode', caller)
            self.gate.deactivate_emergency_mode()
            return self._emit(EventType.EMERGENCY_MODE_DEACTIVATED, caller, {'account': caller})

    def emergency_transfer(self, caller: str, source: str, dest: str, amount: int) -> TokenEvent:
        """
        Force amount from source to dest.

        Works while paused, skips allowances and the source's blacklist status.
        The destination must not be blacklisted or null.

        Raises:
            NotInEmergencyMode, Unauthorized, AddressBlacklisted,
            ZeroAddress, InsufficientBalance
        """
        with self._operation('emergency_transfer'):
            caller, source, dest = self._addresses(caller, source, dest)
            require_amount(amount)
            self._authorize('emergency_transfer', caller)
            self.access.require_not_blacklisted(dest)
            self.ledger.emergency_transfer(source, dest, amount)
            return self._emit(EventType.EMERGENCY_TRANSFER, caller,
                              {'from': source, 'to': dest, 'value': amount})

    # ========================================================================
    # ROLE MANAGEMENT (owner-only, idempotent)
    # ========================================================================

    def add_minter(self, caller: str, address: str) -> Optional[TokenEvent]:
        with self._operation('add_minter'):
            caller, address = self._addresses(caller, address)
            self._authorize('add_minter', caller)
            if not self.access.add_minter(caller, address):
                return None
            return self._emit(EventType.MINTER_ADDED, caller, {'account': address})

    def remove_minter(self, caller: str, address: str) -> Optional[TokenEvent]:
        with self._operation('remove_minter'):
            caller, address = self._addresses(caller, address)
            self._authorize('remove_minter', caller)
            if not self.access.remove_minter(caller, address):
                return None
            return self._emit(EventType.MINTER_REMOVED, caller, {'account': address})

    def blacklist(self, caller: str, address: str) -> Optional[TokenEvent]:
        with self._operation('blacklist'):
            caller, address = self._addresses(caller, address)
            self._authorize('blacklist', caller)
            if not self.access.blacklist(caller, address):
                return None
            return self._emit(EventType.BLACKLISTED, caller, {'account': address})

    def unblacklist(self, caller: str, address: str) -> Optional[TokenEvent]:
        with self._operation('unblacklist'):
            caller, address = self._addresses(caller, address)
            self._authorize('unblacklist', caller)
            if not self.access.unblacklist(caller, address):
                return None
            return self._emit(EventType.UNBLACKLISTED, caller, {'account': address})

    def transfer_ownership(self, caller: str, new_owner: str) -> TokenEvent:
        """Hand the owner role to new_owner. Minter roles are left untouched."""
        with self._operation('transfer_ownership'):
            caller, new_owner = self._addresses(caller, new_owner)
            self._authorize('transfer_ownership', caller)
            previous = self.access.transfer_ownership(caller, new_owner)
            return self._emit(EventType.OWNERSHIP_TRANSFERRED, caller,
                              {'previous_owner': previous, 'new_owner': new_owner})

    # ========================================================================
    # REPORTING
    # ========================================================================

    def state_snapshot(self) -> Dict[str, Any]:
        """
        Deep copy of every piece of mutable state.

        Two snapshots compare equal exactly when no observable state changed,
        which makes this the reference for rollback and idempotence checks.
        """
        window = self.rate_limiter.window
        return copy.deepcopy({
            'ledger': self.ledger.snapshot(),
            'access': self.access.snapshot(),
            'gate': self.gate.snapshot(),
            'permits': self.permits.snapshot(),
            'mint_window': {
                'window_start': window.window_start,
                'minted_in_window': window.minted_in_window,
                'daily_limit': window.daily_limit,
            },
            'current_time': self._current_time,
            'event_count': len(self.event_log),
        })

    def describe(self) -> Dict[str, Any]:
        """Human-readable token state report (amounts formatted in whole tokens)."""
        return {
            'name': self.name,
            'symbol': self.symbol,
            'decimals': self.decimals,
            'address': self.address,
            'chain_id': self.domain.chain_id,
            'total_supply': format_units(self.total_supply, self.decimals),
            'max_supply': format_units(self.max_supply, self.decimals),
            'owner': self.owner,
            'paused': self.paused,
            'emergency_mode': self.emergency_mode,
            'daily_minted': format_units(self.daily_minted, self.decimals),
            'remaining_daily_limit': format_units(self.remaining_daily_limit, self.decimals),
            'domain_separator': encode_hex(self.domain_separator),
        }

    def deployment_info(self) -> Dict[str, Any]:
        """JSON-serialisable deployment record."""
        return {
            'chainId': self.domain.chain_id,
            'tokenAddress': self.address,
            'deployerAddress': self._deployer,
            'tokenName': self.name,
            'tokenSymbol': self.symbol,
            'initialSupply': format_units(self._initial_supply, self.decimals),
            'totalSupply': format_units(self.total_supply, self.decimals),
            'maxSupply': format_units(self.max_supply, self.decimals),
            'owner': self.owner,
            'domainSeparator': encode_hex(self.domain_separator),
            'deployedAt': datetime.fromtimestamp(self._current_time, tz=timezone.utc).isoformat(),
        }

    def __repr__(self) -> str:
        return (
            f"Token({self.symbol}, supply={format_units(self.total_supply)}, "
            f"holders={len(self.ledger.holders())}, events={len(self.event_log)})"
        )
