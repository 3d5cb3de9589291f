"""
ledger.py - Balance and Allowance Ledger

The Ledger owns balances, allowances and the supply counters of a single
token. It is the only component that moves value.

Key responsibilities:
    - Enforces total_supply <= max_supply and total_supply == sum(balances)
    - Applies transfers, approvals, mints, burns and forced transfers atomically
    - Exposes check_* validators so the dispatch layer can validate every
      component before mutating any of them

Role, pause and blacklist rules are NOT checked here; the Token dispatch
layer enforces them before calling into the Ledger.
"""

from __future__ import annotations
from typing import Any, Dict

from .core import (
    MAX_SUPPLY, MAX_UINT256,
    InsufficientBalance, InsufficientAllowance, SupplyCapExceeded, ZeroAddress,
    is_zero_address, require_amount,
)


class Ledger:
    """
    Balances, allowances and supply of one token.

    Zero balances and zero allowances are pruned, so an address that was
    never referenced and one whose entries returned to zero are
    indistinguishable.

    Thread Safety:
        Not thread-safe. The owning Token serialises all mutating calls.

    Example:
        ledger = Ledger(max_supply=10**24)
        ledger.mint(alice, 1000)
        ledger.transfer(alice, bob, 250)
        assert ledger.balance_of(bob) == 250
    """

    def __init__(self, max_supply: int = MAX_SUPPLY):
        """
        Create an empty ledger.

        Args:
            max_supply: Immutable ceiling on total supply, in base units
        """
        self._max_supply = require_amount(max_supply, "max_supply")
        self._total_supply: int = 0
        self._balances: Dict[str, int] = {}
        # owner -> {spender -> amount}
        self._allowances: Dict[str, Dict[str, int]] = {}

    # ========================================================================
    # READ ACCESSORS
    # ========================================================================

    @property
    def total_supply(self) -> int:
        return self._total_supply

    @property
    def max_supply(self) -> int:
        return self._max_supply

    def balance_of(self, address: str) -> int:
        """Balance of an address (0 if never credited)."""
        return self._balances.get(address, 0)

    def allowance(self, owner: str, spender: str) -> int:
        """Remaining amount spender may move on behalf of owner."""
        return self._allowances.get(owner, {}).get(spender, 0)

    def allowances_of(self, owner: str) -> Dict[str, int]:
        """Copy of all non-zero allowances granted by owner."""
        return dict(self._allowances.get(owner, {}))

    def holders(self) -> Dict[str, int]:
        """Copy of all non-zero balances."""
        return dict(self._balances)

    def sum_of_balances(self) -> int:
        """
        Sum every balance.

        Addresses are sorted first so accumulation order is deterministic.
        """
        return sum(self._balances[a] for a in sorted(self._balances))

    def verify_supply(self) -> Dict[str, Any]:
        """
        Verify the supply invariants.

        Returns:
            Dict with keys:
            - 'valid': bool - True if both invariants hold
            - 'total_supply': int - Tracked total supply
            - 'sum_of_balances': int - Recomputed sum of all balances
            - 'max_supply': int - Supply ceiling
            - 'discrepancy': int - total_supply - sum_of_balances

        Example:
            result = ledger.verify_supply()
            assert result['valid'], f"Supply drift: {result['discrepancy']}"
        """
        summed = self.sum_of_balances()
        return {
            'valid': summed == self._total_supply and self._total_supply <= self._max_supply,
            'total_supply': self._total_supply,
            'sum_of_balances': summed,
            'max_supply': self._max_supply,
            'discrepancy': self._total_supply - summed,
        }

    # ========================================================================
    # VALIDATION (non-mutating)
    # ========================================================================

    def check_transfer(self, sender: str, recipient: str, amount: int) -> None:
        """
        Raise if transfer(sender, recipient, amount) would be rejected.

        Raises:
            ZeroAddress: If recipient is the null address
            InsufficientBalance: If amount exceeds the sender's balance
        """
        require_amount(amount)
        if is_zero_address(recipient):
            raise ZeroAddress("Cannot transfer to the zero address")
        balance = self.balance_of(sender)
        if amount > balance:
            raise InsufficientBalance(
                f"{sender} balance {balance} < {amount}"
            )

    def check_transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        """
        Raise if transfer_from(spender, owner, recipient, amount) would be rejected.

        The allowance is checked before the owner's balance.

        Raises:
            ZeroAddress: If recipient is the null address
            InsufficientAllowance: If amount exceeds allowance(owner, spender)
            InsufficientBalance: If amount exceeds the owner's balance
        """
        require_amount(amount)
        if is_zero_address(recipient):
            raise ZeroAddress("Cannot transfer to the zero address")
        allowed = self.allowance(owner, spender)
        if amount > allowed:
            raise InsufficientAllowance(
                f"{spender} allowance from {owner} is {allowed} < {amount}"
            )
        self.check_transfer(owner, recipient, amount)

    def check_approve(self, owner: str, spender: str, amount: int) -> None:
        require_amount(amount)
        if is_zero_address(spender):
            raise ZeroAddress("Cannot approve the zero address")

    def check_mint(self, to: str, amount: int) -> None:
        """
        Raise if mint(to, amount) would be rejected by the ledger.

        Raises:
            ZeroAddress: If to is the null address
            SupplyCapExceeded: If total_supply + amount > max_supply
        """
        require_amount(amount)
        if is_zero_address(to):
            raise ZeroAddress("Cannot mint to the zero address")
        if self._total_supply + amount > self._max_supply:
            raise SupplyCapExceeded(
                f"Minting {amount} would raise supply to "
                f"{self._total_supply + amount} > max {self._max_supply}"
            )

    def check_burn(self, owner: str, amount: int) -> None:
        require_amount(amount)
        balance = self.balance_of(owner)
        if amount > balance:
            raise InsufficientBalance(f"{owner} balance {balance} < burn {amount}")

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """Move amount from sender to recipient."""
        self.check_transfer(sender, recipient, amount)
        self._move(sender, recipient, amount)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        """Set (overwrite) the allowance of spender over owner's balance."""
        self.check_approve(owner, spender, amount)
        self._set_allowance(owner, spender, amount)

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        """
        Move amount from owner to recipient using spender's allowance.

        The allowance is decremented by amount unless it is MAX_UINT256
        (unlimited approval), which is never decremented.
        """
        self.check_transfer_from(spender, owner, recipient, amount)
        allowed = self.allowance(owner, spender)
        if allowed != MAX_UINT256:
            self._set_allowance(owner, spender, allowed - amount)
        self._move(owner, recipient, amount)

    def mint(self, to: str, amount: int) -> None:
        """Create amount new tokens in to's balance."""
        self.check_mint(to, amount)
        self._total_supply += amount
        self._set_balance(to, self.balance_of(to) + amount)

    def burn(self, owner: str, amount: int) -> None:
        """Destroy amount tokens from owner's balance."""
        self.check_burn(owner, amount)
        self._set_balance(owner, self.balance_of(owner) - amount)
        self._total_supply -= amount

    def emergency_transfer(self, source: str, dest: str, amount: int) -> None:
        """
        Move amount from source to dest without consulting any allowance.

        Only the source balance and the null-destination rule are enforced.
        """
        self.check_transfer(source, dest, amount)
        self._move(source, dest, amount)

    # ========================================================================
    # INTERNAL
    # ========================================================================

    def _move(self, source: str, dest: str, amount: int) -> None:
        # dest is re-read after the debit so a self-transfer nets to zero
        self._set_balance(source, self.balance_of(source) - amount)
        self._set_balance(dest, self.balance_of(dest) + amount)

    def _set_balance(self, address: str, amount: int) -> None:
        if amount:
            self._balances[address] = amount
        else:
            self._balances.pop(address, None)

    def _set_allowance(self, owner: str, spender: str, amount: int) -> None:
        if amount:
            self._allowances.setdefault(owner, {})[spender] = amount
            return
        granted = self._allowances.get(owner)
        if granted is None:
            return
        granted.pop(spender, None)
        if not granted:
            del self._allowances[owner]

    def snapshot(self) -> Dict[str, Any]:
        """Deep copy of all ledger state, for audits and rollback checks."""
        return {
            'total_supply': self._total_supply,
            'max_supply': self._max_supply,
            'balances': dict(self._balances),
            'allowances': {o: dict(s) for o, s in self._allowances.items()},
        }
