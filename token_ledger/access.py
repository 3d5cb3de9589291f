"""
access.py - Owner, Minter and Blacklist Registry

Holds the single owner address, the set of minters and the set of
blacklisted addresses. Every mutation is owner-only. Adding or removing a
role that is already in the requested state is a successful no-op, so
several administrators replaying the same change never see spurious errors.
"""

from __future__ import annotations
from typing import FrozenSet, Set

from .core import (
    Capability,
    AddressBlacklisted, Unauthorized, ZeroAddress,
    capabilities_for, is_zero_address,
)


class AccessRegistry:
    """
    Role registry for one token.

    The owner is not implicitly a minter; the Token registers it as one at
    construction.
    """

    def __init__(self, owner: str):
        if is_zero_address(owner):
            raise ZeroAddress("Owner cannot be the zero address")
        self._owner = owner
        self._minters: Set[str] = set()
        self._blacklist: Set[str] = set()

    # ========================================================================
    # READ ACCESSORS
    # ========================================================================

    @property
    def owner(self) -> str:
        return self._owner

    def is_owner(self, address: str) -> bool:
        return address == self._owner

    def is_minter(self, address: str) -> bool:
        return address in self._minters

    def is_blacklisted(self, address: str) -> bool:
        return address in self._blacklist

    def minters(self) -> FrozenSet[str]:
        return frozenset(self._minters)

    def blacklisted(self) -> FrozenSet[str]:
        return frozenset(self._blacklist)

    def capabilities(self, address: str) -> FrozenSet[Capability]:
        """Capability set held by address."""
        return capabilities_for(self.is_owner(address), self.is_minter(address))

    # ========================================================================
    # CHECKS
    # ========================================================================

    def require_owner(self, caller: str) -> None:
        if caller != self._owner:
            raise Unauthorized(f"{caller} is not the owner")

    def require_capability(self, caller: str, capability: Capability) -> None:
        """
        Raise Unauthorized unless caller holds capability.

        OWNER failures are reported as such; MINTER failures name the role.
        """
        if capability in self.capabilities(caller):
            return
        if capability is Capability.OWNER:
            raise Unauthorized(f"{caller} is not the owner")
        raise Unauthorized(f"{caller} lacks the {capability.value} role")

    def require_not_blacklisted(self, *addresses: str) -> None:
        """Raise AddressBlacklisted if any of the given addresses is blacklisted."""
        for address in addresses:
            if address in self._blacklist:
                raise AddressBlacklisted(f"{address} is blacklisted")

    # ========================================================================
    # MUTATIONS (owner-only)
    # ========================================================================

    def add_minter(self, caller: str, address: str) -> bool:
        """
        Grant the minter role.

        Returns:
            True if the role was granted, False if address already held it
        """
        self.require_owner(caller)
        if is_zero_address(address):
            raise ZeroAddress("Cannot grant the minter role to the zero address")
        if address in self._minters:
            return False
        self._minters.add(address)
        return True

    def remove_minter(self, caller: str, address: str) -> bool:
        """Revoke the minter role. Returns False if address was not a minter."""
        self.require_owner(caller)
        if address not in self._minters:
            return False
        self._minters.discard(address)
        return True

    def blacklist(self, caller: str, address: str) -> bool:
        """Freeze an address. Returns False if it was already blacklisted."""
        self.require_owner(caller)
        if is_zero_address(address):
            raise ZeroAddress("Cannot blacklist the zero address")
        if address in self._blacklist:
            return False
        self._blacklist.add(address)
        return True

    def unblacklist(self, caller: str, address: str) -> bool:
        """Unfreeze an address. Returns False if it was not blacklisted."""
        self.require_owner(caller)
        if address not in self._blacklist:
            return False
        self._blacklist.discard(address)
        return True

    def transfer_ownership(self, caller: str, new_owner: str) -> str:
        """
        Hand the owner role to new_owner.

        Returns:
            The previous owner

        Raises:
            Unauthorized: If caller is not the owner
            ZeroAddress: If new_owner is the null address
            AddressBlacklisted: If new_owner is blacklisted
        """
        self.require_owner(caller)
        if is_zero_address(new_owner):
            raise ZeroAddress("New owner cannot be the zero address")
        self.require_not_blacklisted(new_owner)
        previous = self._owner
        self._owner = new_owner
        return previous

    def snapshot(self) -> dict:
        return {
            'owner': self._owner,
            'minters': sorted(self._minters),
            'blacklist': sorted(self._blacklist),
        }
