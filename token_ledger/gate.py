"""
gate.py - Pause and Emergency-Mode Flags

Two independent flags; both may be set at once. Toggling a flag into the
state it already has is an error so operator mistakes surface instead of
passing silently.

    paused         : ledger-mutating calls rejected with ContractPaused
    emergency_mode : emergency_transfer available (regardless of paused)

Ownership of the toggles is enforced by the Token dispatch layer.
"""

from __future__ import annotations
from typing import Dict

from .core import (
    AlreadyInEmergencyMode, AlreadyPaused, AlreadyUnpaused,
    ContractPaused, NotInEmergencyMode,
)


class OperationalGate:
    def __init__(self, paused: bool = False, emergency_mode: bool = False):
        self._paused = paused
        self._emergency_mode = emergency_mode

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def emergency_mode(self) -> bool:
        return self._emergency_mode

    # ========================================================================
    # DISPATCH CHECKS
    # ========================================================================

    def require_not_paused(self) -> None:
        if self._paused:
            raise ContractPaused("Token is paused")

    def require_emergency_mode(self) -> None:
        if not self._emergency_mode:
            raise NotInEmergencyMode("Emergency mode is not active")

    # ========================================================================
    # TOGGLES
    # ========================================================================

    def pause(self) -> None:
        if self._paused:
            raise AlreadyPaused("Token is already paused")
        self._paused = True

    def unpause(self) -> None:
        if not self._paused:
            raise AlreadyUnpaused("Token is not paused")
        self._paused = False

    def activate_emergency_mode(self) -> None:
        if self._emergency_mode:
            raise AlreadyInEmergencyMode("Emergency mode is already active")
        self._emergency_mode = True

    def deactivate_emergency_mode(self) -> None:
        self.require_emergency_mode()
        self._emergency_mode = False

    def snapshot(self) -> Dict[str, bool]:
        return {'paused': self._paused, 'emergency_mode': self._emergency_mode}
