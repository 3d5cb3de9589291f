"""
rate_limiter.py - Rolling Daily Mint Quota

Window policy: a rolling 24h window anchored at the first mint made after
the previous window expired. It is not aligned to calendar days, so two
mints straddling midnight still share one window.

    window_start = T0, minted = 0
    mint(a) at t < T0 + 24h   -> minted += a       (if minted + a <= limit)
    mint(b) at t >= T0 + 24h  -> window_start = t, minted = b

Reads (daily_minted, remaining) evaluate the window as of the read time, so a
read after expiry but before the next mint reports the full limit.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

from .core import (
    DAILY_MINT_LIMIT, MINT_WINDOW_SECONDS,
    DailyLimitExceeded, require_amount,
)


@dataclass(frozen=True, slots=True)
class MintWindow:
    """
    Snapshot of the quota window.

    Attributes:
        window_start: Logical time at which the window opened
        minted_in_window: Amount minted since window_start
        daily_limit: Quota per window
    """
    window_start: int
    minted_in_window: int
    daily_limit: int

    def expired(self, now: int, window_seconds: int = MINT_WINDOW_SECONDS) -> bool:
        return now >= self.window_start + window_seconds


class RateLimiter:
    """
    Daily mint quota.

    Example:
        limiter = RateLimiter(daily_limit=100, window_start=0)
        limiter.check_and_consume(60, now=10)
        limiter.remaining(now=20)        # 40
        limiter.remaining(now=86_400)    # 100, window elapsed
    """

    def __init__(
        self,
        daily_limit: int = DAILY_MINT_LIMIT,
        window_start: int = 0,
        window_seconds: int = MINT_WINDOW_SECONDS,
    ):
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {window_seconds}")
        self._window = MintWindow(
            window_start=window_start,
            minted_in_window=0,
            daily_limit=require_amount(daily_limit, "daily_limit"),
        )
        self.window_seconds = window_seconds

    @property
    def daily_limit(self) -> int:
        return self._window.daily_limit

    @property
    def window(self) -> MintWindow:
        """The stored window, as of the last successful mint."""
        return self._window

    def _effective(self, now: int) -> Tuple[int, int]:
        """(window_start, minted_in_window) as they stand at time now."""
        if self._window.expired(now, self.window_seconds):
            return now, 0
        return self._window.window_start, self._window.minted_in_window

    def daily_minted(self, now: int) -> int:
        return self._effective(now)[1]

    def remaining(self, now: int) -> int:
        return self._window.daily_limit - self.daily_minted(now)

    def check(self, amount: int, now: int) -> None:
        """
        Raise DailyLimitExceeded if amount cannot be minted at now.

        Does not modify the window.
        """
        require_amount(amount)
        _, minted = self._effective(now)
        if minted + amount > self._window.daily_limit:
            raise DailyLimitExceeded(
                f"Minting {amount} exceeds daily limit: "
                f"{minted} of {self._window.daily_limit} already minted in window"
            )

    def check_and_consume(self, amount: int, now: int) -> MintWindow:
        """
        Consume amount from the quota, resetting the window first if it elapsed.

        Nothing is committed when the check fails, including the reset.

        Returns:
            The window after consumption

        Raises:
            DailyLimitExceeded: If minted_in_window + amount > daily_limit
        """
        self.check(amount, now)
        start, minted = self._effective(now)
        self._window = MintWindow(
            window_start=start,
            minted_in_window=minted + amount,
            daily_limit=self._window.daily_limit,
        )
        return self._window
