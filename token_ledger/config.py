"""
config.py - Token Deployment Configuration

Deployment parameters come from keyword arguments or from the environment:

    TOKEN_NAME       token name                  (default: GenericToken)
    TOKEN_SYMBOL     ticker symbol               (default: MYGT)
    INITIAL_SUPPLY   whole tokens minted at start (default: 1000000)
    TOKEN_CHAIN_ID   chain id bound into permits  (default: 31337)
    TOKEN_ADDRESS    token address for permits    (default: first dev-node deployment)

Amounts in the environment are human units ("1000000", "0.5") and are
converted to base units with parse_units.
"""

from __future__ import annotations
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional
import os

from .core import (
    DAILY_MINT_LIMIT, DECIMALS, DEFAULT_CHAIN_ID, DEFAULT_TOKEN_ADDRESS,
    MAX_SUPPLY, ONE_TOKEN,
    InvalidAddress, InvalidAmount,
    normalize_address, parse_units,
)
from .token import Token


DEFAULT_NAME = "GenericToken"
DEFAULT_SYMBOL = "MYGT"
DEFAULT_INITIAL_SUPPLY = 1_000_000 * ONE_TOKEN


class ConfigError(ValueError):
    """Raised when a configuration value is missing or cannot be coerced."""
    pass


@dataclass(frozen=True, slots=True)
class TokenConfig:
    """
    Immutable deployment parameters of one token.

    All amounts are in base units.
    """
    name: str = DEFAULT_NAME
    symbol: str = DEFAULT_SYMBOL
    initial_supply: int = DEFAULT_INITIAL_SUPPLY
    max_supply: int = MAX_SUPPLY
    daily_mint_limit: int = DAILY_MINT_LIMIT
    chain_id: int = DEFAULT_CHAIN_ID
    contract_address: str = DEFAULT_TOKEN_ADDRESS

    def __post_init__(self):
        if not self.name.strip():
            raise ConfigError("Token name cannot be empty")
        if not self.symbol.strip():
            raise ConfigError("Token symbol cannot be empty")
        if self.initial_supply > self.max_supply:
            raise ConfigError(
                f"Initial supply {self.initial_supply} exceeds max supply {self.max_supply}"
            )
        if self.chain_id <= 0:
            raise ConfigError(f"Chain id must be positive, got {self.chain_id}")
        try:
            object.__setattr__(self, 'contract_address', normalize_address(self.contract_address))
        except InvalidAddress as exc:
            raise ConfigError(str(exc)) from exc

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> TokenConfig:
        """
        Build a config from environment variables, falling back to defaults.

        Args:
            environ: Mapping to read instead of os.environ (for tests)

        Raises:
            ConfigError: If a variable is set but cannot be coerced
        """
        env = os.environ if environ is None else environ
        kwargs: Dict[str, Any] = {}
        if env.get('TOKEN_NAME'):
            kwargs['name'] = env['TOKEN_NAME']
        if env.get('TOKEN_SYMBOL'):
            kwargs['symbol'] = env['TOKEN_SYMBOL']
        if env.get('INITIAL_SUPPLY'):
            try:
                kwargs['initial_supply'] = parse_units(env['INITIAL_SUPPLY'], DECIMALS)
            except InvalidAmount as exc:
                raise ConfigError(f"INITIAL_SUPPLY: {exc}") from exc
        if env.get('TOKEN_CHAIN_ID'):
            try:
                kwargs['chain_id'] = int(env['TOKEN_CHAIN_ID'])
            except ValueError:
                raise ConfigError(
                    f"TOKEN_CHAIN_ID must be an integer, got {env['TOKEN_CHAIN_ID']!r}"
                ) from None
        if env.get('TOKEN_ADDRESS'):
            kwargs['contract_address'] = env['TOKEN_ADDRESS']
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def create_token(config: TokenConfig, owner: str, **kwargs) -> Token:
    """
    Deploy a Token from a config.

    Extra keyword arguments (initial_holder, initial_time, verbose) are passed
    through to Token.
    """
    return Token(
        name=config.name,
        symbol=config.symbol,
        owner=owner,
        initial_supply=config.initial_supply,
        address=config.contract_address,
        chain_id=config.chain_id,
        max_supply=config.max_supply,
        daily_mint_limit=config.daily_mint_limit,
        **kwargs,
    )
