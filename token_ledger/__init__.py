"""
token_ledger - Fungible Token Ledger

An in-memory fungible token with signature-based approvals (EIP-2612 permits),
role-gated minting under a supply cap and a rolling daily quota, address
blacklisting, pause and emergency controls.

Usage:
    from token_ledger import Token, parse_units, sign_permit

    token = Token("GenericToken", "MYGT", owner, initial_supply=parse_units("1000000"))

    # Ordinary transfers
    token.transfer(owner, alice, parse_units("100"))

    # Minting (owner is a minter from construction)
    token.add_minter(owner, bob)
    token.mint(bob, alice, parse_units("50"))

    # Gasless approval: alice signs, anyone submits
    sig = sign_permit(alice_key, token.domain, alice, carol,
                      parse_units("10"), token.nonces(alice), deadline)
    token.permit(relayer, alice, carol, parse_units("10"), deadline, sig.v, sig.r, sig.s)
"""

# Core types
from .core import (
    TokenEvent,
    Account,
    EventType,
    Capability,
    TokenError,
    Unauthorized,
    ContractPaused,
    AddressBlacklisted,
    ZeroAddress,
    InsufficientBalance,
    InsufficientAllowance,
    SupplyCapExceeded,
    DailyLimitExceeded,
    PermitExpired,
    InvalidSignature,
    AlreadyPaused,
    AlreadyUnpaused,
    AlreadyInEmergencyMode,
    NotInEmergencyMode,
    InvalidAddress,
    InvalidAmount,
    normalize_address,
    is_zero_address,
    require_amount,
    capabilities_for,
    parse_units,
    format_units,
    DECIMALS,
    ONE_TOKEN,
    MAX_UINT256,
    MAX_SUPPLY,
    DAILY_MINT_LIMIT,
    MINT_WINDOW_SECONDS,
    ZERO_ADDRESS,
    PERMIT_VERSION,
    DEFAULT_CHAIN_ID,
    DEFAULT_TOKEN_ADDRESS,
)

# Components
from .ledger import Ledger
from .access import AccessRegistry
from .rate_limiter import RateLimiter, MintWindow
from .gate import OperationalGate
from .permit import (
    PermitDomain,
    PermitSignature,
    PermitAuthorizer,
    domain_separator,
    permit_struct_hash,
    permit_digest,
    recover_signer,
    sign_permit,
    EIP712_DOMAIN_TYPEHASH,
    PERMIT_TYPEHASH,
)

# Engine
from .token import Token, REQUIRED_CAPABILITY, PAUSABLE_OPERATIONS

# Configuration
from .config import TokenConfig, ConfigError, create_token


__all__ = [
    # Core
    'TokenEvent', 'Account', 'EventType', 'Capability',
    'TokenError', 'Unauthorized', 'ContractPaused', 'AddressBlacklisted', 'ZeroAddress',
    'InsufficientBalance', 'InsufficientAllowance', 'SupplyCapExceeded',
    'DailyLimitExceeded', 'PermitExpired', 'InvalidSignature',
    'AlreadyPaused', 'AlreadyUnpaused', 'AlreadyInEmergencyMode', 'NotInEmergencyMode',
    'InvalidAddress', 'InvalidAmount',
    'normalize_address', 'is_zero_address', 'require_amount', 'capabilities_for',
    'parse_units', 'format_units',
    'DECIMALS', 'ONE_TOKEN', 'MAX_UINT256', 'MAX_SUPPLY', 'DAILY_MINT_LIMIT',
    'MINT_WINDOW_SECONDS', 'ZERO_ADDRESS', 'PERMIT_VERSION', 'DEFAULT_CHAIN_ID',
    'DEFAULT_TOKEN_ADDRESS',
    # Components
    'Ledger', 'AccessRegistry', 'RateLimiter', 'MintWindow', 'OperationalGate',
    # Permits
    'PermitDomain', 'PermitSignature', 'PermitAuthorizer',
    'domain_separator', 'permit_struct_hash', 'permit_digest',
    'recover_signer', 'sign_permit',
    'EIP712_DOMAIN_TYPEHASH', 'PERMIT_TYPEHASH',
    # Engine
    'Token', 'REQUIRED_CAPABILITY', 'PAUSABLE_OPERATIONS',
    # Configuration
    'TokenConfig', 'ConfigError', 'create_token',
]

__version__ = '1.0.0'
