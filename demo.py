#!/usr/bin/env python3
"""
demo.py - Interactive Walkthrough: Operate the Token Step by Step

This is a pedagogical demonstration of the token ledger. Each step builds on
the previous one and mirrors what an operator does against a live deployment.
Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Deployment      - Config from the environment, state report, signers
  4-7:   Core Mechanics  - Mint, transfer, approve/transfer_from, burn
  8-10:  Administration  - Pause, minter roles, blacklist
  11-12: Recovery        - Emergency mode, forced transfer
  13-14: Permits         - Off-ledger signatures, replay protection
  15:    Audit           - Event trail, supply proof, deployment record

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing

Environment:
    TOKEN_NAME, TOKEN_SYMBOL, INITIAL_SUPPLY, TOKEN_CHAIN_ID, TOKEN_ADDRESS
"""

from dataclasses import dataclass
from pathlib import Path
import json
import sys

from eth_keys import keys

from token_ledger import (
    Token, TokenConfig, TokenError, create_token,
    parse_units, format_units, sign_permit,
    EventType,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the walkthrough. Modify these to experiment."""
    # 2025-01-01T09:00:00Z
    start_time: int = 1_735_722_000

    # Development-network signer keys (never use outside a local node)
    deployer_key: str = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
    user1_key: str = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
    user2_key: str = "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a"

    # Amounts in whole tokens
    mint_amount: str = "1000"
    transfer_amount: str = "100"
    approve_amount: str = "50"
    burn_amount: str = "10"
    permit_amount: str = "25"

    deployment_file: str = "deployment-info.json"


CONFIG = DemoConfig()

# Global state for interactive mode
QUICK_MODE = "--quick" in sys.argv


@dataclass
class Signer:
    name: str
    key: keys.PrivateKey
    address: str


def load_signer(name: str, hex_key: str) -> Signer:
    key = keys.PrivateKey(bytes.fromhex(hex_key[2:]))
    return Signer(name, key, key.public_key.to_checksum_address())


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def show_state(token: Token, signer: Signer):
    """Print the token-state and signer reports."""
    info = token.describe()
    print(f"Name:                  {info['name']}")
    print(f"Symbol:                {info['symbol']}")
    print(f"Total supply:          {info['total_supply']}")
    print(f"Max supply:            {info['max_supply']}")
    print(f"Owner:                 {info['owner']}")
    print(f"Paused:                {info['paused']}")
    print(f"Emergency mode:        {info['emergency_mode']}")
    print(f"Daily minted:          {info['daily_minted']}")
    print(f"Remaining daily limit: {info['remaining_daily_limit']}")
    acct = token.account(signer.address)
    print(f"\n{signer.name} ({acct.address})")
    print(f"  balance:     {format_units(acct.balance)} {token.symbol}")
    print(f"  minter:      {acct.is_minter}")
    print(f"  blacklisted: {acct.is_blacklisted}")
    print(f"  nonce:       {acct.nonce}")


def attempt(description: str, call):
    """Run a call that is expected to be rejected and show the error."""
    print(f">>> {description}")
    try:
        call()
    except TokenError as exc:
        print(f"    -> rejected with {type(exc).__name__}")
        return exc
    print("    -> unexpectedly accepted")
    return None


# ============================================================================
# PHASE 1: DEPLOYMENT (Steps 1-3)
# ============================================================================

def step_01_deploy():
    """Deploy a token from environment configuration."""
    step_header(1, "Deployment",
        "Build a token from TOKEN_* environment variables.")

    config = TokenConfig.from_env()
    print(">>> config = TokenConfig.from_env()")
    for key, value in config.to_dict().items():
        print(f"    {key:18s} {value}")

    deployer = load_signer("deployer", CONFIG.deployer_key)
    print(f"\n>>> token = create_token(config, owner={deployer.address})")
    token = create_token(config, deployer.address, initial_time=CONFIG.start_time, verbose=True)

    section_header("Key Insight")
    print("""
    Deployment records three events: ownership to the deployer, the minter
    role for the deployer, and a Transfer from the zero address minting the
    initial supply. The initial mint does NOT count against the daily quota.
    """)
    return token, deployer


def step_02_state_report(token: Token, deployer: Signer):
    step_header(2, "State Report",
        "Read everything an operator checks before acting.")
    show_state(token, deployer)
    return token


def step_03_signers(token: Token):
    step_header(3, "Signers",
        "Meet the two user accounts used for the rest of the walkthrough.")
    user1 = load_signer("user1", CONFIG.user1_key)
    user2 = load_signer("user2", CONFIG.user2_key)
    for signer in (user1, user2):
        print(f"{signer.name}: {signer.address} balance={token.balance_of(signer.address)}")
    return user1, user2


# ============================================================================
# PHASE 2: CORE MECHANICS (Steps 4-7)
# ============================================================================

def step_04_mint(token: Token, deployer: Signer, user1: Signer):
    step_header(4, "Minting",
        "Create new supply within the cap and the rolling daily limit.")
    amount = parse_units(CONFIG.mint_amount)
    print(f">>> token.mint(deployer, user1, {CONFIG.mint_amount} tokens)")
    token.mint(deployer.address, user1.address, amount)
    print(f"\nDaily minted:    {format_units(token.daily_minted)}")
    print(f"Remaining today: {format_units(token.remaining_daily_limit)}")

    section_header("Rejection")
    attempt("token.mint(user1, user1, 1)  # user1 is not a minter",
            lambda: token.mint(user1.address, user1.address, 1))
    attempt("token.mint(deployer, user1, remaining + 1)",
            lambda: token.mint(deployer.address, user1.address, token.remaining_daily_limit + 1))
    return token


def step_05_transfer(token: Token, user1: Signer, user2: Signer):
    step_header(5, "Transfer",
        "Move tokens between holders; supply is unchanged.")
    before = token.total_supply
    token.transfer(user1.address, user2.address, parse_units(CONFIG.transfer_amount))
    print(f"user1: {format_units(token.balance_of(user1.address))}")
    print(f"user2: {format_units(token.balance_of(user2.address))}")
    assert token.total_supply == before
    attempt("token.transfer(user2, user1, 10**30)  # more than the balance",
            lambda: token.transfer(user2.address, user1.address, 10**30))
    return token


def step_06_approve(token: Token, user1: Signer, user2: Signer):
    step_header(6, "Approve and transfer_from",
        "Delegate spending and spend the allowance.")
    amount = parse_units(CONFIG.approve_amount)
    token.approve(user1.address, user2.address, amount)
    print(f"allowance(user1, user2) = {format_units(token.allowance(user1.address, user2.address))}")
    token.transfer_from(user2.address, user1.address, user2.address, amount)
    print(f"allowance after spend   = {format_units(token.allowance(user1.address, user2.address))}")
    return token


def step_07_burn(token: Token, user2: Signer):
    step_header(7, "Burn",
        "Destroy tokens; total supply falls by the same amount.")
    before = token.total_supply
    token.burn(user2.address, parse_units(CONFIG.burn_amount))
    print(f"total supply: {format_units(before)} -> {format_units(token.total_supply)}")
    return token


# ============================================================================
# PHASE 3: ADMINISTRATION (Steps 8-10)
# ============================================================================

def step_08_pause(token: Token, deployer: Signer, user1: Signer, user2: Signer):
    step_header(8, "Pause",
        "Freeze every balance-moving call with one switch.")
    token.pause(deployer.address)
    attempt("token.transfer(user1, user2, 1)",
            lambda: token.transfer(user1.address, user2.address, 1))
    attempt("token.pause(deployer)  # already paused",
            lambda: token.pause(deployer.address))
    token.unpause(deployer.address)
    token.transfer(user1.address, user2.address, 1)
    return token


def step_09_minters(token: Token, deployer: Signer, user1: Signer):
    step_header(9, "Minter Management",
        "Grant and revoke the minter role; repeats are harmless no-ops.")
    token.add_minter(deployer.address, user1.address)
    print(f">>> token.add_minter(deployer, user1) again -> {token.add_minter(deployer.address, user1.address)}")
    token.mint(user1.address, user1.address, 1)
    token.remove_minter(deployer.address, user1.address)
    print(f"user1 is minter: {token.is_minter(user1.address)}")
    return token


def step_10_blacklist(token: Token, deployer: Signer, user1: Signer, user2: Signer):
    step_header(10, "Blacklist",
        "Freeze a single account without pausing everyone.")
    token.blacklist(deployer.address, user2.address)
    attempt("token.transfer(user2, user1, 1)",
            lambda: token.transfer(user2.address, user1.address, 1))
    attempt("token.transfer(user1, user2, 1)",
            lambda: token.transfer(user1.address, user2.address, 1))
    token.unblacklist(deployer.address, user2.address)
    token.transfer(user2.address, user1.address, 1)
    return token


# ============================================================================
# PHASE 4: RECOVERY (Steps 11-12)
# ============================================================================

def step_11_emergency_mode(token: Token, deployer: Signer):
    step_header(11, "Emergency Mode",
        "Enable forced transfers for incident response.")
    attempt("token.emergency_transfer(...)  # emergency mode is off",
            lambda: token.emergency_transfer(deployer.address, deployer.address, deployer.address, 1))
    token.activate_emergency_mode(deployer.address)
    return token


def step_12_emergency_transfer(token: Token, deployer: Signer, user1: Signer, user2: Signer):
    step_header(12, "Emergency Transfer",
        "Move funds out of a frozen account while the token is paused.")
    token.pause(deployer.address)
    token.blacklist(deployer.address, user1.address)
    balance = token.balance_of(user1.address)
    token.emergency_transfer(deployer.address, user1.address, user2.address, balance)
    print(f"user1: {format_units(token.balance_of(user1.address))}")
    print(f"user2: {format_units(token.balance_of(user2.address))}")

    token.unblacklist(deployer.address, user1.address)
    token.deactivate_emergency_mode(deployer.address)
    token.unpause(deployer.address)
    return token


# ============================================================================
# PHASE 5: PERMITS (Steps 13-14)
# ============================================================================

def step_13_permit(token: Token, deployer: Signer, user1: Signer, user2: Signer):
    step_header(13, "Permit",
        "Approve with an off-ledger signature that anyone can submit.")
    value = parse_units(CONFIG.permit_amount)
    deadline = token.current_time + 3600
    nonce = token.nonces(user2.address)
    signature = sign_permit(user2.key, token.domain, user2.address, user1.address,
                            value, nonce, deadline)
    print(f"domain separator: 0x{token.domain_separator.hex()}")
    print(f"signature:        0x{signature.to_bytes().hex()}")

    print("\n>>> deployer relays the permit")
    token.permit(deployer.address, user2.address, user1.address, value, deadline,
                 signature.v, signature.r, signature.s)
    print(f"allowance(user2, user1) = {format_units(token.allowance(user2.address, user1.address))}")
    print(f"nonce(user2)            = {token.nonces(user2.address)}")
    return token, (value, deadline, signature)


def step_14_replay(token: Token, deployer: Signer, user1: Signer, user2: Signer, permit):
    step_header(14, "Replay Protection",
        "A consumed signature can never be used again.")
    value, deadline, signature = permit
    attempt("token.permit(...)  # same signature again",
            lambda: token.permit(deployer.address, user2.address, user1.address, value,
                                 deadline, signature.v, signature.r, signature.s))
    token.advance_time(deadline + 1)
    late = sign_permit(user2.key, token.domain, user2.address, user1.address,
                       value, token.nonces(user2.address), deadline)
    attempt("token.permit(...)  # after the deadline",
            lambda: token.permit(deployer.address, user2.address, user1.address, value,
                                 deadline, late.v, late.r, late.s))
    return token


# ============================================================================
# PHASE 6: AUDIT (Step 15)
# ============================================================================

def step_15_audit(token: Token, deployer: Signer):
    step_header(15, "Audit",
        "Prove supply conservation and save the deployment record.")
    token.verbose = False
    for event_type in EventType:
        count = len(token.events(event_type))
        if count:
            print(f"{event_type.value:28s} {count}")

    result = token.verify_supply()
    print(f"\ntotal_supply == sum(balances): {result['valid']} "
          f"(discrepancy {result['discrepancy']})")

    path = Path(CONFIG.deployment_file)
    path.write_text(json.dumps(token.deployment_info(), indent=2))
    print(f"\nDeployment record written to {path}")

    section_header("Final State")
    show_state(token, deployer)
    return token


def main():
    """Run the complete walkthrough."""
    print("=" * 70)
    print("       TOKEN LEDGER - INTERACTIVE WALKTHROUGH")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")

    wait_for_enter()

    token, deployer = step_01_deploy()
    wait_for_enter()
    step_02_state_report(token, deployer)
    wait_for_enter()
    user1, user2 = step_03_signers(token)
    wait_for_enter()

    step_04_mint(token, deployer, user1)
    wait_for_enter()
    step_05_transfer(token, user1, user2)
    wait_for_enter()
    step_06_approve(token, user1, user2)
    wait_for_enter()
    step_07_burn(token, user2)
    wait_for_enter()

    step_08_pause(token, deployer, user1, user2)
    wait_for_enter()
    step_09_minters(token, deployer, user1)
    wait_for_enter()
    step_10_blacklist(token, deployer, user1, user2)
    wait_for_enter()

    step_11_emergency_mode(token, deployer)
    wait_for_enter()
    step_12_emergency_transfer(token, deployer, user1, user2)
    wait_for_enter()

    token, permit = step_13_permit(token, deployer, user1, user2)
    wait_for_enter()
    step_14_replay(token, deployer, user1, user2, permit)
    wait_for_enter()

    step_15_audit(token, deployer)

    print("\n" + "=" * 70)
    print("       WALKTHROUGH COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See token_ledger/token.py for the dispatch pipeline
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
