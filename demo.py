#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Taxed Transfers Step by Step

A walk through the taxed-transfer ledger. Each step builds on the
previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3: Foundation  - The token, the initial mint, the policy
  4-6: Transfers   - Launch, taxed transfers, rejections
  7-8: Guarantees  - Atomicity, conservation and the audit trail

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import sys

from taxledger import (
    TaxToken, TransferError,
    TradingDisabled, MaxWalletExceeded, InsufficientBalance,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    total_supply: int = 1_000_000
    transfer_tax_bps: int = 500      # 5%
    wealth_share_bps: int = 6_000    # 60% of the tax
    charity_share_bps: int = 4_000   # 40% of the tax
    max_wallet_amount: int = 50_000

    alice_initial: int = 20_000
    bob_initial: int = 950


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def show_balances(token: TaxToken, *accounts: str):
    for account in accounts:
        print(f"  {account:<10} {token.balance_of(account):>12,}")


PARTIES = ("owner", "alice", "bob", "wealth", "charity")


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_create_token():
    """Create the token; the whole supply is minted to the owner."""
    step_header(1, "The Token",
        "A fixed supply is minted once, to the owner, through the mint path.")

    print(">>> token = TaxToken('Giving', 'GIV', owner='owner', total_supply=1_000_000,")
    print("...                  wealth_fund='wealth', charity_fund='charity', ...)")
    token = TaxToken(
        "Giving", "GIV",
        owner="owner",
        total_supply=CONFIG.total_supply,
        wealth_fund="wealth",
        charity_fund="charity",
        transfer_tax_bps=CONFIG.transfer_tax_bps,
        wealth_share_bps=CONFIG.wealth_share_bps,
        charity_share_bps=CONFIG.charity_share_bps,
        max_wallet_amount=CONFIG.max_wallet_amount,
    )

    section_header("Initial State")
    print(f"Total supply: {token.total_supply():,}")
    show_balances(token, *PARTIES)
    print(f"\nHistory: {token.orchestrator.history}")

    section_header("Key Insight")
    print("""
    The mint is a transfer from the null account (None). It never sees the
    trading gate, the ceilings or the tax. After launch nothing can mint.
    """)
    return token


def step_02_policy(token: TaxToken):
    """Inspect the policy snapshot and default exemptions."""
    step_header(2, "The Policy",
        "Policy is an immutable snapshot the orchestrator reads once per transfer.")

    print(">>> token.policy.get_policy_snapshot()")
    print(token.policy.get_policy_snapshot())

    section_header("Default Exemptions")
    for account in PARTIES:
        print(f"  {account:<10} {token.policy.get_account_flags(account)}")

    print("""
    The owner and both funds start fee-exempt and limit-exempt, so the owner
    can distribute before trading opens and the funds pay no tax onward.
    """)
    return token


def step_03_distribute(token: TaxToken):
    """Distribute tokens before launch."""
    step_header(3, "Distribution Before Launch",
        "Trading is off, but the owner is limit-exempt and fee-exempt.")

    print(f">>> token.transfer('owner', 'alice', {CONFIG.alice_initial:,})")
    token.transfer("owner", "alice", CONFIG.alice_initial)
    print(f">>> token.transfer('owner', 'bob', {CONFIG.bob_initial:,})")
    token.transfer("owner", "bob", CONFIG.bob_initial)
    show_balances(token, *PARTIES)

    section_header("Peer Transfer Before Launch")
    try:
        token.transfer("alice", "bob", 100)
    except TradingDisabled as e:
        print(f"REJECTED: {type(e).__name__}: {e}")
    return token


# ============================================================================
# PHASE 2: TRANSFERS (Steps 4-6)
# ============================================================================

def step_04_launch(token: TaxToken):
    """Open trading and send a taxed transfer."""
    step_header(4, "Launch and the First Taxed Transfer",
        "5% of a transfer is split 60/40 between the wealth and charity funds.")

    print(">>> token.policy.set_trading_enabled('owner', True)")
    token.policy.set_trading_enabled("owner", True)

    print(">>> record = token.transfer('alice', 'bob', 1_000)")
    record = token.transfer("alice", "bob", 1_000)
    print(record)
    show_balances(token, *PARTIES)

    section_header("Key Insight")
    print("""
    tax        = floor(1000 * 500 / 10000)  = 50
    wealth_cut = floor(50 * 6000 / 10000)   = 30
    charity    = 50 - 30                    = 20
    principal  = 1000 - 50                  = 950
    """)
    return token


def step_05_wallet_ceiling(token: TaxToken):
    """See the wallet ceiling reject a transfer."""
    step_header(5, "The Wallet Ceiling",
        "The recipient's balance plus the principal must stay under max_wallet_amount.")

    amount = CONFIG.max_wallet_amount
    print(f">>> token.transfer('owner', 'bob', {amount:,})")
    try:
        token.transfer("owner", "bob", amount)
    except MaxWalletExceeded as e:
        print(f"REJECTED: {type(e).__name__}: {e}")
    show_balances(token, "owner", "bob")
    return token


def step_06_allowance(token: TaxToken):
    """Spend on someone else's behalf."""
    step_header(6, "Allowances",
        "A spender moves tokens for an owner; the allowance is charged the gross amount.")

    print(">>> token.approve('alice', 'router', 5_000)")
    token.approve("alice", "router", 5_000)
    print(">>> token.transfer_from('router', 'alice', 'bob', 2_000)")
    token.transfer_from("router", "alice", "bob", 2_000)
    print(f"Remaining allowance: {token.allowance('alice', 'router'):,}")
    show_balances(token, *PARTIES)
    return token


# ============================================================================
# PHASE 3: GUARANTEES (Steps 7-8)
# ============================================================================

def step_07_atomicity(token: TaxToken):
    """A failing late leg leaves nothing behind."""
    step_header(7, "Atomicity",
        "Tax legs settle first; if the principal fails, they are undone with it.")

    bob = token.balance_of("bob")
    before = {account: token.balance_of(account) for account in PARTIES}
    print(f">>> token.transfer('bob', 'alice', {bob + 1:,})   # one more than bob holds")
    try:
        token.transfer("bob", "alice", bob + 1)
    except InsufficientBalance as e:
        print(f"REJECTED: {type(e).__name__}: {e}")

    after = {account: token.balance_of(account) for account in PARTIES}
    print(f"Balances unchanged: {before == after}")
    return token


def step_08_conservation(token: TaxToken):
    """Prove the supply never moved and show the audit trail."""
    step_header(8, "Conservation and the Audit Trail",
        "Sum of balances equals total supply, always.")

    result = token.ledger.verify_conservation(expected_supply=CONFIG.total_supply)
    print(f"verify_conservation: {result}")

    section_header("Journal")
    for posting in token.ledger.journal:
        print(f"  {posting!r}")

    section_header("Events")
    for event in token.events.events:
        print(f"  {event!r}")
    return token


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       TAXED TRANSFER LEDGER - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")

    wait_for_enter()

    token = step_01_create_token()
    wait_for_enter()
    for step in (step_02_policy, step_03_distribute, step_04_launch,
                 step_05_wallet_ceiling, step_06_allowance, step_07_atomicity,
                 step_08_conservation):
        try:
            token = step(token)
        except TransferError as e:
            print(f"\nUnexpected rejection in {step.__name__}: {e}")
            raise
        wait_for_enter()

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
