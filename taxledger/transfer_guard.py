"""
transfer_guard.py - Trading gate and ceiling rules

Pure validation functions in the style of a transfer rule: each one
returns None when the transfer is allowed and raises a
TransferRuleViolation subclass when it is not.

The per-transaction ceiling is checked against the gross amount. The
per-wallet ceiling is checked against the balance the recipient would hold
after receiving only the principal.
"""

from __future__ import annotations

from .core import (
    AccountFlags, AccountId, PolicySnapshot,
    TradingDisabled, MaxTxExceeded, MaxWalletExceeded,
)


def either_limit_exempt(from_flags: AccountFlags, to_flags: AccountFlags) -> bool:
    return from_flags.limit_exempt or to_flags.limit_exempt


def check_trading_gate(
    sender: AccountId,
    recipient: AccountId,
    snapshot: PolicySnapshot,
    from_flags: AccountFlags,
    to_flags: AccountFlags,
) -> None:
    """
    Raises:
        TradingDisabled: If trading is off and neither party is limit-exempt
    """
    if snapshot.trading_enabled:
        return
    if not either_limit_exempt(from_flags, to_flags):
        raise TradingDisabled(sender, recipient)


def check_max_tx(
    amount: int,
    snapshot: PolicySnapshot,
    from_flags: AccountFlags,
    to_flags: AccountFlags,
) -> None:
    """
    Raises:
        MaxTxExceeded: If a ceiling is set, neither party is limit-exempt
                       and amount is above it
    """
    if snapshot.max_tx_amount == 0 or either_limit_exempt(from_flags, to_flags):
        return
    if amount > snapshot.max_tx_amount:
        raise MaxTxExceeded(amount, snapshot.max_tx_amount)


def check_max_wallet(
    recipient: AccountId,
    to_balance_after_principal: int,
    snapshot: PolicySnapshot,
    to_flags: AccountFlags,
) -> None:
    """
    Raises:
        MaxWalletExceeded: If a ceiling is set, the recipient is not
                           limit-exempt and its projected balance is above it
    """
    if snapshot.max_wallet_amount == 0 or to_flags.limit_exempt:
        return
    if to_balance_after_principal > snapshot.max_wallet_amount:
        raise MaxWalletExceeded(recipient, to_balance_after_principal, snapshot.max_wallet_amount)


def validate_transfer(
    sender: AccountId,
    recipient: AccountId,
    amount: int,
    snapshot: PolicySnapshot,
    from_flags: AccountFlags,
    to_flags: AccountFlags,
    to_balance_after_principal: int,
) -> None:
    """Run the trading gate, the transaction ceiling and the wallet ceiling in order."""
    check_trading_gate(sender, recipient, snapshot, from_flags, to_flags)
    check_max_tx(amount, snapshot, from_flags, to_flags)
    check_max_wallet(recipient, to_balance_after_principal, snapshot, to_flags)
