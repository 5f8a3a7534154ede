"""
tax_policy.py - Transfer tax computation

Pure functions: given a gross amount, the active PolicySnapshot and the
flags of both parties, compute how much reaches the recipient and how the
tax is divided between the wealth fund and the charity fund.

All arithmetic is integer with floor division. Python ints are
arbitrary precision, so amount * bps is exact at any size.
"""

from __future__ import annotations

from .core import (
    AccountFlags, PolicySnapshot, TaxSplit,
    BPS_DENOMINATOR,
    validate_amount,
)


def is_taxed(snapshot: PolicySnapshot, from_flags: AccountFlags, to_flags: AccountFlags) -> bool:
    """Return True if a transfer between these parties pays tax under snapshot."""
    if snapshot.transfer_tax_bps == 0:
        return False
    return not (from_flags.fee_exempt or to_flags.fee_exempt)


def split_tax(tax: int, snapshot: PolicySnapshot) -> tuple:
    """
    Divide tax into (wealth_cut, charity_cut).

    The wealth share is floored; charity takes the remainder so the two
    cuts always add up to tax exactly.
    """
    validate_amount(tax, "tax")
    wealth_cut = tax * snapshot.wealth_share_bps // BPS_DENOMINATOR
    return wealth_cut, tax - wealth_cut


def compute_tax(
    amount: int,
    snapshot: PolicySnapshot,
    from_flags: AccountFlags,
    to_flags: AccountFlags,
) -> TaxSplit:
    """
    Compute the principal and the two tax cuts for a transfer.

    Args:
        amount: Gross transfer amount
        snapshot: Active policy
        from_flags: Sender's flags
        to_flags: Recipient's flags

    Returns:
        TaxSplit with principal + wealth_cut + charity_cut == amount

    Example:
        snapshot = PolicySnapshot(transfer_tax_bps=500,
                                  wealth_share_bps=6000, charity_share_bps=4000)
        compute_tax(1000, snapshot, AccountFlags(), AccountFlags())
        # TaxSplit(principal=950, wealth_cut=30, charity_cut=20)
    """
    validate_amount(amount)
    if not is_taxed(snapshot, from_flags, to_flags):
        return TaxSplit(principal=amount)

    tax = amount * snapshot.transfer_tax_bps // BPS_DENOMINATOR
    wealth_cut, charity_cut = split_tax(tax, snapshot)
    return TaxSplit(
        principal=amount - tax,
        wealth_cut=wealth_cut,
        charity_cut=charity_cut,
    )
