"""
Core types and pure functions for the taxed-transfer ledger.

This module provides the foundational data structures and protocols:
1. Protocols: PolicySource for read-only access to the active policy
2. Immutable data structures: AccountFlags, PolicySnapshot, TransferRequest,
   TaxSplit, TransferRecord
3. Exceptions: LedgerError and domain-specific error types
4. Constants: basis point denominator, balance bounds

Nothing in this module mutates ledger state.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# 10000 basis points = 100%.
BPS_DENOMINATOR = 10_000

# Upper bound for the transfer tax rate (5%).
MAX_TRANSFER_TAX_BPS = 500

# Largest representable balance (unsigned 256-bit word).
MAX_BALANCE = 2 ** 256 - 1

# Account identifier. The null account is None, never a reserved string.
AccountId = str


def is_amount(value: Any) -> bool:
    """Return True for non-negative ints (bools are rejected)."""
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def validate_amount(value: Any, what: str = "amount") -> int:
    """Return value unchanged, or raise ValueError if it is not an unsigned int."""
    if not is_amount(value):
        raise ValueError(f"{what} must be a non-negative int, got {value!r}")
    return value


def validate_account(account: Any, what: str = "account") -> None:
    """Raise InvalidAccount unless account is a non-empty string."""
    if account is None:
        raise InvalidAccount(f"{what} cannot be the null account", account=account)
    if not isinstance(account, str) or not account.strip():
        raise InvalidAccount(f"{what} must be a non-empty string, got {account!r}", account=account)


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class TransferError(LedgerError):
    """Base exception for a rejected transfer request."""
    pass


class InvalidAccount(TransferError):
    """Raised when the null account (or a malformed id) is used where a real account is required."""

    def __init__(self, message: str, account: Any = None):
        super().__init__(message)
        self.account = account


class InsufficientBalance(TransferError):
    """Raised when a debit would take an account balance below zero."""

    def __init__(self, account: Optional[AccountId], balance: int, amount: int):
        super().__init__(f"{account}: balance {balance} < {amount}")
        self.account = account
        self.balance = balance
        self.amount = amount


class BalanceOverflow(TransferError):
    """Raised when a credit would push a balance (or the total supply) past the representable range."""

    def __init__(self, account: Optional[AccountId], balance: int, amount: int, limit: int):
        super().__init__(f"{account}: {balance} + {amount} exceeds max {limit}")
        self.account = account
        self.balance = balance
        self.amount = amount
        self.limit = limit


class TransferRuleViolation(TransferError):
    """Base class for trading-gate and ceiling rule failures."""
    pass


class TradingDisabled(TransferRuleViolation):
    """Raised when trading is off and neither party is limit-exempt."""

    def __init__(self, sender: AccountId, recipient: AccountId):
        super().__init__(f"trading disabled: {sender} -> {recipient}")
        self.sender = sender
        self.recipient = recipient


class MaxTxExceeded(TransferRuleViolation):
    """Raised when a transfer amount is above the per-transaction ceiling."""

    def __init__(self, amount: int, limit: int):
        super().__init__(f"amount {amount} > max tx {limit}")
        self.amount = amount
        self.limit = limit


class MaxWalletExceeded(TransferRuleViolation):
    """Raised when the recipient would hold more than the per-wallet ceiling."""

    def __init__(self, account: AccountId, projected: int, limit: int):
        super().__init__(f"{account}: projected balance {projected} > max wallet {limit}")
        self.account = account
        self.projected = projected
        self.limit = limit


class InsufficientAllowance(TransferError):
    """Raised when a spender tries to move more than it was approved for."""

    def __init__(self, owner: AccountId, spender: AccountId, allowance: int, amount: int):
        super().__init__(f"{spender} allowance from {owner}: {allowance} < {amount}")
        self.owner = owner
        self.spender = spender
        self.allowance = allowance
        self.amount = amount


class NotOwner(LedgerError):
    """Raised when a policy setter is called by anyone but the current owner."""

    def __init__(self, caller: Optional[AccountId], owner: Optional[AccountId]):
        super().__init__(f"{caller} is not the owner ({owner})")
        self.caller = caller
        self.owner = owner


# ============================================================================
# ENUMS
# ============================================================================

class TransferState(Enum):
    """
    Progress of a transfer request through the orchestrator.

    VALIDATING -> TAX_SPLITTING -> SETTLING -> COMMITTED, or REJECTED from any
    non-terminal state.
    """
    IDLE = "idle"
    VALIDATING = "validating"
    TAX_SPLITTING = "tax_splitting"
    SETTLING = "settling"
    COMMITTED = "committed"
    REJECTED = "rejected"


class TransferKind(Enum):
    """Which path a committed request took."""
    TRANSFER = "transfer"
    MINT = "mint"
    BURN = "burn"


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class AccountFlags:
    """
    Per-account policy flags.

    Attributes:
        fee_exempt: Suppresses tax when the account is either party.
        limit_exempt: Suppresses the trading gate and ceilings when the
                      account is either party (the wallet ceiling only
                      looks at the recipient).
    """
    fee_exempt: bool = False
    limit_exempt: bool = False


NO_FLAGS = AccountFlags()


@dataclass(frozen=True, slots=True)
class PolicySnapshot:
    """
    Immutable view of the trading, tax and limit configuration.

    Taken once at the start of every transfer and held fixed for its
    duration. All fields are validated in __post_init__.

    Attributes:
        trading_enabled: When False only limit-exempt parties may transfer.
        max_tx_amount: Per-transaction ceiling on the gross amount (0 = unlimited).
        max_wallet_amount: Ceiling on the recipient's post-transfer balance (0 = unlimited).
        transfer_tax_bps: Tax rate in basis points, 0..MAX_TRANSFER_TAX_BPS.
        wealth_share_bps: Share of the tax routed to the wealth fund.
        charity_share_bps: Share of the tax routed to the charity fund.
        wealth_fund: Account receiving the wealth share.
        charity_fund: Account receiving the charity share.
    """
    trading_enabled: bool = True
    max_tx_amount: int = 0
    max_wallet_amount: int = 0
    transfer_tax_bps: int = 0
    wealth_share_bps: int = 5_000
    charity_share_bps: int = 5_000
    wealth_fund: Optional[AccountId] = None
    charity_fund: Optional[AccountId] = None

    def __post_init__(self):
        if not isinstance(self.trading_enabled, bool):
            raise ValueError(f"trading_enabled must be bool, got {self.trading_enabled!r}")
        validate_amount(self.max_tx_amount, "max_tx_amount")
        validate_amount(self.max_wallet_amount, "max_wallet_amount")
        validate_amount(self.transfer_tax_bps, "transfer_tax_bps")
        validate_amount(self.wealth_share_bps, "wealth_share_bps")
        validate_amount(self.charity_share_bps, "charity_share_bps")
        if self.transfer_tax_bps > MAX_TRANSFER_TAX_BPS:
            raise ValueError(
                f"transfer_tax_bps must be <= {MAX_TRANSFER_TAX_BPS}, got {self.transfer_tax_bps}"
            )
        if self.wealth_share_bps + self.charity_share_bps != BPS_DENOMINATOR:
            raise ValueError(
                f"tax shares must sum to {BPS_DENOMINATOR}, got "
                f"{self.wealth_share_bps} + {self.charity_share_bps}"
            )


@dataclass(frozen=True, slots=True)
class TransferRequest:
    """
    A request to move `amount` from `sender` to `recipient`.

    Either side may be None (the null account), which selects the mint or
    burn path. The amount may be zero.
    """
    sender: Optional[AccountId]
    recipient: Optional[AccountId]
    amount: int

    def __post_init__(self):
        validate_amount(self.amount)

    @property
    def is_mint(self) -> bool:
        return self.sender is None and self.recipient is not None

    @property
    def is_burn(self) -> bool:
        return self.recipient is None and self.sender is not None

    def __repr__(self) -> str:
        return f"TransferRequest({self.amount}: {self.sender}→{self.recipient})"


@dataclass(frozen=True, slots=True)
class TaxSplit:
    """
    Result of the tax computation for one transfer.

    principal + wealth_cut + charity_cut always equals the gross amount.
    """
    principal: int
    wealth_cut: int = 0
    charity_cut: int = 0

    @property
    def tax(self) -> int:
        return self.wealth_cut + self.charity_cut

    @property
    def gross(self) -> int:
        return self.principal + self.tax


@dataclass(frozen=True, slots=True)
class TransferRecord:
    """
    Executed, immutable record of one committed request.

    Attributes:
        sequence: Monotonic position in the orchestrator's history.
        kind: TRANSFER, MINT or BURN.
        sender: Debited account (None for mint).
        recipient: Credited account (None for burn).
        amount: Gross amount requested.
        split: How the gross amount was distributed.
    """
    sequence: int
    kind: TransferKind
    sender: Optional[AccountId]
    recipient: Optional[AccountId]
    amount: int
    split: Optional[TaxSplit] = None

    def __post_init__(self):
        if self.split is None:
            object.__setattr__(self, 'split', TaxSplit(principal=self.amount))

    def __repr__(self) -> str:
        return (
            f"TransferRecord(#{self.sequence} {self.kind.value} {self.amount}: "
            f"{self.sender}→{self.recipient}, principal={self.split.principal}, "
            f"tax={self.split.wealth_cut}+{self.split.charity_cut})"
        )


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class PolicySource(Protocol):
    """
    Read-only interface to the policy configuration.

    The orchestrator calls these once per request and never mutates what
    they return. Whoever implements this owns mutation, versioning and
    access control.
    """

    def get_policy_snapshot(self) -> PolicySnapshot:
        """Return the current trading/tax/limit configuration."""
        ...

    def get_account_flags(self, account: Optional[AccountId]) -> AccountFlags:
        """Return the exemption flags for an account (defaults for unknown accounts)."""
        ...
