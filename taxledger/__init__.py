"""
taxledger - Taxed Transfer Ledger

A fixed-supply token ledger whose transfers can pay tax to two funds and
are subject to a trading gate and per-transaction / per-wallet ceilings.

Usage:
    from taxledger import Ledger, PolicyConfig, TransferOrchestrator

    ledger = Ledger("main")
    config = PolicyConfig("owner", "wealth", "charity",
                          transfer_tax_bps=500, wealth_share_bps=6000,
                          charity_share_bps=4000, trading_enabled=True)
    orchestrator = TransferOrchestrator(ledger, config)

    # One-time initial supply (mint path: null sender)
    orchestrator.submit_transfer(None, "owner", 1_000_000)
    orchestrator.submit_transfer("owner", "alice", 10_000)

    # Taxed transfer
    record = orchestrator.submit_transfer("alice", "bob", 1_000)
    # bob +950, wealth +30, charity +20
"""

# Core types
from .core import (
    AccountId,
    AccountFlags,
    NO_FLAGS,
    PolicySnapshot,
    PolicySource,
    TransferRequest,
    TaxSplit,
    TransferRecord,
    TransferState,
    TransferKind,
    LedgerError,
    TransferError,
    TransferRuleViolation,
    TradingDisabled,
    MaxTxExceeded,
    MaxWalletExceeded,
    InsufficientBalance,
    BalanceOverflow,
    InvalidAccount,
    InsufficientAllowance,
    NotOwner,
    BPS_DENOMINATOR,
    MAX_TRANSFER_TAX_BPS,
    MAX_BALANCE,
)

# Ledger
from .ledger import Ledger, StagedLedger, Posting

# Tax policy
from .tax_policy import compute_tax, split_tax, is_taxed

# Transfer guard
from .transfer_guard import (
    check_trading_gate,
    check_max_tx,
    check_max_wallet,
    validate_transfer,
)

# Events
from .events import TransferEvent, PolicyEvent, EventLog, ListenerFailure

# Policy sources
from .policy import StaticPolicySource, PolicyConfig

# Orchestrator
from .orchestrator import TransferOrchestrator

# Token
from .token import TaxToken

__all__ = [
    # Core
    'AccountId', 'AccountFlags', 'NO_FLAGS', 'PolicySnapshot', 'PolicySource',
    'TransferRequest', 'TaxSplit', 'TransferRecord', 'TransferState', 'TransferKind',
    'LedgerError', 'TransferError', 'TransferRuleViolation',
    'TradingDisabled', 'MaxTxExceeded', 'MaxWalletExceeded',
    'InsufficientBalance', 'BalanceOverflow', 'InvalidAccount',
    'InsufficientAllowance', 'NotOwner',
    'BPS_DENOMINATOR', 'MAX_TRANSFER_TAX_BPS', 'MAX_BALANCE',
    # Ledger
    'Ledger', 'StagedLedger', 'Posting',
    # Tax policy
    'compute_tax', 'split_tax', 'is_taxed',
    # Transfer guard
    'check_trading_gate', 'check_max_tx', 'check_max_wallet', 'validate_transfer',
    # Events
    'TransferEvent', 'PolicyEvent', 'EventLog', 'ListenerFailure',
    # Policy sources
    'StaticPolicySource', 'PolicyConfig',
    # Orchestrator
    'TransferOrchestrator',
    # Token
    'TaxToken',
]

__version__ = '1.0.0'
