"""
orchestrator.py - Transfer Orchestrator

Composes the guard, the tax policy and the ledger into one atomic
operation per transfer request.

Pipeline for each request (one request at a time):
1. VALIDATING: mint/burn requests (a null side) go straight to the ledger.
   Otherwise read the policy snapshot and both parties' flags once, then
   check the trading gate and the transaction ceiling on the gross amount.
2. TAX_SPLITTING: compute (principal, wealth_cut, charity_cut).
3. SETTLING: on a ledger stage, move the tax cuts to the funds, check the
   wallet ceiling on the recipient's projected balance, move the principal.
4. COMMITTED: commit the stage, record the request and emit an event.

Any failure leaves the ledger untouched: the stage is simply dropped.
"""

from __future__ import annotations
import threading
from typing import List, Optional

from .core import (
    AccountId, PolicySource, TransferRequest, TransferRecord, TaxSplit,
    TransferKind, TransferState,
    LedgerError, InvalidAccount,
    validate_account,
)
from .events import EventLog, TransferEvent
from .ledger import Ledger
from .tax_policy import compute_tax
from .transfer_guard import check_trading_gate, check_max_tx, check_max_wallet


class TransferOrchestrator:
    """
    Single entry point for balance-changing requests.

    The orchestrator is the only component that mutates its ledger. A
    reentrant lock around the whole pipeline makes requests strictly
    sequential, in submission order.

    Attributes:
        ledger: Ledger holding the balances
        policy: PolicySource read once per request
        events: EventLog receiving one TransferEvent per committed request
        history: Committed TransferRecords, in order
        state: TransferState of the most recent request
        last_error: The error that rejected the most recent request, if any

    Example:
        orchestrator = TransferOrchestrator(Ledger("main"), StaticPolicySource())
        orchestrator.submit_transfer(None, "alice", 1_000)   # mint
        orchestrator.submit_transfer("alice", "bob", 100)
    """

    def __init__(
        self,
        ledger: Ledger,
        policy: PolicySource,
        events: Optional[EventLog] = None,
        verbose: bool = False,
    ):
        if not isinstance(policy, PolicySource):
            raise TypeError(f"policy must implement PolicySource, got {type(policy).__name__}")
        self.ledger = ledger
        self.policy = policy
        self.events = events if events is not None else EventLog()
        self.verbose = verbose
        self.history: List[TransferRecord] = []
        self.state = TransferState.IDLE
        self.last_error: Optional[LedgerError] = None
        self.lock = threading.RLock()

    # ========================================================================
    # READ ACCESSORS
    # ========================================================================

    def balance_of(self, account: Optional[AccountId]) -> int:
        return self.ledger.balance_of(account)

    def total_supply(self) -> int:
        return self.ledger.total_supply()

    # ========================================================================
    # ENTRY POINT
    # ========================================================================

    def submit_transfer(
        self,
        sender: Optional[AccountId],
        recipient: Optional[AccountId],
        amount: int,
    ) -> TransferRecord:
        """
        Apply one transfer request atomically.

        A None sender mints to recipient; a None recipient burns from sender.
        Mint and burn never see the guard or the tax policy.

        Args:
            sender: Debited account, or None to mint
            recipient: Credited account, or None to burn
            amount: Gross amount (non-negative int, may be zero)

        Returns:
            The committed TransferRecord

        Raises:
            ValueError: If amount is not a non-negative int
            InvalidAccount: If both sides are null, or a fund or party id is malformed
            TradingDisabled, MaxTxExceeded, MaxWalletExceeded: Guard rejections
            InsufficientBalance, BalanceOverflow: Ledger rejections
        """
        request = TransferRequest(sender, recipient, amount)
        with self.lock:
            self.state = TransferState.VALIDATING
            self.last_error = None
            try:
                kind, split = self._run(request)
            except LedgerError as e:
                self.state = TransferState.REJECTED
                self.last_error = e
                if self.verbose:
                    print(f"✗ REJECTED {request!r}: {type(e).__name__}: {e}")
                raise

            record = TransferRecord(
                sequence=len(self.history),
                kind=kind,
                sender=sender,
                recipient=recipient,
                amount=amount,
                split=split,
            )
            self.history.append(record)
            self.state = TransferState.COMMITTED
            if self.verbose:
                print(f"✓ COMMITTED {record!r}")
            self.events.emit(TransferEvent.from_record(record))
            return record

    def _run(self, request: TransferRequest):
        """Run the pipeline; returns (kind, split) once the ledger has committed."""
        if request.sender is None and request.recipient is None:
            raise InvalidAccount("sender and recipient cannot both be the null account")
        if request.is_mint or request.is_burn:
            return self._mint_or_burn(request)

        sender, recipient, amount = request.sender, request.recipient, request.amount
        validate_account(sender, "sender")
        validate_account(recipient, "recipient")

        snapshot = self.policy.get_policy_snapshot()
        from_flags = self.policy.get_account_flags(sender)
        to_flags = self.policy.get_account_flags(recipient)

        check_trading_gate(sender, recipient, snapshot, from_flags, to_flags)
        check_max_tx(amount, snapshot, from_flags, to_flags)

        self.state = TransferState.TAX_SPLITTING
        split = compute_tax(amount, snapshot, from_flags, to_flags)

        self.state = TransferState.SETTLING
        stage = self.ledger.stage()
        if split.wealth_cut > 0:
            stage.transfer(sender, snapshot.wealth_fund, split.wealth_cut)
        if split.charity_cut > 0:
            stage.transfer(sender, snapshot.charity_fund, split.charity_cut)

        projected = stage.balance_of(recipient) + split.principal
        check_max_wallet(recipient, projected, snapshot, to_flags)

        stage.transfer(sender, recipient, split.principal)
        self.ledger.commit(stage)
        return TransferKind.TRANSFER, split

    def _mint_or_burn(self, request: TransferRequest):
        stage = self.ledger.stage()
        if request.is_mint:
            stage.mint(request.recipient, request.amount)
            kind = TransferKind.MINT
        else:
            stage.burn(request.sender, request.amount)
            kind = TransferKind.BURN
        self.state = TransferState.SETTLING
        self.ledger.commit(stage)
        return kind, TaxSplit(principal=request.amount)

    def __repr__(self) -> str:
        return f"TransferOrchestrator({self.ledger!r}, {len(self.history)} committed)"
