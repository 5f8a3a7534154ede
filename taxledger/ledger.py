"""
ledger.py - Stateful Integer Balance Ledger

The Ledger class is the central state manager for account balances.
It is the only module that mutates balances, ensuring controlled and auditable changes.

Key responsibilities:
    - Holds account -> balance with non-negative and overflow guards
    - Applies mutations atomically through staged overlays (stage / commit)
    - Tracks total supply and verifies conservation
    - Records every committed mutation in the journal
"""

from __future__ import annotations
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Set, Tuple, Any

from .core import (
    # Types
    AccountId,
    # Constants
    MAX_BALANCE,
    # Exceptions
    LedgerError, InsufficientBalance, BalanceOverflow,
    # Helper functions
    validate_account, validate_amount,
)


@dataclass(frozen=True, slots=True)
class Posting:
    """
    One committed balance mutation.

    sender is None for a credit with no counterpart (mint), recipient is
    None for a debit with no counterpart (burn).
    """
    sequence: int
    sender: Optional[AccountId]
    recipient: Optional[AccountId]
    amount: int

    def __repr__(self) -> str:
        return f"Posting(#{self.sequence} {self.amount}: {self.sender}→{self.recipient})"


class StagedLedger:
    """
    Buffered overlay over a Ledger.

    Reads fall through to the base ledger until an account is touched;
    writes land in the overlay only. Nothing is visible on the base ledger
    until Ledger.commit() is called with this stage. Dropping the stage
    discards every mutation made on it.

    Every operation checks its guards before changing anything, so a
    failing operation leaves the stage exactly as it was.
    """

    def __init__(self, base: Ledger):
        self._base = base
        self._base_version = base.version
        self._balances: Dict[AccountId, int] = {}
        self._supply = base.total_supply()
        self.postings: List[Tuple[Optional[AccountId], Optional[AccountId], int]] = []
        self.committed = False

    @property
    def base(self) -> Ledger:
        return self._base

    @property
    def base_version(self) -> int:
        return self._base_version

    @property
    def max_balance(self) -> int:
        return self._base.max_balance

    def balance_of(self, account: Optional[AccountId]) -> int:
        """Balance as it would be after commit (0 for unknown accounts)."""
        if account in self._balances:
            return self._balances[account]
        return self._base.balance_of(account)

    def total_supply(self) -> int:
        return self._supply

    def changes(self) -> Dict[AccountId, int]:
        """Return the new balance of every account touched on this stage."""
        return dict(self._balances)

    def is_empty(self) -> bool:
        return not self.postings

    def _check_open(self) -> None:
        if self.committed:
            raise LedgerError("Stage already committed")

    def _check_debit(self, account: AccountId, amount: int) -> int:
        balance = self.balance_of(account)
        if balance < amount:
            raise InsufficientBalance(account, balance, amount)
        return balance - amount

    def _check_credit(self, account: AccountId, balance: int, amount: int) -> int:
        if balance + amount > self.max_balance:
            raise BalanceOverflow(account, balance, amount, self.max_balance)
        return balance + amount

    def debit(self, account: AccountId, amount: int) -> None:
        """
        Remove amount from account with no counterpart (burn).

        Raises:
            InvalidAccount: If account is the null account
            InsufficientBalance: If the balance is below amount
        """
        self._check_open()
        validate_account(account)
        validate_amount(amount)
        new_balance = self._check_debit(account, amount)
        if amount == 0:
            return
        self._balances[account] = new_balance
        self._supply -= amount
        self.postings.append((account, None, amount))

    def credit(self, account: AccountId, amount: int) -> None:
        """
        Add amount to account with no counterpart (mint).

        Raises:
            InvalidAccount: If account is the null account
            BalanceOverflow: If the balance or the total supply would exceed max_balance
        """
        self._check_open()
        validate_account(account)
        validate_amount(amount)
        new_balance = self._check_credit(account, self.balance_of(account), amount)
        if self._supply + amount > self.max_balance:
            raise BalanceOverflow(None, self._supply, amount, self.max_balance)
        if amount == 0:
            return
        self._balances[account] = new_balance
        self._supply += amount
        self.postings.append((None, account, amount))

    mint = credit
    burn = debit

    def transfer(self, sender: AccountId, recipient: AccountId, amount: int) -> None:
        """
        Move amount from sender to recipient.

        Debit and credit are both checked before either is applied.

        Raises:
            InvalidAccount: If either side is the null account
            InsufficientBalance: If sender holds less than amount
            BalanceOverflow: If recipient would exceed max_balance
        """
        self._check_open()
        validate_account(sender, "sender")
        validate_account(recipient, "recipient")
        validate_amount(amount)
        new_sender = self._check_debit(sender, amount)
        recipient_before = new_sender if sender == recipient else self.balance_of(recipient)
        new_recipient = self._check_credit(recipient, recipient_before, amount)
        if amount == 0:
            return
        self._balances[sender] = new_sender
        self._balances[recipient] = new_recipient
        self.postings.append((sender, recipient, amount))

    def __repr__(self) -> str:
        return f"StagedLedger({len(self.postings)} postings over {self._base.name})"


class Ledger:
    """
    Integer balance ledger with atomic staged mutation and a journal.

    Accounts are created implicitly on first credit and read as 0 before
    that. Balances never go below zero or above max_balance.

    Thread Safety:
        Not thread-safe. TransferOrchestrator serializes access to the
        ledger it owns.

    Example:
        ledger = Ledger("main")
        ledger.mint("alice", 1000)
        ledger.transfer("alice", "bob", 100)

        stage = ledger.stage()
        stage.transfer("alice", "bob", 50)
        stage.transfer("alice", "carol", 50)
        ledger.commit(stage)
    """

    def __init__(self, name: str, max_balance: int = MAX_BALANCE, verbose: bool = False):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            max_balance: Largest balance any account (and the total supply) may reach
            verbose: Print one line per committed stage (default: False)
        """
        validate_amount(max_balance, "max_balance")
        self.name = name
        self.max_balance = max_balance
        self.verbose = verbose
        self._balances: Dict[AccountId, int] = {}
        self.journal: List[Posting] = []
        self._supply = 0
        self._version = 0
        self._next_sequence = 0

    # ========================================================================
    # READ-ONLY METHODS
    # ========================================================================

    @property
    def version(self) -> int:
        """Incremented by every commit."""
        return self._version

    @property
    def balances(self) -> Mapping[AccountId, int]:
        """Read-only view of every account balance. Mutate through stage() and commit()."""
        return MappingProxyType(self._balances)

    def balance_of(self, account: Optional[AccountId]) -> int:
        """Current balance of an account (0 if never credited)."""
        return self._balances.get(account, 0)

    def total_supply(self) -> int:
        """Total supply as tracked by mint and burn."""
        return self._supply

    def sum_of_balances(self) -> int:
        return sum(self._balances.values())

    def accounts(self) -> Set[AccountId]:
        """All accounts that were ever credited."""
        return set(self._balances)

    def holders(self) -> Dict[AccountId, int]:
        """All accounts with a non-zero balance."""
        return {account: bal for account, bal in self._balances.items() if bal > 0}

    def verify_conservation(self, expected_supply: Optional[int] = None) -> Dict[str, Any]:
        """
        Verify that the sum of all balances equals the total supply.

        Args:
            expected_supply: If provided, the total supply must also equal this value.

        Returns:
            Dict with keys:
            - 'valid': bool - True if conservation holds
            - 'supply': int - Tracked total supply
            - 'sum_of_balances': int - Sum over all accounts
            - 'discrepancy': int - sum_of_balances minus the expected supply
        """
        actual = self.sum_of_balances()
        expected = self._supply if expected_supply is None else expected_supply
        return {
            'valid': actual == expected and self._supply == expected,
            'supply': self._supply,
            'sum_of_balances': actual,
            'discrepancy': actual - expected,
        }

    # ========================================================================
    # MUTATION (Staged)
    # ========================================================================

    def stage(self) -> StagedLedger:
        """Open a buffered overlay; see StagedLedger."""
        return StagedLedger(self)

    def commit(self, staged: StagedLedger) -> List[Posting]:
        """
        Apply every mutation of a stage in one step.

        Args:
            staged: Stage opened on this ledger by stage()

        Returns:
            The postings appended to the journal

        Raises:
            LedgerError: If the stage belongs to another ledger, was already
                         committed, or this ledger changed after it was opened
        """
        if staged.base is not self:
            raise LedgerError(f"Stage does not belong to ledger {self.name}")
        if staged.committed:
            raise LedgerError("Stage already committed")
        if staged.base_version != self._version:
            raise LedgerError(
                f"Stale stage: opened at version {staged.base_version}, "
                f"ledger is at {self._version}"
            )

        staged.committed = True
        if staged.is_empty():
            return []

        self._balances.update(staged.changes())
        self._supply = staged.total_supply()
        self._version += 1

        postings = []
        for sender, recipient, amount in staged.postings:
            posting = Posting(self._next_sequence, sender, recipient, amount)
            self._next_sequence += 1
            postings.append(posting)
        self.journal.extend(postings)

        if self.verbose:
            for posting in postings:
                print(f"✓ {self.name}: {posting!r}")
        return postings

    def debit(self, account: AccountId, amount: int) -> None:
        """Remove amount from account, reducing total supply."""
        stage = self.stage()
        stage.debit(account, amount)
        self.commit(stage)

    def credit(self, account: AccountId, amount: int) -> None:
        """Add amount to account, increasing total supply."""
        stage = self.stage()
        stage.credit(account, amount)
        self.commit(stage)

    mint = credit
    burn = debit

    def transfer(self, sender: AccountId, recipient: AccountId, amount: int) -> None:
        """Atomically debit sender and credit recipient; neither applies if either fails."""
        stage = self.stage()
        stage.transfer(sender, recipient, amount)
        self.commit(stage)

    # ========================================================================
    # LEDGER OPERATIONS
    # ========================================================================

    def clone(self) -> Ledger:
        """
        Create an independent copy of this ledger.

        Balances, supply, journal and version are copied; later changes to
        either ledger do not affect the other.
        """
        cloned = Ledger(self.name, max_balance=self.max_balance, verbose=self.verbose)
        cloned._balances = dict(self._balances)
        cloned.journal = list(self.journal)
        cloned._supply = self._supply
        cloned._version = self._version
        cloned._next_sequence = self._next_sequence
        return cloned

    def __repr__(self) -> str:
        return f"Ledger({self.name!r}, {len(self._balances)} accounts, supply={self._supply})"
