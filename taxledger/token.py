"""
token.py - Taxed fixed-supply token

TaxToken wires a Ledger, a PolicyConfig, an EventLog and a
TransferOrchestrator together and adds what a token holder sees:
metadata, the one-time initial mint, and the allowance flow
(approve / transfer_from).
"""

from __future__ import annotations
from typing import Any, Dict, Tuple

from .core import (
    AccountId, TransferRecord,
    InsufficientAllowance,
    MAX_BALANCE,
    validate_account, validate_amount,
)
from .events import EventLog
from .ledger import Ledger
from .orchestrator import TransferOrchestrator
from .policy import PolicyConfig


class TaxToken:
    """
    Fixed-supply token whose transfers pay tax to two funds.

    The whole supply is minted to the owner at construction; there is no
    other mint and no burn.

    Example:
        token = TaxToken("Giving", "GIV", owner="owner", total_supply=1_000_000,
                         wealth_fund="wealth", charity_fund="charity",
                         transfer_tax_bps=500, wealth_share_bps=6000,
                         charity_share_bps=4000)
        token.policy.set_trading_enabled("owner", True)
        token.transfer("owner", "alice", 10_000)
        token.transfer("alice", "bob", 1_000)   # bob +950, wealth +30, charity +20
    """

    def __init__(
        self,
        name: str,
        symbol: str,
        owner: AccountId,
        total_supply: int,
        wealth_fund: AccountId,
        charity_fund: AccountId,
        decimals: int = 18,
        max_balance: int = MAX_BALANCE,
        verbose: bool = False,
        **policy_kwargs: Any,
    ):
        """
        Create the token and mint the full supply to owner.

        Args:
            name: Human-readable token name
            symbol: Ticker symbol
            owner: Receives the supply and controls the policy
            total_supply: Amount minted once, in base units
            wealth_fund: Wealth fund account
            charity_fund: Charity fund account
            decimals: Display precision
            max_balance: Ledger balance bound
            verbose: Print ledger, policy and transfer activity
            **policy_kwargs: Forwarded to PolicyConfig (tax, limits, trading flag)
        """
        validate_amount(total_supply, "total_supply")
        validate_amount(decimals, "decimals")
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.events = EventLog(verbose=verbose)
        self.ledger = Ledger(symbol, max_balance=max_balance, verbose=verbose)
        self.policy = PolicyConfig(
            owner, wealth_fund, charity_fund,
            events=self.events, verbose=verbose, **policy_kwargs,
        )
        self.orchestrator = TransferOrchestrator(
            self.ledger, self.policy, events=self.events, verbose=verbose,
        )
        self._allowances: Dict[Tuple[AccountId, AccountId], int] = {}
        self.orchestrator.submit_transfer(None, owner, total_supply)

    # ========================================================================
    # READ-ONLY METHODS
    # ========================================================================

    def balance_of(self, account: AccountId) -> int:
        return self.orchestrator.balance_of(account)

    def total_supply(self) -> int:
        return self.ledger.total_supply()

    def allowance(self, owner: AccountId, spender: AccountId) -> int:
        return self._allowances.get((owner, spender), 0)

    # ========================================================================
    # TRANSFERS
    # ========================================================================

    def transfer(self, sender: AccountId, recipient: AccountId, amount: int) -> TransferRecord:
        """Transfer from sender's own balance; see TransferOrchestrator.submit_transfer."""
        validate_account(sender, "sender")
        validate_account(recipient, "recipient")
        return self.orchestrator.submit_transfer(sender, recipient, amount)

    def approve(self, owner: AccountId, spender: AccountId, amount: int) -> None:
        """Set (not add to) the amount spender may move out of owner's balance."""
        validate_account(owner, "owner")
        validate_account(spender, "spender")
        validate_amount(amount)
        self._allowances[(owner, spender)] = amount

    def increase_allowance(self, owner: AccountId, spender: AccountId, added: int) -> int:
        validate_amount(added)
        self.approve(owner, spender, self.allowance(owner, spender) + added)
        return self.allowance(owner, spender)

    def decrease_allowance(self, owner: AccountId, spender: AccountId, subtracted: int) -> int:
        """
        Raises:
            InsufficientAllowance: If subtracted is above the current allowance
        """
        validate_amount(subtracted)
        current = self.allowance(owner, spender)
        if subtracted > current:
            raise InsufficientAllowance(owner, spender, current, subtracted)
        self.approve(owner, spender, current - subtracted)
        return current - subtracted

    def transfer_from(
        self,
        spender: AccountId,
        owner: AccountId,
        recipient: AccountId,
        amount: int,
    ) -> TransferRecord:
        """
        Move amount out of owner's balance on spender's behalf.

        The allowance is charged the gross amount and only when the
        transfer commits; a rejected transfer leaves it unchanged.

        Raises:
            InsufficientAllowance: If spender's allowance is below amount
            TransferError: Any rejection from the orchestrator
        """
        validate_account(spender, "spender")
        validate_account(owner, "owner")
        validate_account(recipient, "recipient")
        validate_amount(amount)
        with self.orchestrator.lock:
            current = self.allowance(owner, spender)
            if current < amount:
                raise InsufficientAllowance(owner, spender, current, amount)
            record = self.orchestrator.submit_transfer(owner, recipient, amount)
            self._allowances[(owner, spender)] = current - amount
        return record

    def __repr__(self) -> str:
        return f"TaxToken({self.symbol}, supply={self.total_supply()})"
