"""
policy.py - Policy configuration sources

Implementations of the PolicySource protocol:
- StaticPolicySource: a fixed snapshot and fixed account flags
- PolicyConfig: owner-managed, mutable configuration that hands out an
  immutable PolicySnapshot on every read and emits a PolicyEvent per change

The orchestrator only ever reads; every mutation happens here.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Any, Dict, Optional

from .core import (
    AccountFlags, AccountId, PolicySnapshot,
    NO_FLAGS,
    NotOwner,
    validate_account,
)
from .events import EventLog, PolicyEvent


class StaticPolicySource:
    """
    Policy source with a fixed configuration.

    Useful for tests and for replaying transfers under a known policy.
    """

    def __init__(
        self,
        snapshot: Optional[PolicySnapshot] = None,
        flags: Optional[Dict[AccountId, AccountFlags]] = None,
    ):
        self.snapshot = snapshot or PolicySnapshot()
        self.flags = dict(flags or {})

    def get_policy_snapshot(self) -> PolicySnapshot:
        return self.snapshot

    def get_account_flags(self, account: Optional[AccountId]) -> AccountFlags:
        return self.flags.get(account, NO_FLAGS)

    def __repr__(self):
        return f"StaticPolicySource({self.snapshot}, {len(self.flags)} flagged accounts)"


class PolicyConfig:
    """
    Owner-managed policy configuration.

    The current policy is stored as a PolicySnapshot and replaced (never
    mutated) on every change, so a snapshot handed to an in-flight transfer
    can not change underneath it. Validation of new values is delegated to
    PolicySnapshot.__post_init__.

    Every setter takes the caller as its first argument and raises NotOwner
    unless the caller is the current owner. Setters that do not change the
    value emit nothing.

    The owner and both funds start fee-exempt and limit-exempt.

    Example:
        config = PolicyConfig("owner", "wealth", "charity", transfer_tax_bps=300)
        config.set_trading_enabled("owner", True)
        config.set_fee_exempt("owner", "exchange", True)
        snapshot = config.get_policy_snapshot()
    """

    def __init__(
        self,
        owner: AccountId,
        wealth_fund: AccountId,
        charity_fund: AccountId,
        transfer_tax_bps: int = 0,
        wealth_share_bps: int = 5_000,
        charity_share_bps: int = 5_000,
        trading_enabled: bool = False,
        max_tx_amount: int = 0,
        max_wallet_amount: int = 0,
        events: Optional[EventLog] = None,
        verbose: bool = False,
    ):
        """
        Initialize the configuration.

        Args:
            owner: Account allowed to call setters
            wealth_fund: Account receiving the wealth share of the tax
            charity_fund: Account receiving the charity share of the tax
            transfer_tax_bps: Tax rate in basis points (0..500)
            wealth_share_bps: Wealth share of the tax in basis points
            charity_share_bps: Charity share of the tax in basis points
            trading_enabled: Whether non-exempt accounts may trade
            max_tx_amount: Per-transaction ceiling (0 = unlimited)
            max_wallet_amount: Per-wallet ceiling (0 = unlimited)
            events: Event log for PolicyEvents (a private one if not provided)
            verbose: Print one line per change

        Raises:
            InvalidAccount: If owner or a fund is the null account
            ValueError: If any numeric value is out of range
        """
        validate_account(owner, "owner")
        validate_account(wealth_fund, "wealth_fund")
        validate_account(charity_fund, "charity_fund")
        self._owner: Optional[AccountId] = owner
        self._snapshot = PolicySnapshot(
            trading_enabled=trading_enabled,
            max_tx_amount=max_tx_amount,
            max_wallet_amount=max_wallet_amount,
            transfer_tax_bps=transfer_tax_bps,
            wealth_share_bps=wealth_share_bps,
            charity_share_bps=charity_share_bps,
            wealth_fund=wealth_fund,
            charity_fund=charity_fund,
        )
        self._flags: Dict[AccountId, AccountFlags] = {}
        self.events = events if events is not None else EventLog()
        self.verbose = verbose

        exempt = AccountFlags(fee_exempt=True, limit_exempt=True)
        for account in (owner, wealth_fund, charity_fund):
            self._flags[account] = exempt

    # ========================================================================
    # PolicySource PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    def get_policy_snapshot(self) -> PolicySnapshot:
        return self._snapshot

    def get_account_flags(self, account: Optional[AccountId]) -> AccountFlags:
        return self._flags.get(account, NO_FLAGS)

    @property
    def owner(self) -> Optional[AccountId]:
        """Current owner, or None once ownership has been renounced."""
        return self._owner

    def is_fee_exempt(self, account: AccountId) -> bool:
        return self.get_account_flags(account).fee_exempt

    def is_limit_exempt(self, account: AccountId) -> bool:
        return self.get_account_flags(account).limit_exempt

    # ========================================================================
    # SETTERS (Mutating, owner only)
    # ========================================================================

    def _require_owner(self, caller: Optional[AccountId]) -> None:
        if self._owner is None or caller != self._owner:
            raise NotOwner(caller, self._owner)

    def _emit(self, field: str, old: Any, new: Any, caller: Optional[AccountId],
              account: Optional[AccountId] = None) -> None:
        event = PolicyEvent(field, old, new, changed_by=caller, account=account)
        if self.verbose:
            print(f"⚙️  {event!r}")
        self.events.emit(event)

    def _update(self, caller: AccountId, **changes: Any) -> None:
        self._require_owner(caller)
        old = self._snapshot
        new = replace(old, **changes)
        self._snapshot = new
        for name in changes:
            before, after = getattr(old, name), getattr(new, name)
            if before != after:
                self._emit(name, before, after, caller)

    def set_trading_enabled(self, caller: AccountId, enabled: bool) -> None:
        self._update(caller, trading_enabled=enabled)

    def set_max_tx_amount(self, caller: AccountId, amount: int) -> None:
        """Set the per-transaction ceiling (0 disables it)."""
        self._update(caller, max_tx_amount=amount)

    def set_max_wallet_amount(self, caller: AccountId, amount: int) -> None:
        """Set the per-wallet ceiling (0 disables it)."""
        self._update(caller, max_wallet_amount=amount)

    def set_transfer_tax_bps(self, caller: AccountId, bps: int) -> None:
        """Set the tax rate; must be within 0..500."""
        self._update(caller, transfer_tax_bps=bps)

    def set_tax_shares(self, caller: AccountId, wealth_share_bps: int, charity_share_bps: int) -> None:
        """Set both shares at once; they must sum to 10000."""
        self._update(caller, wealth_share_bps=wealth_share_bps, charity_share_bps=charity_share_bps)

    def set_funds(self, caller: AccountId, wealth_fund: AccountId, charity_fund: AccountId) -> None:
        """
        Point the tax at new fund accounts.

        Flags of the new funds are left as they are; exempt them explicitly
        if they should trade without tax or limits.
        """
        self._require_owner(caller)
        validate_account(wealth_fund, "wealth_fund")
        validate_account(charity_fund, "charity_fund")
        self._update(caller, wealth_fund=wealth_fund, charity_fund=charity_fund)

    def _set_flag(self, caller: AccountId, account: AccountId, name: str, value: bool) -> None:
        self._require_owner(caller)
        validate_account(account)
        if not isinstance(value, bool):
            raise ValueError(f"{name} must be bool, got {value!r}")
        old = self.get_account_flags(account)
        if getattr(old, name) == value:
            return
        self._flags[account] = replace(old, **{name: value})
        self._emit(name, not value, value, caller, account=account)

    def set_fee_exempt(self, caller: AccountId, account: AccountId, exempt: bool) -> None:
        self._set_flag(caller, account, "fee_exempt", exempt)

    def set_limit_exempt(self, caller: AccountId, account: AccountId, exempt: bool) -> None:
        self._set_flag(caller, account, "limit_exempt", exempt)

    def transfer_ownership(self, caller: AccountId, new_owner: AccountId) -> None:
        """Hand setter rights to new_owner. Exemption flags do not move with ownership."""
        self._require_owner(caller)
        validate_account(new_owner, "new_owner")
        if new_owner == self._owner:
            return
        old = self._owner
        self._owner = new_owner
        self._emit("owner", old, new_owner, caller)

    def renounce_ownership(self, caller: AccountId) -> None:
        """Give up setter rights for good; the policy is frozen afterwards."""
        self._require_owner(caller)
        old = self._owner
        self._owner = None
        self._emit("owner", old, None, caller)

    def __repr__(self):
        return f"PolicyConfig(owner={self._owner}, {self._snapshot})"
