"""
events.py - Notification side channel

Events are just data, listeners are just functions:
1. TransferEvent: one per committed transfer, mint or burn
2. PolicyEvent: one per policy field change
3. EventLog: ordered record of emitted events plus listener fan-out
4. ListenerFailure: a listener that raised, kept beside the events

The log is the audit trail; listeners are for outside observers.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Union

from .core import AccountId, TransferKind, TransferRecord


# ============================================================================
# EVENT DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class TransferEvent:
    """
    Summary of one committed request.

    Attributes:
        sequence: Position in the orchestrator's history
        kind: TRANSFER, MINT or BURN
        sender: Debited account (None for mint)
        recipient: Credited account (None for burn)
        gross_amount: Amount requested
        principal: Amount delivered to the recipient
        wealth_cut: Amount routed to the wealth fund
        charity_cut: Amount routed to the charity fund
    """
    sequence: int
    kind: TransferKind
    sender: Optional[AccountId]
    recipient: Optional[AccountId]
    gross_amount: int
    principal: int
    wealth_cut: int
    charity_cut: int

    @classmethod
    def from_record(cls, record: TransferRecord) -> TransferEvent:
        return cls(
            sequence=record.sequence,
            kind=record.kind,
            sender=record.sender,
            recipient=record.recipient,
            gross_amount=record.amount,
            principal=record.split.principal,
            wealth_cut=record.split.wealth_cut,
            charity_cut=record.split.charity_cut,
        )


@dataclass(frozen=True, slots=True)
class PolicyEvent:
    """A single policy field changing value."""
    field: str
    old_value: Any
    new_value: Any
    changed_by: Optional[AccountId] = None
    account: Optional[AccountId] = None  # set for per-account flag changes

    def __repr__(self) -> str:
        target = f"[{self.account}]" if self.account else ""
        return f"PolicyEvent({self.field}{target}: {self.old_value!r} → {self.new_value!r})"


Event = Union[TransferEvent, PolicyEvent]

# Listener type: event -> None
EventListener = Callable[[Event], None]


# ============================================================================
# EVENT LOG
# ============================================================================

@dataclass(frozen=True, slots=True)
class ListenerFailure:
    """A listener that raised while handling an event."""
    event: Any
    listener: Callable
    error: Exception

    def __repr__(self) -> str:
        name = getattr(self.listener, "__name__", repr(self.listener))
        return f"ListenerFailure({name}: {type(self.error).__name__}: {self.error})"


class EventLog:
    """
    Append-only event record with synchronous listeners.

    Listeners run in subscription order inside emit(). Events describe
    changes that are already applied, so a listener can not fail them: an
    exception raised by a listener is recorded in `failures` (and printed
    when verbose) and the remaining listeners still run.
    """

    def __init__(self, verbose: bool = False):
        self.events: List[Event] = []
        self.failures: List[ListenerFailure] = []
        self._listeners: List[EventListener] = []
        self.verbose = verbose

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        self._listeners.remove(listener)

    def emit(self, event: Event) -> None:
        self.events.append(event)
        if self.verbose:
            print(f"[EVENT] {event!r}")
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                failure = ListenerFailure(event, listener, e)
                self.failures.append(failure)
                if self.verbose:
                    print(f"✗ {failure!r}")

    def of_type(self, event_type: type) -> List[Event]:
        """Events of one class, in emission order."""
        return [e for e in self.events if isinstance(e, event_type)]

    def transfers(self) -> List[TransferEvent]:
        return self.of_type(TransferEvent)

    def policy_changes(self) -> List[PolicyEvent]:
        return self.of_type(PolicyEvent)

    def __len__(self) -> int:
        return len(self.events)
