"""
Two-phase payouts.

Bookkeeping for a withdrawal is committed before currency moves. Each
outbound transfer is therefore tracked as a :class:`PayoutIntent` in a
:class:`PayoutJournal`:

    PENDING --(transfer ok)--> COMPLETED
    PENDING --(TransferError)--> REVERSED   (compensation applied)

The executor never retries; a reversed intent leaves the ledgers as if the
failed part of the payout had not been booked.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from .collaborators import TransferPrimitive
from .errors import TransferError

logger = logging.getLogger(__name__)


class IntentState(Enum):
    """Lifecycle of a payout intent."""
    PENDING = "pending"
    COMPLETED = "completed"
    REVERSED = "reversed"


@dataclass
class PayoutIntent:
    intent_id: int
    action: str
    source: str
    destination: str
    amount: int
    state: IntentState = IntentState.PENDING
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "intent_id": self.intent_id,
            "action": self.action,
            "source": self.source,
            "destination": self.destination,
            "amount": self.amount,
            "state": self.state.value,
            "error": self.error,
        }


class PayoutJournal:
    """Append-only record of payout intents and their outcome."""

    def __init__(self) -> None:
        self._intents: List[PayoutIntent] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def record(self, action: str, source: str, destination: str, amount: int) -> PayoutIntent:
        with self._lock:
            intent = PayoutIntent(next(self._ids), action, source, destination, amount)
            self._intents.append(intent)
        return intent

    def complete(self, intent: PayoutIntent) -> None:
        self._transition(intent, IntentState.COMPLETED)

    def reverse(self, intent: PayoutIntent, error: str) -> None:
        intent.error = error
        self._transition(intent, IntentState.REVERSED)

    def _transition(self, intent: PayoutIntent, state: IntentState) -> None:
        if intent.state is not IntentState.PENDING:
            raise ValueError(f"Intent {intent.intent_id} already {intent.state.value}")
        intent.state = state

    def pending(self) -> List[PayoutIntent]:
        return [i for i in self._intents if i.state is IntentState.PENDING]

    def entries(self) -> List[PayoutIntent]:
        return list(self._intents)

    def __len__(self) -> int:
        return len(self._intents)


@dataclass
class PayoutOutcome:
    """Result of executing every transfer of one action."""
    intents: List[PayoutIntent] = field(default_factory=list)
    errors: List[TransferError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def paid(self) -> int:
        return sum(i.amount for i in self.intents if i.state is IntentState.COMPLETED)


class PayoutExecutor:
    """
    Runs committed payouts through a transfer primitive.

    ``compensate`` is called once per failed intent, after bookkeeping has
    been committed, and must undo the booking of that intent's amount.
    """

    def __init__(self, transfers: TransferPrimitive, journal: Optional[PayoutJournal] = None):
        self.transfers = transfers
        self.journal = journal if journal is not None else PayoutJournal()

    def execute(
        self,
        action: str,
        requests: Sequence,
        compensate: Callable[[PayoutIntent], None],
    ) -> PayoutOutcome:
        outcome = PayoutOutcome()
        intents = [
            self.journal.record(action, r.source, r.destination, r.amount)
            for r in requests
        ]
        for intent in intents:
            outcome.intents.append(intent)
            try:
                self.transfers.transfer(intent.source, intent.destination, intent.amount)
            except TransferError as exc:
                logger.error(
                    f"Payout {intent.intent_id} ({action}) to {intent.destination} failed: {exc}",
                    extra={"context": {**intent.to_dict(), "error": str(exc)}},
                )
                compensate(intent)
                self.journal.reverse(intent, str(exc))
                outcome.errors.append(exc)
                continue
            self.journal.complete(intent)
            logger.debug(
                f"Payout {intent.intent_id} ({action}) of {intent.amount} completed",
                extra={"context": intent.to_dict()},
            )
        return outcome
