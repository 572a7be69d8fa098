"""
External collaborators consumed by the host.

The engine itself is pure; the host (see :mod:`shrimpfarm.service`) reads
the clock, consults the instruction guard, moves currency and fires NFT
issuance through these interfaces. Reference implementations are provided
for local runs and tests.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from .errors import TransferError

logger = logging.getLogger(__name__)

# Game program, compute budget, and wallet-injected assertion program
DEFAULT_ALLOWED_PROGRAMS: Tuple[str, ...] = (
    "23BCUPpfPkfCu6bmPCaLgyTR8UkruWeUnEyeC5shr1mp",
    "ComputeBudget111111111111111111111111111111",
    "L2TExMFKdjpN9kozasaurPirfHy9P8sbXoAN1qA3S95",
)


# =============================================================================
# Interfaces
# =============================================================================

class Clock(Protocol):
    def now(self) -> int:
        """Current unix time in seconds."""
        ...


class TransferPrimitive(Protocol):
    def transfer(self, source: str, destination: str, amount: int) -> None:
        """Move ``amount`` lamports; raise TransferError on failure."""
        ...


class InstructionGuard(Protocol):
    def check(self, max_aux_instructions: int, whitelist: Sequence[str]) -> bool:
        """Pass/fail verdict on the shape of the surrounding transaction."""
        ...


class NftIssuer(Protocol):
    def issue(self, player_id: str) -> None:
        ...


# =============================================================================
# Clocks
# =============================================================================

class SystemClock:
    def now(self) -> int:
        return int(time.time())


@dataclass
class ManualClock:
    """Clock advanced explicitly, for tests and simulations."""
    current: int = 0

    def now(self) -> int:
        return self.current

    def advance(self, seconds: int) -> int:
        self.current += seconds
        return self.current


# =============================================================================
# Instruction guards
# =============================================================================

@dataclass(frozen=True)
class TransactionShapeGuard:
    """
    Accepts a transaction when it has at most ``max_aux_instructions``
    instructions and every instruction targets an allowed program.
    """
    program_ids: Tuple[str, ...]
    allowed_programs: Tuple[str, ...] = DEFAULT_ALLOWED_PROGRAMS

    def check(self, max_aux_instructions: int, whitelist: Sequence[str]) -> bool:
        if len(self.program_ids) > max_aux_instructions:
            logger.warning(f"Transaction had {len(self.program_ids)} instructions")
            return False
        allowed = set(self.allowed_programs) | set(whitelist)
        for program_id in self.program_ids:
            if program_id not in allowed:
                logger.warning(f"Transaction had ix with program id {program_id}")
                return False
        return True


class PermissiveGuard:
    """Guard for hosts with no transaction envelope to inspect."""

    def check(self, max_aux_instructions: int, whitelist: Sequence[str]) -> bool:
        return True


# =============================================================================
# Transfers
# =============================================================================

class InMemoryBank:
    """
    Thread-safe lamport balances keyed by account id.

    ``fail_next`` makes the next N transfers to the given destination fail,
    to exercise compensation paths.
    """

    def __init__(self, balances: Optional[Dict[str, int]] = None):
        self._balances: Dict[str, int] = dict(balances or {})
        self._lock = threading.Lock()
        self._failures: Dict[str, int] = {}
        self.history: List[Tuple[str, str, int]] = []

    def balance(self, account: str) -> int:
        with self._lock:
            return self._balances.get(account, 0)

    def mint(self, account: str, amount: int) -> None:
        with self._lock:
            self._balances[account] = self._balances.get(account, 0) + amount

    def fail_next(self, destination: str, times: int = 1) -> None:
        with self._lock:
            self._failures[destination] = self._failures.get(destination, 0) + times

    def transfer(self, source: str, destination: str, amount: int) -> None:
        if amount < 0:
            raise TransferError(source, destination, amount, "negative amount")
        with self._lock:
            pending_failures = self._failures.get(destination, 0)
            if pending_failures:
                self._failures[destination] = pending_failures - 1
                raise TransferError(source, destination, amount, "injected failure")
            available = self._balances.get(source, 0)
            if available < amount:
                raise TransferError(source, destination, amount, "insufficient balance")
            self._balances[source] = available - amount
            self._balances[destination] = self._balances.get(destination, 0) + amount
            self.history.append((source, destination, amount))


# =============================================================================
# NFT issuance
# =============================================================================

@dataclass
class RecordingNftIssuer:
    issued: List[str] = field(default_factory=list)

    def issue(self, player_id: str) -> None:
        self.issued.append(player_id)
