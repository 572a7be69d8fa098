"""
Shrimp farm ledgers.

Defines the state records the engine operates on:
- GameInstance: one per deployed game (curve reserve, reserved buckets, counters)
- PlayerLedger: one per participant per game, never deleted
- InitLock: idempotent guard against re-creating a game

Design Principles:
- Ledgers are plain mutable dataclasses; the engine only ever mutates
  copies made with ``clone()`` and hands the copies back on success
- All amounts are unsigned integers (u64 lamports, u128 eggs/shrimp)
- Referrers are weak references (player ids), never nested ledgers
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .constants import DEFAULT_MAX_AUX_INSTRUCTIONS, MARKET_START


class Phase(Enum):
    """Game economy phases, in order."""
    PREMARKET = "premarket"
    MARKET = "market"
    ENDED = "ended"


@dataclass
class InitLock:
    """
    Lock record set by the first non-test initialization.

    ``instances`` counts initializations so every (re-)created test game
    gets its own treasury account.
    """
    locked: bool = False
    instances: int = 0

    def clone(self) -> "InitLock":
        return replace(self)


@dataclass
class GameInstance:
    """
    Aggregate state of one game.

    Invariants:
    - raw_balance >= dev_balance + premarket_balance + sell_and_ref_balance
    - market_eggs never decreases except through the test-only set_market
    - len(program_whitelist) <= 10
    """
    authority: str
    dev1: str
    dev2: str
    dev3: str

    premarket_end: int
    cooldown: int

    # Curve
    market_eggs: int = MARKET_START

    # Treasury
    raw_balance: int = 0
    rent_reserve: int = 0
    dev_balance: int = 0
    premarket_balance: int = 0
    sell_and_ref_balance: int = 0
    final_balance: int = 0

    # Pre-sale totals
    premarket_spent: int = 0
    premarket_earned: int = 0

    # Progression
    game_over: bool = False
    event_index: int = 1
    game_index: int = 1
    nfts_minted: int = 0
    test_env: bool = False

    # Initialization sequence number, keys the treasury account
    instance: int = 1

    # Instruction guard configuration
    max_aux_instructions: int = DEFAULT_MAX_AUX_INSTRUCTIONS
    program_whitelist: Tuple[str, ...] = ()

    def clone(self) -> "GameInstance":
        return replace(self)

    def dev_payees(self) -> Tuple[str, str, str]:
        return (self.dev1, self.dev2, self.dev3)

    def reserved_total(self) -> int:
        return self.dev_balance + self.premarket_balance + self.sell_and_ref_balance

    def check_invariants(self) -> Tuple[bool, List[str]]:
        """Return ``(ok, failed_invariant_names)``."""
        failed: List[str] = []
        if self.raw_balance < self.reserved_total():
            failed.append("reserved_buckets_within_raw_balance")
        if len(self.program_whitelist) > 10:
            failed.append("whitelist_bounded")
        if self.premarket_earned < self.premarket_balance:
            failed.append("premarket_balance_within_earned")
        for name in (
            "market_eggs", "raw_balance", "dev_balance", "premarket_balance",
            "sell_and_ref_balance", "final_balance", "premarket_spent", "premarket_earned",
        ):
            if getattr(self, name) < 0:
                failed.append(f"{name}_non_negative")
        return (not failed, failed)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["program_whitelist"] = list(self.program_whitelist)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GameInstance":
        payload = dict(data)
        payload["program_whitelist"] = tuple(payload.get("program_whitelist", ()))
        return cls(**payload)


@dataclass
class PlayerLedger:
    """
    Per-player accounting record.

    Invariants:
    - referral_withdrawn <= referral_total
    - sell_withdrawn <= sell_total
    - current_referrer, once set, is never cleared
    """
    player_id: str

    # Production
    shrimp: int = 0
    extra_eggs: int = 0

    # Activity timestamps (unix seconds)
    last_interaction: int = 0
    last_hatch: int = 0
    last_sell: int = 0

    # Earnings
    referral_total: int = 0
    sell_total: int = 0
    referral_withdrawn: int = 0
    sell_withdrawn: int = 0
    premarket_withdrawn: int = 0

    # Expenditure
    premarket_spent: int = 0
    market_spent: int = 0

    current_referrer: Optional[str] = None

    prize_withdrawn: bool = False
    minted: bool = False
    testnet_player: bool = False
    registered: bool = False

    def clone(self) -> "PlayerLedger":
        return replace(self)

    @property
    def total_spent(self) -> int:
        return self.premarket_spent + self.market_spent

    def check_invariants(self) -> Tuple[bool, List[str]]:
        failed: List[str] = []
        if self.referral_withdrawn > self.referral_total:
            failed.append("referral_withdrawn_within_total")
        if self.sell_withdrawn > self.sell_total:
            failed.append("sell_withdrawn_within_total")
        if self.current_referrer == self.player_id:
            failed.append("no_self_referral")
        return (not failed, failed)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlayerLedger":
        return cls(**data)


def treasury_account(game: GameInstance) -> str:
    """Account id of the game's treasury for the transfer primitive."""
    return f"treasury:{game.authority}:{game.instance}"
