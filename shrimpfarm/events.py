"""
Structured, append-only game events.

Curve-affecting events carry both the global ``event_index`` and the
``game_index``; bookkeeping-only events carry ``event_index``. Formatting
for any particular log sink is left to the host.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class GameEvent:
    """Base event."""

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind
        return data


@dataclass(frozen=True)
class Initialized(GameEvent):
    authority: str
    dev1: str
    dev2: str
    dev3: str
    premarket_end: int
    test_env: bool


@dataclass(frozen=True)
class PreMarketBuy(GameEvent):
    game_index: int
    event_index: int
    player: str
    referrer: Optional[str]
    game_balance: int
    sol_amount: int
    timestamp: int


@dataclass(frozen=True)
class Buy(GameEvent):
    game_index: int
    event_index: int
    player: str
    referrer: Optional[str]
    game_balance: int
    sol_amount: int
    shrimp: int
    extra_eggs: int
    timestamp: int


@dataclass(frozen=True)
class Sell(GameEvent):
    game_index: int
    event_index: int
    player: str
    market_eggs: int
    game_balance: int
    sol_amount: int
    eggs_sold: int
    bonus_percent: int
    timestamp: int


@dataclass(frozen=True)
class Hatch(GameEvent):
    game_index: int
    event_index: int
    player: str
    shrimp: int
    bonus_percent: int
    timestamp: int


@dataclass(frozen=True)
class UserRegistered(GameEvent):
    event_index: int
    player: str
    username: str
    timestamp: int


@dataclass(frozen=True)
class UserWithdrawn(GameEvent):
    event_index: int
    player: str
    amount: int
    sell_total: int
    premarket_withdrawn: int
    referral_withdrawn: int
    sell_withdrawn: int
    game_over: bool
    prize_withdrawn: bool


@dataclass(frozen=True)
class DevWithdrawn(GameEvent):
    event_index: int
    dev_balance: int
    dev1_amount: int
    dev2_amount: int
    dev3_amount: int


@dataclass(frozen=True)
class MarketUpdated(GameEvent):
    event_index: int
    new_market_eggs: int


@dataclass(frozen=True)
class PremarketEnded(GameEvent):
    event_index: int
    premarket_end: int


@dataclass(frozen=True)
class ProgramGuardsUpdated(GameEvent):
    event_index: int
    max_aux_instructions: int
    program_whitelist: Tuple[str, ...]


@dataclass(frozen=True)
class PlayerBonusToggled(GameEvent):
    event_index: int
    player: str
    new_state: bool
