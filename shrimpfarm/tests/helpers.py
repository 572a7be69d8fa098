"""Shared builders and hypothesis strategies for shrimp farm tests.

Builders return ledgers in realistic states (freshly initialized game,
market open, player with production) so individual tests only state what
they vary.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Tuple

from hypothesis import strategies as st

from shrimpfarm.auth import ConfigAuthority, DeployOwner, DevPayee, PlayerSigner
from shrimpfarm.constants import DEFAULT_RENT_RESERVE, MIN_BUY, U64_MAX
from shrimpfarm.engine import ActionContext, GameEngine
from shrimpfarm.models import GameInstance, InitLock, PlayerLedger

# =============================================================================
# Constants / Bounds
# =============================================================================

OWNER = "owner"
DEVS = ("dev1", "dev2", "dev3")
START = 1_700_000_000
PREMARKET_END = START + 3_600
MARKET_NOW = PREMARKET_END + 60

MAX_AMOUNT = 1_000 * 1_000_000_000  # 1000 SOL


# =============================================================================
# Builders
# =============================================================================

def new_game(
    engine: GameEngine,
    test_env: bool = True,
    cooldown: int = 0,
    premarket_end: int = PREMARKET_END,
) -> GameInstance:
    result = engine.initialize(
        InitLock(), DeployOwner(OWNER), OWNER, *DEVS,
        premarket_end=premarket_end, cooldown=cooldown, test_env=test_env,
    )
    return result.game


def bare_game(**overrides) -> GameInstance:
    """Game record with an empty pre-sale and only the rent reserve in the treasury."""
    game = GameInstance(
        authority=OWNER,
        dev1=DEVS[0],
        dev2=DEVS[1],
        dev3=DEVS[2],
        premarket_end=PREMARKET_END,
        cooldown=0,
        raw_balance=DEFAULT_RENT_RESERVE,
        rent_reserve=DEFAULT_RENT_RESERVE,
        dev_balance=DEFAULT_RENT_RESERVE,
        test_env=True,
    )
    return replace(game, **overrides)


def registered(player_id: str, spent: int = MIN_BUY) -> PlayerLedger:
    return PlayerLedger(player_id=player_id, premarket_spent=spent, registered=True)


def signer(player: PlayerLedger) -> PlayerSigner:
    return PlayerSigner(player.player_id)


def authority(game: GameInstance) -> ConfigAuthority:
    return ConfigAuthority(game.authority)


def dev_payee(game: GameInstance, caller: str = DEVS[0]) -> DevPayee:
    return DevPayee(game.authority, caller)


def ctx(now: int = MARKET_NOW, guard_passed: bool = True) -> ActionContext:
    return ActionContext(now=now, guard_passed=guard_passed)


def market_player(
    engine: GameEngine,
    game: GameInstance,
    player_id: str = "alice",
    amount: int = MIN_BUY,
    now: int = MARKET_NOW,
) -> Tuple[GameInstance, PlayerLedger]:
    """Run one market purchase and return the updated ledgers."""
    player = PlayerLedger(player_id=player_id)
    result = engine.buy_shrimp(game, player, PlayerSigner(player_id), amount, ctx(now))
    return result.game, result.player(player_id)


# =============================================================================
# Strategies
# =============================================================================

amounts = st.integers(min_value=MIN_BUY, max_value=MAX_AMOUNT)
u64s = st.integers(min_value=0, max_value=U64_MAX)
spends = st.lists(st.integers(min_value=1, max_value=MAX_AMOUNT), min_size=1, max_size=20)
