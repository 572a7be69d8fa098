"""
Pre-sale pool accounting.

Contributions made before the market opens are pooled. Each contributor
later receives a proportional share of two independent pools:

1. ``premarket_earned``: fees collected from market activity, paid
   incrementally as the pool grows
2. ``final_balance``: the end-game prize snapshotted at the terminal
   transition, paid once

Shares use a 2**64 fixed-point scale so the two sequential truncating
divisions lose at most the fractional remainder; the sum over all players
never exceeds the pool.
"""

from __future__ import annotations

from .checked import checked_add, checked_div, checked_mul, checked_sub, to_u64
from .constants import SCALE
from .models import GameInstance, PlayerLedger


def share(player_spent: int, total_spent: int) -> int:
    """Player's fraction of the pre-sale, scaled by 2**64. Zero if nobody spent."""
    if total_spent == 0:
        return 0
    return checked_div(checked_mul(player_spent, SCALE), total_spent)


def earned(player_share: int, pool_total: int) -> int:
    return to_u64(checked_div(checked_mul(player_share, pool_total), SCALE))


def record_contribution(game: GameInstance, player: PlayerLedger, amount: int) -> None:
    """Accumulate a pre-sale contribution on both ledgers (in place)."""
    game.premarket_spent = checked_add(game.premarket_spent, amount, bits=64)
    player.premarket_spent = checked_add(player.premarket_spent, amount, bits=64)


def unclaimed_premarket(player: PlayerLedger, game: GameInstance) -> int:
    """
    Incremental pre-sale payout: earned to date minus already withdrawn.

    Zero when the pool has not grown since the last claim.
    """
    player_share = share(player.premarket_spent, game.premarket_spent)
    total = earned(player_share, game.premarket_earned)
    return checked_sub(total, player.premarket_withdrawn)


def prize_share(player: PlayerLedger, game: GameInstance) -> int:
    """Player's cut of the snapshotted end-game prize."""
    player_share = share(player.premarket_spent, game.premarket_spent)
    return earned(player_share, game.final_balance)
