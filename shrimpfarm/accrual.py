"""
Time-based egg accrual.

A player's effective production rate is their stored shrimp plus a virtual
credit derived from their pre-sale contribution. The credit is a pure
function of the current ledgers and is recomputed on every call; it is
never written back.
"""

from __future__ import annotations

from .checked import checked_add, checked_div, checked_mul, checked_sub
from .constants import EGGS_TO_HATCH_1SHRIMP, FEE, MARKET_START, PREMARKET_SHARE_SCALE
from .curve import buy
from .models import GameInstance, PlayerLedger


def premarket_shrimp(player: PlayerLedger, game: GameInstance, fee_percent: int = FEE) -> int:
    """Production units credited for the player's pre-sale spend."""
    if game.premarket_spent == 0:
        return 0

    player_share = checked_div(
        checked_mul(player.premarket_spent, PREMARKET_SHARE_SCALE),
        game.premarket_spent,
    )
    if player_share == 0:
        return 0

    # What the whole pre-sale pot buys at market-open conditions
    pot_eggs = buy(game.premarket_spent, 0, MARKET_START, fee_percent)
    player_eggs = checked_div(checked_mul(pot_eggs, player_share), PREMARKET_SHARE_SCALE)
    return checked_div(player_eggs, EGGS_TO_HATCH_1SHRIMP)


def effective_rate(player: PlayerLedger, game: GameInstance, fee_percent: int = FEE) -> int:
    return checked_add(player.shrimp, premarket_shrimp(player, game, fee_percent))


def accrued_since_last_hatch(
    player: PlayerLedger,
    game: GameInstance,
    now: int,
    fee_percent: int = FEE,
) -> int:
    """
    Eggs produced since the player's last interaction.

    Players who never interacted accrue from the end of the pre-sale, so no
    eggs exist before the market opens.
    """
    if player.last_interaction == 0:
        if now <= game.premarket_end:
            return 0
        anchor = game.premarket_end
    else:
        anchor = player.last_interaction
    seconds_passed = checked_sub(now, anchor)
    return checked_mul(seconds_passed, effective_rate(player, game, fee_percent))


def total_unbanked(
    player: PlayerLedger,
    game: GameInstance,
    now: int,
    fee_percent: int = FEE,
) -> int:
    return checked_add(player.extra_eggs, accrued_since_last_hatch(player, game, now, fee_percent))


def apply_bonus(eggs: int, bonus_percent: int) -> int:
    if bonus_percent == 0:
        return eggs
    return checked_div(checked_mul(eggs, 100 + bonus_percent), 100)
