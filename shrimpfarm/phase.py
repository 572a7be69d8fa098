"""
Game economy state machine.

    PREMARKET --(now >= premarket_end)--> MARKET --(terminal sell)--> ENDED

The phase is derived from the game ledger and the action's clock reading,
never stored. ``ENDED`` is irreversible: once ``game_over`` is set only
withdrawals remain valid.
"""

from __future__ import annotations

from .checked import checked_add, checked_add_or
from .constants import ENDGAME_LIMIT
from .errors import ErrorCode, PhaseError
from .models import GameInstance, Phase


def current_phase(game: GameInstance, now: int) -> Phase:
    if game.game_over:
        return Phase.ENDED
    if now < game.premarket_end:
        return Phase.PREMARKET
    return Phase.MARKET


def require_premarket(game: GameInstance, now: int) -> None:
    phase = current_phase(game, now)
    if phase is Phase.ENDED:
        raise PhaseError(ErrorCode.GAME_OVER)
    if phase is not Phase.PREMARKET:
        raise PhaseError(
            ErrorCode.PREMARKET_OVER,
            internal_details=f"now={now} premarket_end={game.premarket_end}",
        )


def require_market(game: GameInstance, now: int) -> None:
    phase = current_phase(game, now)
    if phase is Phase.PREMARKET:
        raise PhaseError(
            ErrorCode.PREMARKET_IN_PROGRESS,
            internal_details=f"now={now} premarket_end={game.premarket_end}",
        )
    if phase is Phase.ENDED:
        raise PhaseError(ErrorCode.GAME_OVER)


def market_reached(game: GameInstance, now: int) -> bool:
    """True once the pre-sale has ended (MARKET or ENDED)."""
    return current_phase(game, now) is not Phase.PREMARKET


def require_cooldown(last_action: int, game: GameInstance, now: int, code: ErrorCode) -> None:
    ready_at = checked_add(last_action, game.cooldown, bits=64)
    if now < ready_at:
        raise PhaseError(code, internal_details=f"now={now} ready_at={ready_at}")


def crosses_endgame(game: GameInstance, eggs_sold: int) -> bool:
    """
    Whether selling ``eggs_sold`` would push the reserve past the ceiling.

    An overflowing sum counts as past the ceiling, so the game ends instead
    of aborting.
    """
    new_market_eggs = checked_add_or(game.market_eggs, eggs_sold, ENDGAME_LIMIT + 1)
    return new_market_eggs > ENDGAME_LIMIT


def end_game(game: GameInstance, final_balance: int) -> None:
    """Irreversible terminal transition (in place)."""
    game.game_over = True
    game.final_balance = final_balance
