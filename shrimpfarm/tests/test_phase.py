"""Tests for the game phase state machine."""

import pytest

from shrimpfarm.constants import ENDGAME_LIMIT, U128_MAX
from shrimpfarm.errors import ErrorCode, PhaseError
from shrimpfarm.models import Phase
from shrimpfarm.phase import (
    crosses_endgame,
    current_phase,
    end_game,
    market_reached,
    require_cooldown,
    require_market,
    require_premarket,
)

from .helpers import PREMARKET_END, bare_game


class TestCurrentPhase:
    """Tests for phase derivation."""

    def test_before_end_is_premarket(self):
        """Should be in pre-sale strictly before the boundary."""
        assert current_phase(bare_game(), PREMARKET_END - 1) is Phase.PREMARKET

    def test_boundary_is_market(self):
        """Should open the market exactly at the boundary."""
        assert current_phase(bare_game(), PREMARKET_END) is Phase.MARKET
        assert market_reached(bare_game(), PREMARKET_END)

    def test_game_over_is_ended(self):
        """Should report ENDED regardless of the clock."""
        game = bare_game(game_over=True)
        assert current_phase(game, PREMARKET_END - 1) is Phase.ENDED
        assert market_reached(game, PREMARKET_END + 1)


class TestPhaseGuards:
    """Tests for phase requirements."""

    def test_premarket_purchase_after_end(self):
        """Should reject pre-sale actions once the market opened."""
        with pytest.raises(PhaseError) as exc_info:
            require_premarket(bare_game(), PREMARKET_END)
        assert exc_info.value.code is ErrorCode.PREMARKET_OVER

    def test_market_action_during_presale(self):
        """Should reject market actions during the pre-sale."""
        with pytest.raises(PhaseError) as exc_info:
            require_market(bare_game(), PREMARKET_END - 1)
        assert exc_info.value.code is ErrorCode.PREMARKET_IN_PROGRESS

    def test_market_action_after_game_over(self):
        """Should reject market actions once the game ended."""
        with pytest.raises(PhaseError) as exc_info:
            require_market(bare_game(game_over=True), PREMARKET_END + 1)
        assert exc_info.value.code is ErrorCode.GAME_OVER

    def test_cooldown(self):
        """Should accept exactly at last_action + cooldown and reject before."""
        game = bare_game(cooldown=300)
        require_cooldown(1_000, game, 1_300, ErrorCode.SELL_COOLDOWN_NOT_REACHED)
        with pytest.raises(PhaseError) as exc_info:
            require_cooldown(1_000, game, 1_299, ErrorCode.SELL_COOLDOWN_NOT_REACHED)
        assert exc_info.value.code is ErrorCode.SELL_COOLDOWN_NOT_REACHED


class TestEndgame:
    """Tests for the terminal trigger."""

    def test_reaching_limit_is_not_terminal(self):
        """Should only trigger strictly past the ceiling."""
        game = bare_game(market_eggs=ENDGAME_LIMIT - 5)
        assert not crosses_endgame(game, 5)
        assert crosses_endgame(game, 6)

    def test_overflow_counts_as_terminal(self):
        """Should treat an overflowing sum as past the ceiling."""
        game = bare_game(market_eggs=U128_MAX)
        assert crosses_endgame(game, 1)

    def test_end_game_snapshots_balance(self):
        """Should set the flag and the prize snapshot."""
        game = bare_game()
        end_game(game, 12_345)
        assert game.game_over
        assert game.final_balance == 12_345
