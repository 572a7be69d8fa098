"""Tests for production accrual and the pre-sale production credit."""

import pytest

from shrimpfarm.accrual import (
    accrued_since_last_hatch,
    apply_bonus,
    effective_rate,
    premarket_shrimp,
    total_unbanked,
)
from shrimpfarm.errors import GameArithmeticError
from shrimpfarm.models import PlayerLedger

from .helpers import PREMARKET_END, bare_game


class TestPremarketCredit:
    """Tests for the virtual pre-sale production credit."""

    def test_no_presale_no_credit(self):
        """Should credit nothing when nobody contributed."""
        assert premarket_shrimp(PlayerLedger("alice"), bare_game()) == 0

    def test_sole_contributor_gets_whole_pot(self):
        """Should credit the full pot to a single contributor."""
        game = bare_game(premarket_spent=10_000_000)
        player = PlayerLedger("alice", premarket_spent=10_000_000)
        assert premarket_shrimp(player, game) == 9_000_000

    def test_equal_contributors_split_pot(self):
        """Should give equal contributors equal halves."""
        game = bare_game(premarket_spent=20_000_000)
        alice = PlayerLedger("alice", premarket_spent=10_000_000)
        bob = PlayerLedger("bob", premarket_spent=10_000_000)
        assert premarket_shrimp(alice, game) == premarket_shrimp(bob, game) == 4_500_000

    def test_tiny_contributor_truncates_to_zero(self):
        """Should credit nothing when the share rounds to zero."""
        game = bare_game(premarket_spent=10 ** 12)
        player = PlayerLedger("dust", premarket_spent=1)
        assert premarket_shrimp(player, game) == 0

    def test_credit_is_recomputed_not_stored(self):
        """Should follow the current pre-sale totals without writing to the ledger."""
        player = PlayerLedger("alice", premarket_spent=10_000_000)
        before = premarket_shrimp(player, bare_game(premarket_spent=10_000_000))
        after = premarket_shrimp(player, bare_game(premarket_spent=20_000_000))
        assert after < before
        assert player.shrimp == 0

    def test_effective_rate_adds_stored_shrimp(self):
        """Should add stored shrimp to the credit."""
        game = bare_game(premarket_spent=10_000_000)
        player = PlayerLedger("alice", shrimp=5, premarket_spent=10_000_000)
        assert effective_rate(player, game) == 9_000_005


class TestAccrual:
    """Tests for time-based egg accrual."""

    def test_never_interacted_accrues_from_presale_end(self):
        """Should anchor players with no interaction at the end of the pre-sale."""
        player = PlayerLedger("alice", shrimp=10)
        assert accrued_since_last_hatch(player, bare_game(), PREMARKET_END + 7) == 70

    def test_accrues_from_last_interaction(self):
        """Should anchor at the last interaction when set."""
        player = PlayerLedger("alice", shrimp=10, last_interaction=PREMARKET_END + 5)
        assert accrued_since_last_hatch(player, bare_game(), PREMARKET_END + 7) == 20

    def test_total_unbanked_includes_extra_eggs(self):
        """Should add banked extra eggs."""
        player = PlayerLedger("alice", shrimp=1, extra_eggs=100, last_interaction=PREMARKET_END)
        assert total_unbanked(player, bare_game(), PREMARKET_END + 10) == 110

    def test_clock_before_anchor_aborts(self):
        """Should abort rather than accrue negative eggs."""
        player = PlayerLedger("alice", shrimp=1, last_interaction=PREMARKET_END + 10)
        with pytest.raises(GameArithmeticError):
            accrued_since_last_hatch(player, bare_game(), PREMARKET_END)


class TestBonus:
    """Tests for bonus percentages."""

    def test_no_bonus(self):
        """Should leave eggs unchanged without a bonus."""
        assert apply_bonus(12_345, 0) == 12_345

    def test_nft_and_testnet_bonus(self):
        """Should scale by (100 + bonus) / 100 truncating."""
        assert apply_bonus(100, 11) == 111
        assert apply_bonus(99, 10) == 108


class TestPresaleQueries:
    """Tests for accrual queries made before the market opens."""

    def test_never_interacted_during_presale_has_no_eggs(self):
        """Should report zero eggs instead of underflowing during the pre-sale."""
        player = PlayerLedger("alice", premarket_spent=10_000_000)
        game = bare_game(premarket_spent=10_000_000)
        assert accrued_since_last_hatch(player, game, PREMARKET_END - 100) == 0
        assert total_unbanked(player, game, PREMARKET_END - 100) == 0

    def test_zero_at_market_open(self):
        """Should start accruing only after the pre-sale ends."""
        player = PlayerLedger("alice", shrimp=3)
        assert accrued_since_last_hatch(player, bare_game(), PREMARKET_END) == 0
        assert accrued_since_last_hatch(player, bare_game(), PREMARKET_END + 1) == 3
