"""Tests for referral binding and credits."""

import pytest

from shrimpfarm.errors import ErrorCode, ReferralError
from shrimpfarm.models import PlayerLedger
from shrimpfarm.referral import (
    process_referral,
    referral_amounts,
    should_bind,
    validate_referrer,
)

from .helpers import bare_game, registered


class TestValidation:
    """Tests for referrer validation."""

    def test_unregistered_referrer_rejected(self):
        """Should reject a referrer who never registered."""
        with pytest.raises(ReferralError) as exc_info:
            validate_referrer("alice", PlayerLedger("bob"))
        assert exc_info.value.code is ErrorCode.INVALID_REFERRER

    def test_self_referral_rejected(self):
        """Should reject a player referring themselves."""
        with pytest.raises(ReferralError):
            validate_referrer("alice", registered("alice"))


class TestBinding:
    """Tests for the one-time binding rule."""

    def test_self_paying_player_binds(self):
        """Should bind when the player pays for themselves."""
        player = PlayerLedger("alice", market_spent=100, current_referrer="carol")
        assert should_bind(player, "alice")

    def test_fresh_player_binds_for_any_payer(self):
        """Should bind a brand-new player whoever pays."""
        assert should_bind(PlayerLedger("alice"), "sponsor")

    def test_existing_spender_not_rebound_by_sponsor(self):
        """Should keep the binding when a third party pays for an active player."""
        player = PlayerLedger("alice", premarket_spent=100)
        assert not should_bind(player, "sponsor")


class TestProcessReferral:
    """Tests for referral credits."""

    def test_no_referrer(self):
        """Should do nothing without a referrer."""
        game = bare_game()
        assert process_referral(game, PlayerLedger("alice"), None, 10_000_000, "alice") is None
        assert game.sell_and_ref_balance == 0

    def test_credits_fee_and_cashback(self):
        """Should credit 4% to the referrer and 1% cashback to the buyer."""
        game = bare_game()
        player = PlayerLedger("alice")
        referrer = registered("bob")

        credit = process_referral(game, player, referrer, 10_000_000, "alice")

        assert credit.referral_fee == 400_000
        assert credit.cashback == 100_000
        assert referrer.referral_total == 400_000
        assert player.referral_total == 100_000
        assert player.current_referrer == "bob"
        assert game.sell_and_ref_balance == credit.total == 500_000

    def test_sponsor_does_not_rebind(self):
        """Should credit the supplied referrer but keep the existing binding."""
        game = bare_game()
        player = PlayerLedger("alice", market_spent=10, current_referrer="carol")
        referrer = registered("bob")

        process_referral(game, player, referrer, 10_000_000, "sponsor")

        assert player.current_referrer == "carol"
        assert referrer.referral_total == 400_000

    def test_rejected_referral_leaves_ledgers_untouched(self):
        """Should raise before crediting anything."""
        game = bare_game()
        player = PlayerLedger("alice")
        with pytest.raises(ReferralError):
            process_referral(game, player, PlayerLedger("bob"), 10_000_000, "alice")
        assert player.current_referrer is None
        assert game.sell_and_ref_balance == 0

    def test_referral_amounts_custom_rates(self):
        """Should use the configured percentages."""
        assert referral_amounts(1_000, 5, 2) == (50, 20)
