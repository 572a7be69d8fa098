"""
Withdrawal settlement.

Computes, in one pass, every category of currency a player may claim and
advances the matching "already withdrawn" counters:

(a) referral and cashback income
(b) sell proceeds, once the market has opened
(c) incremental pre-sale earnings, for contributors after the pre-sale
(d) the one-shot end-game prize, for contributors once the game has ended

Counters are advanced as part of the same update that computes the payable
amount, before any transfer is requested. ``reverse_withdrawal`` undoes a
settlement whose transfer failed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

from .checked import checked_add, checked_sub
from .errors import InsufficientFunds
from .models import GameInstance, Phase, PlayerLedger
from .phase import current_phase, market_reached
from .premarket import prize_share, unclaimed_premarket
from .treasury import deposit, pay_out

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WithdrawalReceipt:
    """Per-category breakdown of one settlement."""
    player_id: str
    referral: int = 0
    sell: int = 0
    premarket: int = 0
    prize: int = 0
    prize_claimed: bool = False

    @property
    def total(self) -> int:
        return self.referral + self.sell + self.premarket + self.prize

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_id": self.player_id,
            "referral": self.referral,
            "sell": self.sell,
            "premarket": self.premarket,
            "prize": self.prize,
            "prize_claimed": self.prize_claimed,
            "total": self.total,
        }


def settle(player: PlayerLedger, game: GameInstance, now: int) -> WithdrawalReceipt:
    """
    Settle all claimable amounts in place and return the receipt.

    Raises:
        InsufficientFunds: nothing is claimable
    """
    referral = checked_sub(player.referral_total, player.referral_withdrawn, bits=64)
    player.referral_withdrawn = checked_add(player.referral_withdrawn, referral, bits=64)

    sell = 0
    if market_reached(game, now):
        sell = checked_sub(player.sell_total, player.sell_withdrawn, bits=64)
        player.sell_withdrawn = checked_add(player.sell_withdrawn, sell, bits=64)

    game.sell_and_ref_balance = checked_sub(
        game.sell_and_ref_balance, checked_add(referral, sell, bits=64), bits=64
    )

    premarket = 0
    prize = 0
    prize_claimed = False
    if player.premarket_spent > 0 and market_reached(game, now):
        premarket = unclaimed_premarket(player, game)
        player.premarket_withdrawn = checked_add(player.premarket_withdrawn, premarket, bits=64)
        game.premarket_balance = checked_sub(game.premarket_balance, premarket, bits=64)

        if current_phase(game, now) is Phase.ENDED and not player.prize_withdrawn:
            prize = prize_share(player, game)
            player.prize_withdrawn = True
            prize_claimed = True

    receipt = WithdrawalReceipt(
        player_id=player.player_id,
        referral=referral,
        sell=sell,
        premarket=premarket,
        prize=prize,
        prize_claimed=prize_claimed,
    )
    if receipt.total == 0:
        raise InsufficientFunds(internal_details=f"player={player.player_id}")

    pay_out(game, receipt.total)
    return receipt


def claimable(player: PlayerLedger, game: GameInstance, now: int) -> WithdrawalReceipt:
    """Preview a settlement without touching the given ledgers."""
    try:
        return settle(player.clone(), game.clone(), now)
    except InsufficientFunds:
        return WithdrawalReceipt(player_id=player.player_id)


def reverse_withdrawal(player: PlayerLedger, game: GameInstance, receipt: WithdrawalReceipt) -> None:
    """Compensating reversal for a settlement whose transfer failed (in place)."""
    if receipt.player_id != player.player_id:
        raise ValueError(f"Receipt for {receipt.player_id} applied to {player.player_id}")

    player.referral_withdrawn = checked_sub(player.referral_withdrawn, receipt.referral, bits=64)
    player.sell_withdrawn = checked_sub(player.sell_withdrawn, receipt.sell, bits=64)
    player.premarket_withdrawn = checked_sub(player.premarket_withdrawn, receipt.premarket, bits=64)
    if receipt.prize_claimed:
        player.prize_withdrawn = False

    game.sell_and_ref_balance = checked_add(
        game.sell_and_ref_balance, receipt.referral + receipt.sell, bits=64
    )
    game.premarket_balance = checked_add(game.premarket_balance, receipt.premarket, bits=64)
    deposit(game, receipt.total)
    logger.info(
        f"Reversed withdrawal of {receipt.total} for {player.player_id}",
        extra={"context": {"player": player.player_id, "amount": receipt.total}},
    )
