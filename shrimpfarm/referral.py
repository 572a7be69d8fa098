"""
Referral ledger.

A referrer is bound to a player at most once under the binding rule, and
every purchase made with a referrer credits a referral fee to the referrer
and a cashback to the buyer. Credits are reserved in the game's
``sell_and_ref_balance`` bucket and paid out later through withdrawal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from .checked import checked_add, percent_of
from .constants import REFERRAL_CASHBACK, REFERRAL_FEE
from .errors import ErrorCode, ReferralError
from .models import GameInstance, PlayerLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReferralCredit:
    """Amounts credited by one purchase."""
    referrer: str
    referral_fee: int
    cashback: int

    @property
    def total(self) -> int:
        return self.referral_fee + self.cashback


def validate_referrer(player_id: str, referrer: PlayerLedger) -> None:
    if not referrer.registered:
        raise ReferralError(
            ErrorCode.INVALID_REFERRER,
            internal_details=f"referrer {referrer.player_id} is not registered",
        )
    if referrer.player_id == player_id:
        raise ReferralError(
            ErrorCode.INVALID_REFERRER,
            internal_details=f"self-referral by {player_id}",
        )


def should_bind(player: PlayerLedger, payer_id: str) -> bool:
    """
    Binding rule, preserved as written: the player paying for themselves may
    (re)bind, and a brand-new player (no referrer, nothing spent) is bound
    whoever pays.
    """
    if player.player_id == payer_id:
        return True
    return (
        player.current_referrer is None
        and player.premarket_spent == 0
        and player.market_spent == 0
    )


def referral_amounts(
    amount: int,
    fee_percent: int = REFERRAL_FEE,
    cashback_percent: int = REFERRAL_CASHBACK,
) -> Tuple[int, int]:
    return percent_of(amount, fee_percent), percent_of(amount, cashback_percent)


def process_referral(
    game: GameInstance,
    player: PlayerLedger,
    referrer: Optional[PlayerLedger],
    amount: int,
    payer_id: str,
    fee_percent: int = REFERRAL_FEE,
    cashback_percent: int = REFERRAL_CASHBACK,
) -> Optional[ReferralCredit]:
    """
    Validate, bind and credit a referral in place.

    Must run before the purchase is added to the player's spend totals.
    Returns None when no referrer was supplied.
    """
    if referrer is None:
        return None

    validate_referrer(player.player_id, referrer)

    if should_bind(player, payer_id):
        if player.current_referrer != referrer.player_id:
            logger.debug(f"Binding referrer {referrer.player_id} to {player.player_id}")
        player.current_referrer = referrer.player_id

    ref_fee, cashback = referral_amounts(amount, fee_percent, cashback_percent)

    referrer.referral_total = checked_add(referrer.referral_total, ref_fee, bits=64)
    player.referral_total = checked_add(player.referral_total, cashback, bits=64)
    game.sell_and_ref_balance = checked_add(
        checked_add(game.sell_and_ref_balance, ref_fee, bits=64), cashback, bits=64
    )

    return ReferralCredit(referrer=referrer.player_id, referral_fee=ref_fee, cashback=cashback)
