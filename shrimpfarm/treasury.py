"""
Treasury accounting.

The game holds a single raw balance. Three reserved buckets are carved out
of it (dev fees, pre-sale earnings, sell proceeds and referrals); what
remains is the free ``game_balance`` the curve trades against. A reserved
bucket exceeding the raw balance is an invariant violation and aborts.
"""

from __future__ import annotations

from dataclasses import dataclass

from .checked import checked_add, checked_sub
from .constants import DEV2_UNITS, DEV3_UNITS, DEV_SPLIT_UNITS
from .errors import ErrorCode, InsufficientFunds, ValidationError
from .models import GameInstance


def game_balance(game: GameInstance) -> int:
    balance = checked_sub(game.raw_balance, game.sell_and_ref_balance, bits=64)
    balance = checked_sub(balance, game.dev_balance, bits=64)
    return checked_sub(balance, game.premarket_balance, bits=64)


def deposit(game: GameInstance, amount: int) -> None:
    game.raw_balance = checked_add(game.raw_balance, amount, bits=64)


def pay_out(game: GameInstance, amount: int) -> None:
    game.raw_balance = checked_sub(game.raw_balance, amount, bits=64)


@dataclass(frozen=True)
class DevSplit:
    """Distribution of the dev bucket above the rent reserve."""
    distributable: int
    dev1_amount: int
    dev2_amount: int
    dev3_amount: int


def split_dev_balance(dev_balance: int, rent_reserve: int) -> DevSplit:
    """
    Split ``dev_balance - rent_reserve`` as 45% / 40% / 15%.

    dev2 and dev3 are computed from 5% units; dev1 takes the remainder so no
    lamport is lost to truncation.
    """
    if dev_balance <= rent_reserve:
        raise InsufficientFunds(
            internal_details=f"dev_balance {dev_balance} <= reserve {rent_reserve}"
        )
    distributable = dev_balance - rent_reserve
    base = distributable // DEV_SPLIT_UNITS
    dev2_amount = base * DEV2_UNITS
    dev3_amount = base * DEV3_UNITS
    dev1_amount = distributable - (dev2_amount + dev3_amount)
    return DevSplit(distributable, dev1_amount, dev2_amount, dev3_amount)


def apply_dev_withdrawal(game: GameInstance) -> DevSplit:
    """Carve the dev payout out of the treasury in place."""
    split = split_dev_balance(game.dev_balance, game.rent_reserve)
    game.dev_balance = game.rent_reserve
    pay_out(game, split.distributable)
    return split


def restore_dev_payout(game: GameInstance, amount: int) -> None:
    """Compensate a dev transfer that never left the treasury."""
    if amount < 0:
        raise ValidationError(ErrorCode.INVALID_ARGUMENT, "amount must be non-negative")
    game.dev_balance = checked_add(game.dev_balance, amount, bits=64)
    deposit(game, amount)
