"""
Bonding curve pricing.

Converts currency into curve reserve units (eggs) and back. All math is
unsigned 128-bit with truncating division; any overflow or division by zero
aborts the calling action.

    trade(rt, rs, bs) = PSN*bs / (PSNH + (PSN*rs + PSNH*rt) / rt)
"""

from __future__ import annotations

from .checked import checked_add, checked_div, checked_mul, checked_sub
from .constants import FEE, PSN, PSNH


def trade(rt: int, rs: int, bs: int) -> int:
    """
    Price ``rt`` units of one side against reserves ``rs`` (same side) and
    ``bs`` (other side).

    Preconditions:
        - rt > 0 (division by zero aborts otherwise)

    Postconditions:
        - result <= bs
    """
    psn_bs = checked_mul(PSN, bs)
    psnh_rt = checked_mul(PSNH, rt)
    psn_rs = checked_mul(PSN, rs)

    x = checked_add(PSNH, checked_div(checked_add(psn_rs, psnh_rt), rt))
    return checked_div(psn_bs, x)


def buy(amount: int, reserve_balance: int, yield_reserve: int, fee_percent: int = FEE) -> int:
    """Eggs received for ``amount`` currency, net of the purchase fee."""
    eggs = trade(amount, reserve_balance, yield_reserve)
    fee = checked_div(checked_mul(eggs, fee_percent), 100)
    return checked_sub(eggs, fee)


def sell(yield_amount: int, yield_reserve: int, reserve_balance: int) -> int:
    """Gross currency for ``yield_amount`` eggs; the caller deducts fees."""
    return trade(yield_amount, yield_reserve, reserve_balance)
