"""Tests for bonding curve pricing."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from shrimpfarm.constants import EGGS_TO_HATCH_1SHRIMP, MARKET_START
from shrimpfarm.curve import buy, sell, trade
from shrimpfarm.errors import ErrorCode, GameArithmeticError

from .helpers import MAX_AMOUNT


class TestTrade:
    """Tests for the raw trade formula."""

    def test_first_market_purchase(self):
        """Should price the first purchase against an empty balance at the full reserve."""
        assert trade(10_000_000, 0, MARKET_START) == 864_000_000_000

    def test_first_purchase_after_fee(self):
        """Should deduct the 10% fee and convert to 9M shrimp."""
        eggs = buy(10_000_000, 0, MARKET_START)
        assert eggs == 777_600_000_000
        assert eggs // EGGS_TO_HATCH_1SHRIMP == 9_000_000

    def test_zero_input_aborts(self):
        """Should abort on a zero input amount."""
        with pytest.raises(GameArithmeticError) as exc_info:
            trade(0, 100, 100)
        assert exc_info.value.code is ErrorCode.DIVISION_BY_ZERO

    def test_sell_has_no_fee(self):
        """Should return the raw trade value on sell."""
        assert sell(86_400, MARKET_START, 9_000_000) == trade(86_400, MARKET_START, 9_000_000)

    def test_sell_against_empty_balance(self):
        """Should return nothing when the free balance is empty."""
        assert sell(1_000_000, MARKET_START, 0) == 0

    def test_custom_fee(self):
        """Should honor a configured fee."""
        assert buy(10_000_000, 0, MARKET_START, fee_percent=0) == 864_000_000_000


@given(
    rt=st.integers(min_value=1, max_value=MAX_AMOUNT),
    rs=st.integers(min_value=0, max_value=MAX_AMOUNT),
    bs=st.integers(min_value=0, max_value=10 ** 30),
)
@settings(max_examples=200, deadline=None, derandomize=True)
def test_trade_never_exceeds_other_reserve(rt, rs, bs):
    """Should never pay out more than the opposite reserve."""
    assert trade(rt, rs, bs) <= bs


@given(
    a=st.integers(min_value=1, max_value=MAX_AMOUNT),
    b=st.integers(min_value=1, max_value=MAX_AMOUNT),
    balance=st.integers(min_value=0, max_value=MAX_AMOUNT),
)
@settings(max_examples=200, deadline=None, derandomize=True)
def test_buy_is_monotonic_in_amount(a, b, balance):
    """Should never give fewer eggs for a larger purchase."""
    low, high = sorted((a, b))
    assert buy(low, balance, MARKET_START) <= buy(high, balance, MARKET_START)
