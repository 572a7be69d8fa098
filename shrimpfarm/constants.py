"""
Protocol constants for the shrimp farm economy.

These values define the shape of the bonding curve and the fixed-point
scales used by share accounting. Tunable economic parameters (fees,
minimum buys) live in :mod:`shrimpfarm.config`; the values here are their
defaults.
"""

from __future__ import annotations

# =============================================================================
# Integer widths
# =============================================================================

U8_MAX = (1 << 8) - 1
U16_MAX = (1 << 16) - 1
U64_MAX = (1 << 64) - 1
U128_MAX = (1 << 128) - 1

# =============================================================================
# Curve
# =============================================================================

PSN = 10_000
PSNH = 5_000

ENDGAME_LIMIT = 10 ** 34

EGGS_TO_HATCH_1SHRIMP = 86_400  # one day of production per shrimp
MARKET_START = 864_000_000_000  # reserve at market open

# Pre-sale share of total spend, used for the virtual production credit
PREMARKET_SHARE_SCALE = 100_000

# Fixed-point factor for proportional payouts (2**64)
SCALE = 1 << 64

# =============================================================================
# Fees and bonuses (percent)
# =============================================================================

DEV_FEE = 4
PREMARKET_FEE = 6
FEE = DEV_FEE + PREMARKET_FEE
REFERRAL_FEE = 4
REFERRAL_CASHBACK = 1
NFT_BONUS = 10
TESTNET_BONUS = 1

# =============================================================================
# Limits (lamports unless noted)
# =============================================================================

MIN_BUY = 10_000_000
NFT_MIN_BUY = 1_000_000_000
NFT_SUPPLY = 1024
USERNAME_MAX_LEN = 12

DEFAULT_MAX_AUX_INSTRUCTIONS = 5
MAX_AUX_INSTRUCTIONS_LIMIT = 20  # exclusive
MAX_WHITELIST_LEN = 10

# Rent-exempt minimum kept in the treasury for the game record itself
DEFAULT_RENT_RESERVE = 2_477_760

# Dev bucket split, in twentieths (5% units): 45 / 40 / 15
DEV_SPLIT_UNITS = 20
DEV2_UNITS = 8
DEV3_UNITS = 3
