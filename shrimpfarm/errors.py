"""Error types raised by the shrimp farm engine.

Every rejection carries an :class:`ErrorCode` and a safe, user-facing
message. Internal details (raw operands, ledger values) are logged, never
placed in the message. All errors are terminal for the action that raised
them; the engine performs no retries.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    """Machine-readable rejection reasons."""
    BUY_AMOUNT_TOO_LOW = "buy_amount_too_low"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    PREMARKET_IN_PROGRESS = "premarket_in_progress"
    NO_EGGS = "no_eggs"
    PREMARKET_OVER = "premarket_over"
    INVALID_OWNER = "invalid_owner"
    GAME_OVER = "game_over"
    INVALID_USERNAME = "invalid_username"
    USERNAME_TAKEN = "username_taken"
    ALREADY_REGISTERED = "already_registered"
    SELL_COOLDOWN_NOT_REACHED = "sell_cooldown_not_reached"
    HATCH_COOLDOWN_NOT_REACHED = "hatch_cooldown_not_reached"
    NOT_TEST_ENV = "not_test_env"
    INVALID_SIGNER = "invalid_signer"
    INIT_LOCKED = "init_locked"
    INVALID_DEVS = "invalid_devs"
    BAD_INSTRUCTION = "bad_instruction"
    INVALID_PROGRAM_GUARDS = "invalid_program_guards"
    MIN_BUY_NOT_MET = "min_buy_not_met"
    INVALID_REFERRER = "invalid_referrer"
    INVALID_ARGUMENT = "invalid_argument"
    ARITHMETIC_OVERFLOW = "arithmetic_overflow"
    ARITHMETIC_UNDERFLOW = "arithmetic_underflow"
    DIVISION_BY_ZERO = "division_by_zero"


_DEFAULT_MESSAGES = {
    ErrorCode.BUY_AMOUNT_TOO_LOW: "Buy amount below the minimum",
    ErrorCode.INSUFFICIENT_FUNDS: "Amount to withdraw is 0",
    ErrorCode.PREMARKET_IN_PROGRESS: "PreMarket is in progress",
    ErrorCode.NO_EGGS: "No eggs",
    ErrorCode.PREMARKET_OVER: "Premarket is over",
    ErrorCode.INVALID_OWNER: "Invalid owner",
    ErrorCode.GAME_OVER: "Game Over",
    ErrorCode.INVALID_USERNAME: "Invalid username",
    ErrorCode.USERNAME_TAKEN: "Username is taken",
    ErrorCode.ALREADY_REGISTERED: "Already registered",
    ErrorCode.SELL_COOLDOWN_NOT_REACHED: "Sell on cooldown",
    ErrorCode.HATCH_COOLDOWN_NOT_REACHED: "Hatch on cooldown",
    ErrorCode.NOT_TEST_ENV: "Operation allowed only in a test environment",
    ErrorCode.INVALID_SIGNER: "Invalid signer",
    ErrorCode.INIT_LOCKED: "Initialization locked",
    ErrorCode.INVALID_DEVS: "Invalid devs",
    ErrorCode.BAD_INSTRUCTION: "Bad instruction found",
    ErrorCode.INVALID_PROGRAM_GUARDS: "Invalid program guards",
    ErrorCode.MIN_BUY_NOT_MET: "Must buy before registering",
    ErrorCode.INVALID_REFERRER: "Invalid referrer",
    ErrorCode.INVALID_ARGUMENT: "Invalid argument",
    ErrorCode.ARITHMETIC_OVERFLOW: "Arithmetic overflow",
    ErrorCode.ARITHMETIC_UNDERFLOW: "Arithmetic underflow",
    ErrorCode.DIVISION_BY_ZERO: "Division by zero",
}


class GameError(Exception):
    """Base class for all engine rejections."""

    def __init__(
        self,
        code: ErrorCode,
        user_message: Optional[str] = None,
        internal_details: Optional[str] = None,
    ):
        """
        Args:
            code: Rejection reason
            user_message: Safe message to show to callers
            internal_details: Details for logging only
        """
        self.code = code
        self.user_message = user_message or _DEFAULT_MESSAGES.get(code, code.value)
        self.internal_details = internal_details
        super().__init__(self.user_message)

        if internal_details:
            logger.debug(f"{type(self).__name__}[{code.value}] internal: {internal_details}")


class ValidationError(GameError):
    """Input rejected before any mutation."""


class GameArithmeticError(GameError, ArithmeticError):
    """Overflow, underflow or division by zero; aborts the whole action."""


class PhaseError(GameError):
    """Wrong phase, cooldown not elapsed, or game already over."""


class ReferralError(GameError):
    """Self-referral or unregistered referrer."""


class AuthorizationError(GameError):
    """Missing capability, or a test-only action outside a test environment."""


class InsufficientFunds(GameError):
    """Nothing to withdraw."""

    def __init__(self, internal_details: Optional[str] = None):
        super().__init__(ErrorCode.INSUFFICIENT_FUNDS, internal_details=internal_details)


class InitLocked(GameError):
    """Game creation attempted after the init lock was set."""

    def __init__(self) -> None:
        super().__init__(ErrorCode.INIT_LOCKED)


class TransferError(Exception):
    """Raised by a transfer primitive when currency could not be moved."""

    def __init__(self, source: str, destination: str, amount: int, reason: Optional[str] = None):
        self.source = source
        self.destination = destination
        self.amount = amount
        self.reason = reason
        super().__init__(f"Transfer of {amount} from {source} to {destination} failed: {reason or 'unknown'}")
