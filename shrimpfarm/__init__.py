"""
Shrimp farm - accounting engine for a bonding-curve idle game.

Provides:
- Bonding-curve pricing of purchases and sales
- Time-based egg accrual with a pre-sale production credit
- Pre-sale pool shares, referral credits and a one-shot end-game prize
- Treasury buckets, withdrawals and the 45/40/15 dev split
- A pure engine plus an in-memory host with two-phase payouts
"""

from .models import GameInstance, InitLock, Phase, PlayerLedger
from .errors import (
    ErrorCode,
    GameError,
    ValidationError,
    GameArithmeticError,
    PhaseError,
    ReferralError,
    AuthorizationError,
    InsufficientFunds,
    InitLocked,
    TransferError,
)
from .auth import Authorizer, ConfigAuthority, DeployOwner, DevPayee, PlayerSigner
from .engine import ActionContext, ActionResult, GameEngine, TransferRequest
from .settlement import WithdrawalReceipt
from .treasury import DevSplit
from .payouts import IntentState, PayoutExecutor, PayoutIntent, PayoutJournal
from .service import GameService
from .config import (
    EconomyConfig,
    GuardConfig,
    LoggingConfig,
    ShrimpFarmConfig,
    get_config,
    set_config,
    reset_config,
)

__all__ = [
    # Ledgers
    "GameInstance",
    "InitLock",
    "Phase",
    "PlayerLedger",
    # Errors
    "ErrorCode",
    "GameError",
    "ValidationError",
    "GameArithmeticError",
    "PhaseError",
    "ReferralError",
    "AuthorizationError",
    "InsufficientFunds",
    "InitLocked",
    "TransferError",
    # Capabilities
    "Authorizer",
    "ConfigAuthority",
    "DeployOwner",
    "DevPayee",
    "PlayerSigner",
    # Engine
    "ActionContext",
    "ActionResult",
    "GameEngine",
    "TransferRequest",
    "WithdrawalReceipt",
    "DevSplit",
    # Host
    "IntentState",
    "PayoutExecutor",
    "PayoutIntent",
    "PayoutJournal",
    "GameService",
    # Config
    "EconomyConfig",
    "GuardConfig",
    "LoggingConfig",
    "ShrimpFarmConfig",
    "get_config",
    "set_config",
    "reset_config",
]

__version__ = "0.1.0"
