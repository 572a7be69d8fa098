"""
In-memory game host.

:class:`GameService` owns the ledgers of a single game and runs every action
through the pure :class:`~shrimpfarm.engine.GameEngine`:

1. Serialize: one action at a time (re-entrant lock)
2. Read the clock once and ask the instruction guard for its verdict
3. Resolve the caller's identity into a capability token
4. Run the engine step on snapshots of the ledgers
5. Pull deposits; a failed deposit discards the step
6. Commit ledgers, events and the username directory
7. Execute payouts with compensation, then fire NFT issuance
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Sequence, Tuple

from .auth import Authorizer
from .collaborators import (
    Clock,
    InstructionGuard,
    NftIssuer,
    PermissiveGuard,
    SystemClock,
    TransferPrimitive,
)
from .config import ShrimpFarmConfig, get_config
from .engine import ActionContext, ActionResult, GameEngine
from .errors import ErrorCode, TransferError, ValidationError
from .events import GameEvent
from .models import GameInstance, InitLock, Phase, PlayerLedger
from .payouts import PayoutExecutor, PayoutIntent, PayoutJournal
from .settlement import WithdrawalReceipt, reverse_withdrawal
from .treasury import restore_dev_payout

logger = logging.getLogger(__name__)


class GameService:
    """Serialized host for one game."""

    def __init__(
        self,
        deploy_owner: str,
        transfers: TransferPrimitive,
        clock: Optional[Clock] = None,
        guard: Optional[InstructionGuard] = None,
        nft_issuer: Optional[NftIssuer] = None,
        config: Optional[ShrimpFarmConfig] = None,
    ):
        self.config = config or get_config()
        self.engine = GameEngine(self.config.economy, self.config.guards)
        self.authorizer = Authorizer(deploy_owner)
        self.clock = clock or SystemClock()
        self.guard = guard or PermissiveGuard()
        self.nft_issuer = nft_issuer
        self.transfers = transfers
        self.journal = PayoutJournal()
        self.payouts = PayoutExecutor(transfers, self.journal)

        self.init_lock = InitLock()
        self.game: Optional[GameInstance] = None
        self.players: Dict[str, PlayerLedger] = {}
        self.events: List[GameEvent] = []
        self._usernames: Dict[str, str] = {}
        self._player_names: Dict[str, str] = {}
        self._lock = threading.RLock()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_game(self) -> GameInstance:
        if self.game is None:
            raise ValidationError(ErrorCode.INVALID_ARGUMENT, "Game not initialized")
        return self.game

    def _context(self, game: Optional[GameInstance]) -> ActionContext:
        now = self.clock.now()
        if game is None:
            return ActionContext(now=now)
        passed = self.guard.check(game.max_aux_instructions, game.program_whitelist)
        return ActionContext(now=now, guard_passed=passed)

    def _ledger(self, player_id: str) -> PlayerLedger:
        """Existing ledger, or a fresh zeroed one created on first use."""
        return self.players.get(player_id) or PlayerLedger(player_id=player_id)

    def _pull_deposits(self, result: ActionResult) -> None:
        done: List[Tuple[str, str, int]] = []
        for request in result.deposits:
            try:
                self.transfers.transfer(request.source, request.destination, request.amount)
            except TransferError:
                logger.warning(
                    f"{result.action} discarded: deposit from {request.source} failed",
                    extra={"context": {"action": result.action, "source": request.source, "amount": request.amount}},
                )
                for source, destination, amount in reversed(done):
                    self.transfers.transfer(destination, source, amount)
                raise
            done.append((request.source, request.destination, request.amount))

    def _commit(self, result: ActionResult) -> None:
        if result.game is not None:
            self.game = result.game
        if result.lock is not None:
            self.init_lock = result.lock
        self.players.update(result.players)
        if result.username_binding is not None:
            username, player_id = result.username_binding
            self._usernames[username] = player_id
            self._player_names[player_id] = username
        self.events.extend(result.events)

    def _issue_nfts(self, result: ActionResult) -> None:
        if self.nft_issuer is None:
            return
        for player_id in result.nft_requests:
            try:
                self.nft_issuer.issue(player_id)
            except Exception as exc:
                logger.error(
                    f"NFT issuance for {player_id} failed: {exc}",
                    extra={"context": {"player": player_id}},
                )

    def _apply(self, result: ActionResult) -> ActionResult:
        self._pull_deposits(result)
        self._commit(result)
        self._issue_nfts(result)
        return result

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def initialize(
        self,
        signer: str,
        dev1: str,
        dev2: str,
        dev3: str,
        premarket_end: int,
        cooldown: Optional[int] = None,
        test_env: bool = False,
    ) -> ActionResult:
        with self._lock:
            owner = self.authorizer.deploy_owner(signer)
            if cooldown is None:
                cooldown = self.config.economy.default_cooldown
            result = self.engine.initialize(
                self.init_lock, owner, signer, dev1, dev2, dev3,
                premarket_end, cooldown, test_env,
            )
            self._pull_deposits(result)
            # A re-created test game starts from empty ledgers
            self.players.clear()
            self.events.clear()
            self._usernames.clear()
            self._player_names.clear()
            self._commit(result)
            logger.info(
                f"Game initialized by {signer} (test_env={test_env})",
                extra={"context": {"authority": signer, "instance": self.game.instance, "test_env": test_env}},
            )
            return result

    # =========================================================================
    # Player actions
    # =========================================================================

    def buy_premarket(
        self,
        signer: str,
        amount: int,
        referrer: Optional[str] = None,
        payer: Optional[str] = None,
    ) -> ActionResult:
        with self._lock:
            game = self._require_game()
            ctx = self._context(game)
            token = self.authorizer.player(signer)
            result = self.engine.buy_premarket(
                game, self._ledger(signer), token, amount, ctx,
                referrer=self._ledger(referrer) if referrer else None,
                payer_id=payer,
            )
            return self._apply(result)

    def buy_shrimp(
        self,
        signer: str,
        amount: int,
        referrer: Optional[str] = None,
        payer: Optional[str] = None,
    ) -> ActionResult:
        with self._lock:
            game = self._require_game()
            ctx = self._context(game)
            token = self.authorizer.player(signer)
            result = self.engine.buy_shrimp(
                game, self._ledger(signer), token, amount, ctx,
                referrer=self._ledger(referrer) if referrer else None,
                payer_id=payer,
            )
            return self._apply(result)

    def sell_eggs(self, signer: str, bonus_asset_holder: bool = False) -> ActionResult:
        with self._lock:
            game = self._require_game()
            ctx = self._context(game)
            token = self.authorizer.player(signer)
            result = self.engine.sell_eggs(game, self._ledger(signer), token, ctx, bonus_asset_holder)
            return self._apply(result)

    def hatch_eggs(self, signer: str, bonus_asset_holder: bool = False) -> ActionResult:
        with self._lock:
            game = self._require_game()
            ctx = self._context(game)
            token = self.authorizer.player(signer)
            result = self.engine.hatch_eggs(game, self._ledger(signer), token, ctx, bonus_asset_holder)
            return self._apply(result)

    def register(self, signer: str, username: str) -> ActionResult:
        with self._lock:
            game = self._require_game()
            ctx = self._context(game)
            token = self.authorizer.player(signer)
            result = self.engine.register(
                game, self._ledger(signer), token, username, ctx,
                username_owner=self._usernames.get(username),
                existing_username=self._player_names.get(signer),
            )
            return self._apply(result)

    def user_withdraw(self, signer: str) -> ActionResult:
        """
        Settle and pay a player.

        Raises:
            TransferError: the payout failed and was reversed
        """
        with self._lock:
            game = self._require_game()
            ctx = self._context(game)
            token = self.authorizer.player(signer)
            result = self.engine.user_withdraw(game, self._ledger(signer), token, ctx)
            self._apply(result)

            receipt = result.receipt

            def compensate(intent: PayoutIntent) -> None:
                self._reverse_withdrawal(signer, receipt)

            outcome = self.payouts.execute(result.action, result.payouts, compensate)
            if not outcome.ok:
                raise outcome.errors[0]
            return result

    def _reverse_withdrawal(self, player_id: str, receipt: Optional[WithdrawalReceipt]) -> None:
        if receipt is None:
            return
        game = self._require_game().clone()
        player = self.players[player_id].clone()
        reverse_withdrawal(player, game, receipt)
        self.game = game
        self.players[player_id] = player

    def dev_withdraw(self, signer: str) -> ActionResult:
        """
        Pay the dev split. Payees whose transfer fails get their share
        restored to the dev bucket; the others keep theirs.

        Raises:
            TransferError: at least one payout failed and was reversed
        """
        with self._lock:
            game = self._require_game()
            ctx = self._context(game)
            token = self.authorizer.dev_payee(game, signer)
            result = self.engine.dev_withdraw(game, token, ctx)
            self._apply(result)

            def compensate(intent: PayoutIntent) -> None:
                restored = self._require_game().clone()
                restore_dev_payout(restored, intent.amount)
                self.game = restored

            outcome = self.payouts.execute(result.action, result.payouts, compensate)
            if not outcome.ok:
                raise outcome.errors[0]
            return result

    # =========================================================================
    # Administration
    # =========================================================================

    def set_program_guards(
        self, signer: str, max_aux_instructions: int, whitelist: Sequence[str]
    ) -> ActionResult:
        with self._lock:
            game = self._require_game()
            token = self.authorizer.config_authority(game, signer)
            ctx = ActionContext(now=self.clock.now())
            result = self.engine.set_program_guards(game, token, max_aux_instructions, whitelist, ctx)
            return self._apply(result)

    def testnet_bonus(self, signer: str, player_id: str) -> ActionResult:
        with self._lock:
            game = self._require_game()
            token = self.authorizer.config_authority(game, signer)
            ctx = ActionContext(now=self.clock.now())
            result = self.engine.testnet_bonus(game, self._ledger(player_id), token, ctx)
            return self._apply(result)

    def set_market(self, signer: str, market_eggs: int) -> ActionResult:
        with self._lock:
            game = self._require_game()
            token = self.authorizer.config_authority(game, signer)
            ctx = ActionContext(now=self.clock.now())
            return self._apply(self.engine.set_market(game, token, market_eggs, ctx))

    def end_premarket(self, signer: str) -> ActionResult:
        with self._lock:
            game = self._require_game()
            token = self.authorizer.config_authority(game, signer)
            ctx = ActionContext(now=self.clock.now())
            return self._apply(self.engine.end_premarket(game, token, ctx))

    # =========================================================================
    # Queries
    # =========================================================================

    def phase(self) -> Phase:
        with self._lock:
            return self.engine.phase(self._require_game(), self.clock.now())

    def player(self, player_id: str) -> PlayerLedger:
        with self._lock:
            return self._ledger(player_id).clone()

    def username_of(self, player_id: str) -> Optional[str]:
        return self._player_names.get(player_id)

    def owner_of(self, username: str) -> Optional[str]:
        return self._usernames.get(username)

    def claimable(self, player_id: str) -> WithdrawalReceipt:
        with self._lock:
            return self.engine.claimable(self._ledger(player_id), self._require_game(), self.clock.now())

    def quote_buy(self, amount: int) -> int:
        with self._lock:
            return self.engine.quote_buy(self._require_game(), amount)

    def quote_sell(self, eggs: int) -> int:
        with self._lock:
            return self.engine.quote_sell(self._require_game(), eggs)

    def total_unbanked(self, player_id: str) -> int:
        with self._lock:
            return self.engine.total_unbanked(self._ledger(player_id), self._require_game(), self.clock.now())

    def check_invariants(self) -> Tuple[bool, List[str]]:
        """Game and player ledger invariants, player failures prefixed by id."""
        with self._lock:
            _, game_failed = self._require_game().check_invariants()
            failed = list(game_failed)
            for ledger in self.players.values():
                _, player_failed = ledger.check_invariants()
                failed.extend(f"{ledger.player_id}:{name}" for name in player_failed)
            return (not failed, failed)
