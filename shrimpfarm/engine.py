"""
Shrimp farm engine - every game action as a pure step.

Each operation takes the ledgers it reads, the action inputs and an
:class:`ActionContext` (clock reading + guard verdict), and returns an
:class:`ActionResult` holding *new* ledger objects, the events to append and
the transfers the host must perform. Inputs are never mutated: work happens
on clones, so a raised :class:`~shrimpfarm.errors.GameError` leaves no
partial effect.

Operations:
- initialize, buy_premarket, buy_shrimp, sell_eggs, hatch_eggs
- register, user_withdraw, dev_withdraw
- set_market, end_premarket (test environment only)
- set_program_guards, testnet_bonus

The host serializes actions per ledger; the engine does no locking.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import wraps
from typing import Callable, Dict, Optional, Sequence, Tuple, TypeVar

from . import accrual, curve, premarket, referral, settlement, treasury
from .auth import (
    ConfigAuthority,
    DeployOwner,
    DevPayee,
    PlayerSigner,
    require_config_authority,
    require_dev_payee,
    require_player,
)
from .checked import (
    checked_add,
    checked_div,
    checked_sub,
    percent_of,
    require_u64,
    require_u128,
    to_u64,
)
from .config import EconomyConfig, GuardConfig
from .constants import EGGS_TO_HATCH_1SHRIMP
from .errors import (
    AuthorizationError,
    ErrorCode,
    GameError,
    InitLocked,
    PhaseError,
    ReferralError,
    ValidationError,
)
from .events import (
    Buy,
    DevWithdrawn,
    GameEvent,
    Hatch,
    Initialized,
    MarketUpdated,
    PlayerBonusToggled,
    PreMarketBuy,
    PremarketEnded,
    ProgramGuardsUpdated,
    Sell,
    UserRegistered,
    UserWithdrawn,
)
from .models import GameInstance, InitLock, Phase, PlayerLedger, treasury_account
from .phase import (
    crosses_endgame,
    current_phase,
    end_game,
    require_cooldown,
    require_market,
    require_premarket,
)
from .settlement import WithdrawalReceipt
from .treasury import DevSplit

logger = logging.getLogger(__name__)

_USERNAME_PATTERN = re.compile(r"[a-z]+")

F = TypeVar("F", bound=Callable[..., "ActionResult"])


# =============================================================================
# Inputs / Outputs
# =============================================================================

@dataclass(frozen=True)
class ActionContext:
    """
    Facts fixed for the duration of one action.

    ``now`` is read once by the host; ``guard_passed`` is the instruction
    guard's verdict on the surrounding transaction.
    """
    now: int
    guard_passed: bool = True


@dataclass(frozen=True)
class TransferRequest:
    """Currency movement the host must perform after committing."""
    source: str
    destination: str
    amount: int
    purpose: str


@dataclass(frozen=True)
class ActionResult:
    """New ledgers and outputs of one accepted action."""
    action: str
    game: Optional[GameInstance] = None
    players: Dict[str, PlayerLedger] = field(default_factory=dict)
    events: Tuple[GameEvent, ...] = ()
    deposits: Tuple[TransferRequest, ...] = ()
    payouts: Tuple[TransferRequest, ...] = ()
    nft_requests: Tuple[str, ...] = ()
    receipt: Optional[WithdrawalReceipt] = None
    dev_split: Optional[DevSplit] = None
    lock: Optional[InitLock] = None
    username_binding: Optional[Tuple[str, str]] = None
    game_over_triggered: bool = False

    def player(self, player_id: str) -> PlayerLedger:
        return self.players[player_id]


def _logged(action: str) -> Callable[[F], F]:
    """Log accepted actions at DEBUG and rejections at WARNING."""
    def decorator(fn: F) -> F:
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                result = fn(*args, **kwargs)
            except GameError as exc:
                logger.warning(
                    f"{action} REJECTED: {exc.code.value}",
                    extra={"context": {"action": action, "code": exc.code.value}},
                )
                raise
            logger.debug(
                f"{action} accepted: {len(result.events)} event(s)",
                extra={"context": {"action": action, "events": len(result.events)}},
            )
            return result
        return wrapper  # type: ignore[return-value]
    return decorator


def _advance_indexes(game: GameInstance, curve_event: bool = False) -> None:
    game.event_index = checked_add(game.event_index, 1, bits=64)
    if curve_event:
        game.game_index = checked_add(game.game_index, 1, bits=64)


def _require_guard(ctx: ActionContext) -> None:
    if not ctx.guard_passed:
        raise ValidationError(ErrorCode.BAD_INSTRUCTION)


def _require_test_env(game: GameInstance) -> None:
    if not game.test_env:
        raise AuthorizationError(ErrorCode.NOT_TEST_ENV)


# =============================================================================
# Engine
# =============================================================================

class GameEngine:
    """
    Stateless executor of game actions.

    Holds only configuration; all state flows through arguments and results.
    """

    def __init__(
        self,
        economy: Optional[EconomyConfig] = None,
        guards: Optional[GuardConfig] = None,
    ):
        self.economy = economy or EconomyConfig()
        self.guards = guards or GuardConfig()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def phase(self, game: GameInstance, now: int) -> Phase:
        return current_phase(game, now)

    def game_balance(self, game: GameInstance) -> int:
        return treasury.game_balance(game)

    def effective_rate(self, player: PlayerLedger, game: GameInstance) -> int:
        return accrual.effective_rate(player, game, self.economy.trade_fee)

    def total_unbanked(self, player: PlayerLedger, game: GameInstance, now: int) -> int:
        return accrual.total_unbanked(player, game, now, self.economy.trade_fee)

    def quote_buy(self, game: GameInstance, amount: int) -> int:
        """Eggs a market purchase of ``amount`` would yield right now."""
        return curve.buy(amount, treasury.game_balance(game), game.market_eggs, self.economy.trade_fee)

    def quote_sell(self, game: GameInstance, eggs: int) -> int:
        """Gross lamports for selling ``eggs`` right now, before fees."""
        return curve.sell(eggs, game.market_eggs, treasury.game_balance(game))

    def claimable(self, player: PlayerLedger, game: GameInstance, now: int) -> WithdrawalReceipt:
        return settlement.claimable(player, game, now)

    def bonus_percent(self, player: PlayerLedger, bonus_asset_holder: bool) -> int:
        bonus = 0
        if bonus_asset_holder:
            bonus += self.economy.nft_bonus
        if player.testnet_player:
            bonus += self.economy.testnet_bonus
        return bonus

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @_logged("initialize")
    def initialize(
        self,
        lock: InitLock,
        owner: DeployOwner,
        authority: str,
        dev1: str,
        dev2: str,
        dev3: str,
        premarket_end: int,
        cooldown: int,
        test_env: bool,
    ) -> ActionResult:
        """Create the game. The treasury starts holding the rent reserve, booked to devs."""
        if not isinstance(owner, DeployOwner):
            raise AuthorizationError(ErrorCode.INVALID_OWNER)
        if dev1 == dev2 or dev1 == dev3 or dev2 == dev3:
            raise ValidationError(ErrorCode.INVALID_DEVS)
        require_u64(premarket_end, "premarket_end")
        require_u64(cooldown, "cooldown")
        if lock.locked:
            raise InitLocked()

        new_lock = lock.clone()
        new_lock.instances = checked_add(lock.instances, 1, bits=64)
        if not test_env:
            new_lock.locked = True

        reserve = self.economy.rent_reserve
        game = GameInstance(
            authority=authority,
            dev1=dev1,
            dev2=dev2,
            dev3=dev3,
            premarket_end=premarket_end,
            cooldown=cooldown,
            raw_balance=reserve,
            rent_reserve=reserve,
            dev_balance=reserve,
            test_env=test_env,
            max_aux_instructions=self.guards.default_max_aux_instructions,
            instance=new_lock.instances,
        )

        deposits: Tuple[TransferRequest, ...] = ()
        if reserve:
            deposits = (TransferRequest(authority, treasury_account(game), reserve, "rent_reserve"),)

        return ActionResult(
            action="initialize",
            game=game,
            events=(Initialized(authority, dev1, dev2, dev3, premarket_end, test_env),),
            deposits=deposits,
            lock=new_lock,
        )

    # -------------------------------------------------------------------------
    # Purchases
    # -------------------------------------------------------------------------

    def _check_purchase(self, ctx: ActionContext, amount: int) -> None:
        _require_guard(ctx)
        require_u64(amount, "amount")
        if amount < self.economy.min_buy:
            raise ValidationError(
                ErrorCode.BUY_AMOUNT_TOO_LOW,
                internal_details=f"amount={amount} min_buy={self.economy.min_buy}",
            )

    def _clone_referrer(
        self, player: PlayerLedger, referrer: Optional[PlayerLedger]
    ) -> Optional[PlayerLedger]:
        if referrer is None:
            return None
        if referrer.player_id == player.player_id:
            raise ReferralError(ErrorCode.INVALID_REFERRER, internal_details="self-referral")
        return referrer.clone()

    def _maybe_request_nft(self, game: GameInstance, player: PlayerLedger) -> Tuple[str, ...]:
        """Flag the player for NFT issuance once their spend crosses the threshold."""
        if player.minted or player.total_spent < self.economy.nft_min_buy:
            return ()
        if game.nfts_minted >= self.economy.nft_supply:
            return ()
        player.minted = True
        game.nfts_minted = checked_add(game.nfts_minted, 1, bits=64)
        return (player.player_id,)

    def _purchase_result(
        self,
        action: str,
        game: GameInstance,
        player: PlayerLedger,
        referrer: Optional[PlayerLedger],
        payer_id: str,
        amount: int,
        event: GameEvent,
        nft_requests: Tuple[str, ...],
    ) -> ActionResult:
        players = {player.player_id: player}
        if referrer is not None:
            players[referrer.player_id] = referrer
        return ActionResult(
            action=action,
            game=game,
            players=players,
            events=(event,),
            deposits=(TransferRequest(payer_id, treasury_account(game), amount, action),),
            nft_requests=nft_requests,
        )

    @_logged("buy_premarket")
    def buy_premarket(
        self,
        game: GameInstance,
        player: PlayerLedger,
        signer: PlayerSigner,
        amount: int,
        ctx: ActionContext,
        referrer: Optional[PlayerLedger] = None,
        payer_id: Optional[str] = None,
    ) -> ActionResult:
        """Fixed-price pre-sale contribution; only the dev fee is carved out."""
        require_player(signer, player.player_id)
        self._check_purchase(ctx, amount)
        require_premarket(game, ctx.now)

        g, p = game.clone(), player.clone()
        r = self._clone_referrer(p, referrer)
        payer = payer_id or p.player_id

        treasury.deposit(g, amount)
        referral.process_referral(
            g, p, r, amount, payer,
            self.economy.referral_fee, self.economy.referral_cashback,
        )
        premarket.record_contribution(g, p, amount)
        g.dev_balance = checked_add(g.dev_balance, percent_of(amount, self.economy.dev_fee), bits=64)

        nft_requests = self._maybe_request_nft(g, p)

        event = PreMarketBuy(
            game_index=g.game_index,
            event_index=g.event_index,
            player=p.player_id,
            referrer=p.current_referrer,
            game_balance=treasury.game_balance(g),
            sol_amount=amount,
            timestamp=ctx.now,
        )
        _advance_indexes(g, curve_event=True)
        return self._purchase_result("buy_premarket", g, p, r, payer, amount, event, nft_requests)

    @_logged("buy_shrimp")
    def buy_shrimp(
        self,
        game: GameInstance,
        player: PlayerLedger,
        signer: PlayerSigner,
        amount: int,
        ctx: ActionContext,
        referrer: Optional[PlayerLedger] = None,
        payer_id: Optional[str] = None,
    ) -> ActionResult:
        """Market purchase priced on the curve against the free game balance."""
        require_player(signer, player.player_id)
        self._check_purchase(ctx, amount)
        require_market(game, ctx.now)

        g, p = game.clone(), player.clone()
        r = self._clone_referrer(p, referrer)
        payer = payer_id or p.player_id
        fee = self.economy.trade_fee

        eggs_bought = curve.buy(amount, treasury.game_balance(g), g.market_eggs, fee)

        # Bank production at the old rate before the rate changes
        new_eggs = accrual.accrued_since_last_hatch(p, g, ctx.now, fee)
        if new_eggs > 0:
            p.extra_eggs = checked_add(p.extra_eggs, new_eggs)

        treasury.deposit(g, amount)
        g.dev_balance = checked_add(g.dev_balance, percent_of(amount, self.economy.dev_fee), bits=64)
        premarket_fee = percent_of(amount, self.economy.premarket_fee)
        g.premarket_earned = checked_add(g.premarket_earned, premarket_fee, bits=64)
        g.premarket_balance = checked_add(g.premarket_balance, premarket_fee, bits=64)

        shrimp_to_add = checked_div(eggs_bought, EGGS_TO_HATCH_1SHRIMP)
        p.shrimp = checked_add(p.shrimp, shrimp_to_add)

        referral.process_referral(
            g, p, r, amount, payer,
            self.economy.referral_fee, self.economy.referral_cashback,
        )

        p.last_interaction = ctx.now
        p.market_spent = checked_add(p.market_spent, amount, bits=64)

        nft_requests = self._maybe_request_nft(g, p)

        event = Buy(
            game_index=g.game_index,
            event_index=g.event_index,
            player=p.player_id,
            referrer=p.current_referrer,
            game_balance=treasury.game_balance(g),
            sol_amount=amount,
            shrimp=shrimp_to_add,
            extra_eggs=p.extra_eggs,
            timestamp=ctx.now,
        )
        _advance_indexes(g, curve_event=True)
        return self._purchase_result("buy_shrimp", g, p, r, payer, amount, event, nft_requests)

    # -------------------------------------------------------------------------
    # Sell / hatch
    # -------------------------------------------------------------------------

    @_logged("sell_eggs")
    def sell_eggs(
        self,
        game: GameInstance,
        player: PlayerLedger,
        signer: PlayerSigner,
        ctx: ActionContext,
        bonus_asset_holder: bool = False,
    ) -> ActionResult:
        """
        Sell all unbanked eggs back to the curve.

        If the sale would push the curve reserve past the end-game ceiling,
        the game ends instead: the free balance is snapshotted as the prize
        and the sale itself is voided.
        """
        require_player(signer, player.player_id)
        _require_guard(ctx)
        require_market(game, ctx.now)
        require_cooldown(player.last_sell, game, ctx.now, ErrorCode.SELL_COOLDOWN_NOT_REACHED)

        g, p = game.clone(), player.clone()
        fee = self.economy.trade_fee

        bonus = self.bonus_percent(p, bonus_asset_holder)
        eggs = accrual.apply_bonus(accrual.total_unbanked(p, g, ctx.now, fee), bonus)

        game_balance = treasury.game_balance(g)

        if crosses_endgame(g, eggs):
            end_game(g, game_balance)
            logger.info(
                f"Game over: final_balance={game_balance} triggered by {p.player_id}",
                extra={"context": {"player": p.player_id, "final_balance": game_balance}},
            )
            return ActionResult(
                action="sell_eggs",
                game=g,
                players={p.player_id: player.clone()},
                game_over_triggered=True,
            )

        if eggs < EGGS_TO_HATCH_1SHRIMP:
            raise ValidationError(ErrorCode.NO_EGGS, internal_details=f"eggs={eggs}")

        egg_sell = to_u64(curve.sell(eggs, g.market_eggs, game_balance))
        dev_amount = percent_of(egg_sell, self.economy.dev_fee)
        premarket_amount = percent_of(egg_sell, self.economy.premarket_fee)

        g.market_eggs = checked_add(g.market_eggs, eggs)
        g.dev_balance = checked_add(g.dev_balance, dev_amount, bits=64)
        g.premarket_earned = checked_add(g.premarket_earned, premarket_amount, bits=64)
        g.premarket_balance = checked_add(g.premarket_balance, premarket_amount, bits=64)

        net = checked_sub(checked_sub(egg_sell, dev_amount), premarket_amount)
        p.sell_total = checked_add(p.sell_total, net, bits=64)
        g.sell_and_ref_balance = checked_add(g.sell_and_ref_balance, net, bits=64)

        p.last_interaction = ctx.now
        p.last_sell = ctx.now
        p.extra_eggs = 0

        event = Sell(
            game_index=g.game_index,
            event_index=g.event_index,
            player=p.player_id,
            market_eggs=g.market_eggs,
            game_balance=treasury.game_balance(g),
            sol_amount=net,
            eggs_sold=eggs,
            bonus_percent=bonus,
            timestamp=ctx.now,
        )
        _advance_indexes(g, curve_event=True)
        return ActionResult(action="sell_eggs", game=g, players={p.player_id: p}, events=(event,))

    @_logged("hatch_eggs")
    def hatch_eggs(
        self,
        game: GameInstance,
        player: PlayerLedger,
        signer: PlayerSigner,
        ctx: ActionContext,
        bonus_asset_holder: bool = False,
    ) -> ActionResult:
        """Convert unbanked eggs into permanent production units."""
        require_player(signer, player.player_id)
        _require_guard(ctx)
        require_market(game, ctx.now)
        require_cooldown(player.last_hatch, game, ctx.now, ErrorCode.HATCH_COOLDOWN_NOT_REACHED)

        g, p = game.clone(), player.clone()

        bonus = self.bonus_percent(p, bonus_asset_holder)
        eggs = accrual.apply_bonus(
            accrual.total_unbanked(p, g, ctx.now, self.economy.trade_fee), bonus
        )
        shrimp_to_add = checked_div(eggs, EGGS_TO_HATCH_1SHRIMP)
        if shrimp_to_add < 1:
            raise ValidationError(ErrorCode.NO_EGGS, internal_details=f"eggs={eggs}")

        p.shrimp = checked_add(p.shrimp, shrimp_to_add)
        p.extra_eggs = 0
        p.last_interaction = ctx.now
        p.last_hatch = ctx.now

        event = Hatch(
            game_index=g.game_index,
            event_index=g.event_index,
            player=p.player_id,
            shrimp=shrimp_to_add,
            bonus_percent=bonus,
            timestamp=ctx.now,
        )
        _advance_indexes(g, curve_event=True)
        return ActionResult(action="hatch_eggs", game=g, players={p.player_id: p}, events=(event,))

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def validate_username(self, username: str) -> str:
        if (
            not isinstance(username, str)
            or not (1 <= len(username) <= self.economy.username_max_len)
            or not _USERNAME_PATTERN.fullmatch(username)
        ):
            raise ValidationError(ErrorCode.INVALID_USERNAME)
        return username

    @_logged("register")
    def register(
        self,
        game: GameInstance,
        player: PlayerLedger,
        signer: PlayerSigner,
        username: str,
        ctx: ActionContext,
        username_owner: Optional[str] = None,
        existing_username: Optional[str] = None,
    ) -> ActionResult:
        """
        Claim a unique username.

        ``username_owner`` is the player currently holding ``username`` and
        ``existing_username`` the name the player already holds, both looked
        up by the host.
        """
        require_player(signer, player.player_id)
        _require_guard(ctx)
        self.validate_username(username)
        if player.total_spent < self.economy.min_buy:
            raise ValidationError(ErrorCode.MIN_BUY_NOT_MET)
        if username_owner is not None and username_owner != player.player_id:
            raise ValidationError(ErrorCode.USERNAME_TAKEN)
        if existing_username:
            raise ValidationError(ErrorCode.ALREADY_REGISTERED)

        g, p = game.clone(), player.clone()
        p.registered = True

        event = UserRegistered(
            event_index=g.event_index,
            player=p.player_id,
            username=username,
            timestamp=ctx.now,
        )
        _advance_indexes(g)
        return ActionResult(
            action="register",
            game=g,
            players={p.player_id: p},
            events=(event,),
            username_binding=(username, p.player_id),
        )

    # -------------------------------------------------------------------------
    # Withdrawals
    # -------------------------------------------------------------------------

    @_logged("user_withdraw")
    def user_withdraw(
        self,
        game: GameInstance,
        player: PlayerLedger,
        signer: PlayerSigner,
        ctx: ActionContext,
    ) -> ActionResult:
        """Settle every claimable category and request one payout."""
        require_player(signer, player.player_id)

        g, p = game.clone(), player.clone()
        receipt = settlement.settle(p, g, ctx.now)

        event = UserWithdrawn(
            event_index=g.event_index,
            player=p.player_id,
            amount=receipt.total,
            sell_total=p.sell_total,
            premarket_withdrawn=p.premarket_withdrawn,
            referral_withdrawn=p.referral_withdrawn,
            sell_withdrawn=p.sell_withdrawn,
            game_over=g.game_over,
            prize_withdrawn=p.prize_withdrawn,
        )
        _advance_indexes(g)
        return ActionResult(
            action="user_withdraw",
            game=g,
            players={p.player_id: p},
            events=(event,),
            payouts=(TransferRequest(treasury_account(g), p.player_id, receipt.total, "user_withdraw"),),
            receipt=receipt,
        )

    @_logged("dev_withdraw")
    def dev_withdraw(self, game: GameInstance, payee: DevPayee, ctx: ActionContext) -> ActionResult:
        """Pay the dev bucket above the rent reserve out 45/40/15."""
        require_dev_payee(payee, game)

        g = game.clone()
        split = treasury.apply_dev_withdrawal(g)

        source = treasury_account(g)
        payouts = tuple(
            TransferRequest(source, dev, amount, "dev_withdraw")
            for dev, amount in zip(
                g.dev_payees(),
                (split.dev1_amount, split.dev2_amount, split.dev3_amount),
            )
            if amount > 0
        )
        event = DevWithdrawn(
            event_index=g.event_index,
            dev_balance=split.distributable,
            dev1_amount=split.dev1_amount,
            dev2_amount=split.dev2_amount,
            dev3_amount=split.dev3_amount,
        )
        _advance_indexes(g)
        return ActionResult(
            action="dev_withdraw", game=g, events=(event,), payouts=payouts, dev_split=split
        )

    # -------------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------------

    @_logged("set_program_guards")
    def set_program_guards(
        self,
        game: GameInstance,
        authority: ConfigAuthority,
        max_aux_instructions: int,
        whitelist: Sequence[str],
        ctx: ActionContext,
    ) -> ActionResult:
        require_config_authority(authority, game)
        if isinstance(max_aux_instructions, bool) or not isinstance(max_aux_instructions, int):
            raise ValidationError(ErrorCode.INVALID_PROGRAM_GUARDS)
        if not (0 <= max_aux_instructions < self.guards.max_aux_instructions_limit):
            raise ValidationError(ErrorCode.INVALID_PROGRAM_GUARDS)
        entries = tuple(whitelist)
        if len(entries) > self.guards.max_whitelist_len:
            raise ValidationError(ErrorCode.INVALID_PROGRAM_GUARDS)
        if any(not isinstance(entry, str) or not entry for entry in entries):
            raise ValidationError(ErrorCode.INVALID_PROGRAM_GUARDS)

        g = game.clone()
        g.max_aux_instructions = max_aux_instructions
        g.program_whitelist = entries

        event = ProgramGuardsUpdated(
            event_index=g.event_index,
            max_aux_instructions=max_aux_instructions,
            program_whitelist=entries,
        )
        _advance_indexes(g)
        return ActionResult(action="set_program_guards", game=g, events=(event,))

    @_logged("testnet_bonus")
    def testnet_bonus(
        self,
        game: GameInstance,
        player: PlayerLedger,
        authority: ConfigAuthority,
        ctx: ActionContext,
    ) -> ActionResult:
        """Toggle the flat testnet production bonus for a player."""
        require_config_authority(authority, game)

        g, p = game.clone(), player.clone()
        p.testnet_player = not p.testnet_player

        event = PlayerBonusToggled(event_index=g.event_index, player=p.player_id, new_state=p.testnet_player)
        _advance_indexes(g)
        return ActionResult(action="testnet_bonus", game=g, players={p.player_id: p}, events=(event,))

    @_logged("set_market")
    def set_market(
        self,
        game: GameInstance,
        authority: ConfigAuthority,
        market_eggs: int,
        ctx: ActionContext,
    ) -> ActionResult:
        require_config_authority(authority, game)
        _require_test_env(game)
        require_u128(market_eggs, "market_eggs")

        g = game.clone()
        g.market_eggs = market_eggs

        event = MarketUpdated(event_index=g.event_index, new_market_eggs=market_eggs)
        _advance_indexes(g)
        return ActionResult(action="set_market", game=g, events=(event,))

    @_logged("end_premarket")
    def end_premarket(
        self,
        game: GameInstance,
        authority: ConfigAuthority,
        ctx: ActionContext,
    ) -> ActionResult:
        """Close the pre-sale immediately."""
        require_config_authority(authority, game)
        _require_test_env(game)
        require_premarket(game, ctx.now)
        if ctx.now == 0:
            raise PhaseError(ErrorCode.PREMARKET_OVER, internal_details="clock at epoch")

        g = game.clone()
        g.premarket_end = ctx.now - 1

        event = PremarketEnded(event_index=g.event_index, premarket_end=g.premarket_end)
        _advance_indexes(g)
        return ActionResult(action="end_premarket", game=g, events=(event,))
