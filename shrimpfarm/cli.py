from __future__ import annotations

import argparse
import json
import random
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .collaborators import InMemoryBank, ManualClock, RecordingNftIssuer
from .config import ShrimpFarmConfig
from .constants import EGGS_TO_HATCH_1SHRIMP, MARKET_START
from .curve import buy, sell
from .errors import GameError, TransferError
from .logging import LoggingOptions, configure_logging
from .models import treasury_account
from .service import GameService
from .treasury import split_dev_balance


def _emit(payload: Dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(payload) + "\n")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Shrimp farm accounting engine")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON, TOML or YAML config file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Override the configured log level",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    quote_buy = subparsers.add_parser("quote-buy", help="Eggs and shrimp bought for an amount")
    quote_buy.add_argument("amount", type=int, help="Lamports spent")
    quote_buy.add_argument("--game-balance", type=int, default=0, help="Free game balance")
    quote_buy.add_argument("--market-eggs", type=int, default=MARKET_START, help="Curve egg reserve")

    quote_sell = subparsers.add_parser("quote-sell", help="Proceeds of selling eggs")
    quote_sell.add_argument("eggs", type=int, help="Eggs sold")
    quote_sell.add_argument("--game-balance", type=int, required=True, help="Free game balance")
    quote_sell.add_argument("--market-eggs", type=int, default=MARKET_START, help="Curve egg reserve")

    dev_split = subparsers.add_parser("dev-split", help="Split a dev balance 45/40/15")
    dev_split.add_argument("dev_balance", type=int, help="Dev bucket in lamports")
    dev_split.add_argument("--rent-reserve", type=int, default=None, help="Reserve kept in the bucket")

    simulate = subparsers.add_parser("simulate", help="Scripted multi-player run, events as JSON lines")
    simulate.add_argument("--players", type=int, default=3, help="Number of players")
    simulate.add_argument("--rounds", type=int, default=5, help="Market rounds after the pre-sale")
    simulate.add_argument("--step", type=int, default=3600, help="Seconds between rounds")
    simulate.add_argument("--seed", type=int, default=0, help="Random seed for purchase amounts")
    return parser


def _quote_buy(args: argparse.Namespace, config: ShrimpFarmConfig) -> int:
    eggs = buy(args.amount, args.game_balance, args.market_eggs, config.economy.trade_fee)
    _emit({"amount": args.amount, "eggs": eggs, "shrimp": eggs // EGGS_TO_HATCH_1SHRIMP})
    return 0


def _quote_sell(args: argparse.Namespace, config: ShrimpFarmConfig) -> int:
    economy = config.economy
    gross = sell(args.eggs, args.market_eggs, args.game_balance)
    dev_fee = gross * economy.dev_fee // 100
    premarket_fee = gross * economy.premarket_fee // 100
    _emit({
        "eggs": args.eggs,
        "gross": gross,
        "dev_fee": dev_fee,
        "premarket_fee": premarket_fee,
        "net": gross - dev_fee - premarket_fee,
    })
    return 0


def _dev_split(args: argparse.Namespace, config: ShrimpFarmConfig) -> int:
    reserve = config.economy.rent_reserve if args.rent_reserve is None else args.rent_reserve
    split = split_dev_balance(args.dev_balance, reserve)
    _emit({
        "distributable": split.distributable,
        "dev1": split.dev1_amount,
        "dev2": split.dev2_amount,
        "dev3": split.dev3_amount,
    })
    return 0


def _username(index: int) -> str:
    """Distinct lowercase name per player index."""
    letters = []
    while True:
        index, digit = divmod(index, 26)
        letters.append(chr(ord("a") + digit))
        if index == 0:
            break
    return "player" + "".join(reversed(letters))


def _simulate(args: argparse.Namespace, config: ShrimpFarmConfig) -> int:
    rng = random.Random(args.seed)
    economy = config.economy
    owner = "owner"
    devs = ("dev1", "dev2", "dev3")
    players: List[str] = [f"player{i}" for i in range(args.players)]

    bank = InMemoryBank({owner: economy.rent_reserve})
    for player_id in players:
        bank.mint(player_id, 1_000 * economy.min_buy)

    clock = ManualClock(current=1_700_000_000)
    service = GameService(owner, bank, clock=clock, nft_issuer=RecordingNftIssuer(), config=config)
    service.initialize(owner, *devs, premarket_end=clock.now() + 3600, cooldown=0, test_env=True)

    for index, player_id in enumerate(players):
        referrer = players[index - 1] if index and service.player(players[index - 1]).registered else None
        service.buy_premarket(player_id, economy.min_buy * rng.randint(1, 50), referrer=referrer)
        service.register(player_id, _username(index))

    service.end_premarket(owner)
    clock.advance(1)

    for _ in range(args.rounds):
        clock.advance(args.step)
        for player_id in players:
            action = rng.choice(("buy", "hatch", "sell", "withdraw"))
            try:
                if action == "buy":
                    service.buy_shrimp(player_id, economy.min_buy * rng.randint(1, 20))
                elif action == "hatch":
                    service.hatch_eggs(player_id)
                elif action == "sell":
                    service.sell_eggs(player_id)
                else:
                    service.user_withdraw(player_id)
            except (GameError, TransferError) as exc:
                _emit({"kind": "Rejected", "player": player_id, "action": action, "reason": str(exc)})

    try:
        service.dev_withdraw(owner)
    except GameError as exc:
        _emit({"kind": "Rejected", "player": owner, "action": "dev_withdraw", "reason": str(exc)})

    for event in service.events:
        _emit(event.to_dict())

    ok, failed = service.check_invariants()
    _emit({
        "kind": "Summary",
        "treasury": bank.balance(treasury_account(service.game)),
        "game": service.game.to_dict(),
        "invariants_ok": ok,
        "failed": failed,
    })
    return 0 if ok else 1


_COMMANDS = {
    "quote-buy": _quote_buy,
    "quote-sell": _quote_sell,
    "dev-split": _dev_split,
    "simulate": _simulate,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    config = ShrimpFarmConfig.load(Path(args.config) if args.config else None)
    options = LoggingOptions.from_config(config.logging)
    if args.log_level:
        options = LoggingOptions(level=args.log_level, format=options.format, file=options.file, redact=options.redact)
    configure_logging(options)

    try:
        return _COMMANDS[args.command](args, config)
    except GameError as exc:
        sys.stderr.write(f"error: {exc.user_message} ({exc.code.value})\n")
        return 1


if __name__ == "__main__":
    sys.exit(main())
