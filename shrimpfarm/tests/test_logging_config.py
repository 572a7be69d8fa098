import json
import logging

import pytest

from shrimpfarm.auth import PlayerSigner
from shrimpfarm.collaborators import InMemoryBank
from shrimpfarm.config import LoggingConfig
from shrimpfarm.engine import GameEngine, TransferRequest
from shrimpfarm.errors import ValidationError
from shrimpfarm.logging import LoggingOptions, configure_logging, load_logging_options_from_env
from shrimpfarm.models import PlayerLedger
from shrimpfarm.payouts import PayoutExecutor

from .helpers import START, ctx, new_game


def test_logging_redacts_secrets_in_message(capfd) -> None:
    configure_logging(LoggingOptions(level="INFO", format="text", redact=True))
    logger = logging.getLogger("shrimpfarm.test")
    logger.info("private_key=SUPERSECRET")

    captured = capfd.readouterr()
    assert "SUPERSECRET" not in captured.err
    assert "[REDACTED]" in captured.err


def test_logging_redacts_secrets_in_context(capfd) -> None:
    configure_logging(LoggingOptions(level="INFO", format="json", redact=True))
    logger = logging.getLogger("shrimpfarm.test")
    logger.info("payout", extra={"context": {"player": "alice", "signature": "SUPERSECRET"}})

    captured = capfd.readouterr()
    payload = json.loads(captured.err.strip().splitlines()[-1])
    assert payload["context"] == {"player": "alice", "signature": "[REDACTED]"}


def test_logging_level_filters_debug(capfd) -> None:
    configure_logging(LoggingOptions(level="WARNING", format="text"))
    logger = logging.getLogger("shrimpfarm.test")
    logger.info("quiet")
    logger.warning("loud")

    captured = capfd.readouterr()
    assert "quiet" not in captured.err
    assert "loud" in captured.err


def test_logging_writes_rotating_file(tmp_path) -> None:
    log_file = tmp_path / "farm.log"
    configure_logging(LoggingOptions(level="INFO", format="text", file=str(log_file)))
    logging.getLogger("shrimpfarm.test").info("to file")

    for handler in logging.getLogger("shrimpfarm").handlers:
        handler.flush()
    assert "to file" in log_file.read_text()


def test_options_from_env(monkeypatch) -> None:
    monkeypatch.setenv("SHRIMPFARM_LOG_LEVEL", "debug")
    monkeypatch.setenv("SHRIMPFARM_LOG_FORMAT", "json")
    monkeypatch.setenv("SHRIMPFARM_LOG_REDACT", "0")
    monkeypatch.delenv("SHRIMPFARM_LOG_FILE", raising=False)

    options = load_logging_options_from_env()

    assert options == LoggingOptions(level="debug", format="json", file=None, redact=False)


def test_options_from_config() -> None:
    options = LoggingOptions.from_config(LoggingConfig(level="ERROR", format="json"))
    assert (options.level, options.format, options.redact) == ("ERROR", "json", True)


def test_failed_payout_logs_structured_context(capfd) -> None:
    configure_logging(LoggingOptions(level="INFO", format="json"))
    bank = InMemoryBank({"treasury": 10})
    bank.fail_next("alice")
    executor = PayoutExecutor(bank)

    executor.execute(
        "user_withdraw",
        [TransferRequest("treasury", "alice", 10, "user_withdraw")],
        lambda intent: None,
    )

    records = [json.loads(line) for line in capfd.readouterr().err.strip().splitlines()]
    failure = next(r for r in records if r["logger"] == "shrimpfarm.payouts")
    assert failure["level"] == "ERROR"
    assert failure["context"]["intent_id"] == 1
    assert failure["context"]["destination"] == "alice"
    assert failure["context"]["amount"] == 10
    assert "injected failure" in failure["context"]["error"]


def test_rejected_action_logs_error_code(capfd) -> None:
    configure_logging(LoggingOptions(level="INFO", format="json"))
    engine = GameEngine()
    game = new_game(engine)

    with pytest.raises(ValidationError):
        engine.buy_premarket(game, PlayerLedger("alice"), PlayerSigner("alice"), 1, ctx(START))

    records = [json.loads(line) for line in capfd.readouterr().err.strip().splitlines()]
    rejection = next(r for r in records if r["logger"] == "shrimpfarm.engine")
    assert rejection["context"] == {"action": "buy_premarket", "code": "buy_amount_too_low"}
