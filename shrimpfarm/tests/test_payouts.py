"""Tests for the payout intent journal and executor."""

import pytest

from shrimpfarm.collaborators import InMemoryBank
from shrimpfarm.engine import TransferRequest
from shrimpfarm.payouts import IntentState, PayoutExecutor, PayoutJournal


class TestPayoutJournal:
    """Tests for intent state transitions."""

    def test_record_is_pending(self):
        """Should record new intents as pending with increasing ids."""
        journal = PayoutJournal()
        first = journal.record("user_withdraw", "treasury", "alice", 10)
        second = journal.record("user_withdraw", "treasury", "bob", 20)
        assert (first.intent_id, second.intent_id) == (1, 2)
        assert journal.pending() == [first, second]
        assert len(journal) == 2

    def test_single_transition(self):
        """Should refuse to settle an intent twice."""
        journal = PayoutJournal()
        intent = journal.record("dev_withdraw", "treasury", "dev1", 10)
        journal.complete(intent)
        with pytest.raises(ValueError):
            journal.reverse(intent, "late failure")

    def test_to_dict(self):
        """Should serialize state by value."""
        journal = PayoutJournal()
        intent = journal.record("user_withdraw", "treasury", "alice", 10)
        journal.reverse(intent, "boom")
        assert intent.to_dict()["state"] == "reversed"
        assert intent.to_dict()["error"] == "boom"


class TestPayoutExecutor:
    """Tests for transfer execution with compensation."""

    def test_all_succeed(self):
        """Should complete every intent and compensate nothing."""
        bank = InMemoryBank({"treasury": 100})
        compensated = []
        executor = PayoutExecutor(bank)

        outcome = executor.execute(
            "dev_withdraw",
            [TransferRequest("treasury", "dev1", 60, "dev_withdraw"),
             TransferRequest("treasury", "dev2", 40, "dev_withdraw")],
            compensated.append,
        )

        assert outcome.ok
        assert outcome.paid == 100
        assert compensated == []
        assert bank.balance("dev1") == 60

    def test_failure_compensated_and_others_continue(self):
        """Should compensate only the failed intent and keep paying the rest."""
        bank = InMemoryBank({"treasury": 100})
        bank.fail_next("dev1")
        compensated = []
        executor = PayoutExecutor(bank)

        outcome = executor.execute(
            "dev_withdraw",
            [TransferRequest("treasury", "dev1", 60, "dev_withdraw"),
             TransferRequest("treasury", "dev2", 40, "dev_withdraw")],
            compensated.append,
        )

        assert not outcome.ok
        assert outcome.paid == 40
        assert [intent.destination for intent in compensated] == ["dev1"]
        assert [intent.state for intent in outcome.intents] == [IntentState.REVERSED, IntentState.COMPLETED]
        assert bank.balance("treasury") == 60

    def test_keeps_supplied_empty_journal(self):
        """Should record into the journal it was given even while that journal is empty."""
        bank = InMemoryBank({"treasury": 10})
        journal = PayoutJournal()
        executor = PayoutExecutor(bank, journal)
        assert executor.journal is journal

        executor.execute(
            "user_withdraw",
            [TransferRequest("treasury", "alice", 10, "user_withdraw")],
            lambda intent: None,
        )
        assert [intent.state for intent in journal.entries()] == [IntentState.COMPLETED]
