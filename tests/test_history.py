"""
Tests for the bounded, hash-chained consent history
"""

import pytest

from medconsent.consent.clock import LogicalClock
from medconsent.consent.engine import ConsentEngine
from medconsent.consent.history import GENESIS_HASH, BoundedHistory, HistoryLog
from medconsent.consent.models import ConsentKey, ConsentRecord, HistoryAction, HistoryEntry
from medconsent.consent.storage import InMemoryConsentStateStorage
from medconsent.constants import Limits


def entry(time: int) -> HistoryEntry:
    return HistoryEntry(time=time, action=HistoryAction.RENEWED, details=str(time))


class TestBoundedHistory:
    """Test the fixed-capacity entry sequence"""

    def test_append_below_capacity(self):
        history = BoundedHistory(3)

        assert history.append(entry(1)) is None
        assert history.append(entry(2)) is None
        assert len(history) == 2
        assert history.last.time == 2

    def test_append_evicts_oldest(self):
        history = BoundedHistory(3, [entry(1), entry(2), entry(3)])

        evicted = history.append(entry(4))

        assert evicted.time == 1
        assert [e.time for e in history] == [2, 3, 4]

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            BoundedHistory(0)

    def test_empty_history_has_no_last(self):
        assert BoundedHistory(5).last is None


class TestHistoryLog:
    """Test staging, persisting and verifying history"""

    def setup_method(self):
        self.storage = InMemoryConsentStateStorage()
        self.log = HistoryLog(self.storage)
        self.record = ConsentRecord(granter="alice", grantee="bob", category="imaging", expiry=100)
        self.key = self.record.key

    def record_entry(self, time, action, details=""):
        entries = self.log.stage(self.key, time, action, details)
        self.storage.save_transition(self.record, entries)
        return entries[-1]

    def test_first_entry_links_to_genesis(self):
        first = self.record_entry(0, HistoryAction.GRANTED, "initial")

        assert first.previous_hash == GENESIS_HASH
        assert first.hash == first.compute_hash(GENESIS_HASH)

    def test_entries_are_chained(self):
        first = self.record_entry(0, HistoryAction.GRANTED)
        second = self.record_entry(5, HistoryAction.REVOKED)

        assert second.previous_hash == first.hash
        assert self.log.verify(self.key)

    def test_stage_does_not_persist(self):
        staged = self.log.stage(self.key, 0, HistoryAction.GRANTED)

        assert len(staged) == 1
        assert self.log.get(self.key) == []

    def test_details_are_truncated(self):
        long_details = "x" * 300
        stored = self.record_entry(0, HistoryAction.GRANTED, long_details)

        assert len(stored.details) == Limits.MAX_DETAILS_LENGTH

    def test_multibyte_details_are_cut_on_character_boundary(self):
        stored = self.record_entry(0, HistoryAction.GRANTED, "\u20ac" * 50)

        assert stored.details == "\u20ac" * 42
        assert self.log.get(self.key)[-1].details == stored.details

    def test_control_characters_are_stripped(self):
        stored = self.record_entry(0, HistoryAction.GRANTED, "line one\nline\x00two")

        assert stored.details == "line one linetwo"

    def test_empty_history_verifies(self):
        assert self.log.verify(self.key)

    def test_tampered_entry_fails_verification(self):
        self.record_entry(0, HistoryAction.GRANTED, "original")
        self.record_entry(1, HistoryAction.RENEWED, "10")

        entries = self.storage.get_history(self.key)
        entries[0] = entries[0].model_copy(update={"details": "forged"})
        self.storage.save_transition(self.record, entries)

        assert not self.log.verify(self.key)

    def test_reordered_entries_fail_verification(self):
        self.record_entry(0, HistoryAction.GRANTED)
        self.record_entry(1, HistoryAction.RENEWED, "10")
        self.record_entry(2, HistoryAction.REVOKED)

        entries = self.storage.get_history(self.key)
        self.storage.save_transition(self.record, [entries[0], entries[2], entries[1]])

        assert not self.log.verify(self.key)


class TestHistoryCapacity:
    """Test history eviction through real consent transitions"""

    def test_history_never_exceeds_capacity(self):
        """Sixty renewals keep only the fifty most recent entries"""
        engine = ConsentEngine(storage=InMemoryConsentStateStorage(), clock=LogicalClock())
        engine.consents.grant("alice", "alice", "bob", "imaging", 1000)

        for i in range(60):
            engine.clock.advance(1)
            engine.consents.renew("alice", "alice", "bob", "imaging", 1)

        history = engine.consents.get_history("alice", "bob", "imaging")
        assert len(history) == Limits.MAX_HISTORY_ENTRIES
        assert all(e.action == HistoryAction.RENEWED for e in history)
        assert history[0].time == 11
        assert history[-1].time == 60
        assert engine.consents.verify_history("alice", "bob", "imaging")

        record = engine.consents.get_details("alice", "bob", "imaging")
        assert record.expiry == 1060
