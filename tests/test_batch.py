"""
Tests for batch grant and revoke
"""

import pytest

from medconsent.audit.events import ConsentEventBus, ConsentEventType
from medconsent.consent.clock import LogicalClock
from medconsent.consent.engine import ConsentEngine
from medconsent.consent.storage import InMemoryConsentStateStorage
from medconsent.constants import ErrorCodes, Limits
from medconsent.exceptions import ValidationError


class TestBatchOperations:
    """Test sequential batch operations"""

    def setup_method(self):
        self.events = ConsentEventBus()
        self.engine = ConsentEngine(storage=InMemoryConsentStateStorage(),
                                    clock=LogicalClock(), events=self.events)
        self.batch = self.engine.batch

    def test_batch_grant(self):
        result = self.batch.batch_grant("alice", "bob", ["allergies", "imaging"], 100,
                                        notes="referral")

        assert result.ok
        assert result.all_succeeded
        for category in ("allergies", "imaging"):
            assert self.engine.consents.has_valid_consent("alice", "bob", category)
            history = self.engine.consents.get_history("alice", "bob", category)
            assert history[0].details == "referral"

    def test_batch_grant_partial_failure(self):
        result = self.batch.batch_grant("alice", "bob", ["allergies", "dental", "imaging"], 100)

        assert result.ok
        assert not result.all_succeeded
        assert result.failed_categories == ["dental"]
        assert result.results[1].code == ErrorCodes.INVALID_CATEGORY
        assert self.engine.consents.has_valid_consent("alice", "bob", "imaging")

    def test_batch_grant_duplicate_entries(self):
        """Each entry is applied in order, so a repeat hits the earlier grant"""
        result = self.batch.batch_grant("alice", "bob", ["allergies", "allergies"], 100)

        assert [item.ok for item in result.results] == [True, False]
        assert result.results[1].error == "conflict"

    def test_batch_grant_invalid_duration_fails_every_item(self):
        result = self.batch.batch_grant("alice", "bob", ["allergies", "imaging"], 0)

        assert result.ok
        assert result.failed_categories == ["allergies", "imaging"]
        assert all(item.code == ErrorCodes.INVALID_DURATION for item in result.results)

    def test_batch_too_large(self):
        categories = [f"cat-{i}" for i in range(Limits.MAX_BATCH_CATEGORIES + 1)]

        with pytest.raises(ValidationError):
            self.batch.batch_grant("alice", "bob", categories, 100)
        with pytest.raises(ValidationError):
            self.batch.batch_revoke("alice", "bob", categories)

    def test_empty_batch(self):
        result = self.batch.batch_grant("alice", "bob", [], 100)

        assert result.ok
        assert result.all_succeeded
        assert result.results == []

    def test_batch_revoke(self):
        self.batch.batch_grant("alice", "bob", ["allergies", "imaging"], 100)

        result = self.batch.batch_revoke("alice", "bob", ["allergies", "genetics", "imaging"])

        assert result.ok
        assert result.failed_categories == ["genetics"]
        assert result.results[1].code == ErrorCodes.NOT_FOUND
        assert not self.engine.consents.get_details("alice", "bob", "allergies").active
        assert not self.engine.consents.get_details("alice", "bob", "imaging").active

    def test_result_dict(self):
        result = self.batch.batch_grant("alice", "bob", ["allergies", "dental"], 100)

        data = result.to_dict()
        assert data["ok"] is True
        assert data["all_succeeded"] is False
        assert data["results"][0] == {
            "category": "allergies", "ok": True, "error": None, "code": None, "message": None,
        }
        assert data["results"][1]["error"] == "invalid_category"

    def test_batch_emits_summary_event(self):
        self.batch.batch_grant("alice", "bob", ["allergies", "dental"], 100)

        events = self.events.recent(ConsentEventType.BATCH_GRANTED)
        assert len(events) == 1
        assert events[0].identifiers["categories"] == ["allergies", "dental"]
        assert events[0].identifiers["failed"] == ["dental"]
