"""
Tests for the delegation registry
"""

import pytest

from medconsent.audit.events import ConsentEventBus, ConsentEventType
from medconsent.consent.delegation import DelegateSet, DelegationRegistry
from medconsent.consent.storage import InMemoryConsentStateStorage
from medconsent.constants import ErrorCodes, Limits
from medconsent.exceptions import (
    CapacityExceededError,
    ConflictError,
    NotFoundError,
    Subject,
    ValidationError,
)


class TestDelegateSet:
    """Test the bounded delegate set"""

    def test_add_keeps_insertion_order(self):
        delegates = DelegateSet("alice", 3)
        delegates.add("carol")
        delegates.add("dave")

        assert delegates.as_list() == ["carol", "dave"]
        assert "carol" in delegates
        assert len(delegates) == 2

    def test_duplicate_is_rejected(self):
        delegates = DelegateSet("alice", 3, ["carol"])

        with pytest.raises(ConflictError) as exc_info:
            delegates.add("carol")
        assert exc_info.value.subject == Subject.DELEGATE

    def test_full_set_is_rejected(self):
        delegates = DelegateSet("alice", 2, ["carol", "dave"])

        with pytest.raises(CapacityExceededError) as exc_info:
            delegates.add("erin")
        assert exc_info.value.code == ErrorCodes.CAPACITY_EXCEEDED

    def test_capacity_checked_before_duplicates(self):
        delegates = DelegateSet("alice", 1, ["carol"])

        with pytest.raises(CapacityExceededError):
            delegates.add("carol")

    def test_remove_preserves_order(self):
        delegates = DelegateSet("alice", 5, ["carol", "dave", "erin"])
        delegates.remove("dave")

        assert delegates.as_list() == ["carol", "erin"]

    def test_remove_missing(self):
        with pytest.raises(NotFoundError):
            DelegateSet("alice", 5).remove("carol")


class TestDelegationRegistry:
    """Test per-granter delegations"""

    def setup_method(self):
        self.events = ConsentEventBus()
        self.registry = DelegationRegistry(InMemoryConsentStateStorage(), events=self.events)

    def test_add_and_list(self):
        assert self.registry.add_delegate("alice", "carol") == ["carol"]
        assert self.registry.add_delegate("alice", "dave") == ["carol", "dave"]

        assert self.registry.get_delegates("alice") == ["carol", "dave"]
        assert self.registry.get_delegates("bob") == []

    def test_capacity_limit(self):
        for i in range(Limits.MAX_DELEGATES):
            self.registry.add_delegate("alice", f"delegate-{i}")

        with pytest.raises(CapacityExceededError):
            self.registry.add_delegate("alice", "one-too-many")
        assert len(self.registry.get_delegates("alice")) == Limits.MAX_DELEGATES

    def test_remove_then_re_add(self):
        self.registry.add_delegate("alice", "carol")
        self.registry.add_delegate("alice", "dave")

        assert self.registry.remove_delegate("alice", "carol") == ["dave"]
        assert self.registry.add_delegate("alice", "carol") == ["dave", "carol"]

    def test_remove_missing_delegate(self):
        with pytest.raises(NotFoundError) as exc_info:
            self.registry.remove_delegate("alice", "carol")
        assert exc_info.value.code == ErrorCodes.NOT_FOUND

    def test_is_authorized(self):
        self.registry.add_delegate("alice", "carol")

        assert self.registry.is_authorized("alice", "alice")
        assert self.registry.is_authorized("alice", "carol")
        assert not self.registry.is_authorized("alice", "mallory")
        assert not self.registry.is_authorized("carol", "alice")

    def test_delegations_are_per_granter(self):
        self.registry.add_delegate("alice", "carol")
        self.registry.add_delegate("bob", "carol")
        self.registry.remove_delegate("alice", "carol")

        assert not self.registry.is_authorized("alice", "carol")
        assert self.registry.is_authorized("bob", "carol")

    def test_empty_delegate_rejected(self):
        with pytest.raises(ValidationError):
            self.registry.add_delegate("alice", "")

    def test_changes_emit_events(self):
        self.registry.add_delegate("alice", "carol", time=7)
        self.registry.remove_delegate("alice", "carol", time=9)

        added = self.events.recent(ConsentEventType.DELEGATE_ADDED)
        removed = self.events.recent(ConsentEventType.DELEGATE_REMOVED)
        assert added[0].identifiers == {"granter": "alice", "delegate": "carol"}
        assert added[0].time == 7
        assert removed[0].time == 9
