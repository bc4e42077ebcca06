"""Tests for ConsentManager integration with the consent engine and storage."""

from __future__ import annotations

import pytest

from medconsent.consent.clock import LogicalClock
from medconsent.consent.engine import ConsentEngine
from medconsent.consent.manager import ConsentManager
from medconsent.consent.storage import InMemoryConsentStateStorage
from medconsent.exceptions import ConsentExpiredOrInactiveError, NotDelegatedError, ValidationError


class TestConsentManager:
    """Test high-level consent manager behaviour."""

    def setup_method(self) -> None:
        engine = ConsentEngine(storage=InMemoryConsentStateStorage(), clock=LogicalClock())
        self.manager = ConsentManager(engine=engine)

    @pytest.mark.asyncio
    async def test_grant_and_check(self) -> None:
        """Grant a consent and check it via the manager."""
        result = await self.manager.grant("alice", "bob", "vaccinations", 500)

        assert result["ok"]
        assert result["consent"]["expiry"] == 500
        assert result["consent"]["granter"] == "alice"

        check = await self.manager.check("alice", "bob", "vaccinations")
        assert check["valid"]
        assert check["now"] == 0

        await self.manager.advance_clock(501)
        with pytest.raises(ConsentExpiredOrInactiveError):
            await self.manager.check("alice", "bob", "vaccinations")

    @pytest.mark.asyncio
    async def test_revoke_and_renew_default_to_caller_as_granter(self) -> None:
        await self.manager.grant("alice", "bob", "imaging", 100)

        renewed = await self.manager.renew("alice", "bob", "imaging", 20)
        assert renewed["consent"]["expiry"] == 120

        revoked = await self.manager.revoke("alice", "bob", "imaging")
        assert revoked["consent"]["active"] is False

    @pytest.mark.asyncio
    async def test_delegate_flow(self) -> None:
        """Delegates act for the granter named explicitly."""
        added = await self.manager.add_delegate("alice", "carol")
        assert added["delegates"] == ["carol"]

        await self.manager.grant_as_delegate("carol", "alice", "bob", "lab-results", 100)
        revoked = await self.manager.revoke("carol", "bob", "lab-results", granter="alice")
        assert revoked["consent"]["active"] is False

        removed = await self.manager.remove_delegate("alice", "carol")
        assert removed["delegates"] == []
        with pytest.raises(NotDelegatedError):
            await self.manager.grant_as_delegate("carol", "alice", "bob", "allergies", 100)

        listed = await self.manager.list_delegates("alice")
        assert listed == {"granter": "alice", "delegates": []}

    @pytest.mark.asyncio
    async def test_history_reports_verification(self) -> None:
        await self.manager.grant("alice", "bob", "allergies", 100, notes="clinic")
        await self.manager.revoke("alice", "bob", "allergies")

        result = await self.manager.get_history("alice", "bob", "allergies")

        assert result["verified"]
        assert [e["action"] for e in result["history"]] == ["granted", "revoked"]
        assert result["history"][0]["details"] == "clinic"

    @pytest.mark.asyncio
    async def test_details_of_unknown_consent(self) -> None:
        result = await self.manager.get_details("alice", "bob", "allergies")
        assert result == {"consent": None}

    @pytest.mark.asyncio
    async def test_categories(self) -> None:
        added = await self.manager.add_category("dental")
        assert added == {"ok": True, "category": "dental"}

        valid = await self.manager.is_valid_category("dental")
        assert valid["valid"]

        listed = await self.manager.list_categories()
        assert listed["categories"][-1] == "dental"

    @pytest.mark.asyncio
    async def test_templates(self) -> None:
        created = await self.manager.create_template(
            "alice", "emergency", ["allergies", "medications"], 1000, "ER"
        )
        assert created["template"]["created_by"] == "alice"

        fetched = await self.manager.get_template("emergency")
        assert fetched["template"]["categories"] == ["allergies", "medications"]
        assert (await self.manager.get_template("missing")) == {"template": None}

        applied = await self.manager.apply_template("alice", "er-team", "emergency")
        assert applied["ok"] and applied["all_succeeded"]

    @pytest.mark.asyncio
    async def test_batches(self) -> None:
        granted = await self.manager.batch_grant("alice", "bob", ["allergies", "dental"], 100)
        assert granted["ok"]
        assert not granted["all_succeeded"]

        revoked = await self.manager.batch_revoke("alice", "bob", ["allergies"])
        assert revoked["all_succeeded"]

    @pytest.mark.asyncio
    async def test_clock(self) -> None:
        assert (await self.manager.get_clock()) == {"now": 0}
        assert (await self.manager.advance_clock(5)) == {"now": 5}

        with pytest.raises(ValidationError):
            await self.manager.advance_clock(-1)
