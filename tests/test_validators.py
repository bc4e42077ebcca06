"""
Tests for input validators, the logical clock and configuration
"""

import pytest

from medconsent.config import ConsentConfig, get_consent_config, update_consent_config
from medconsent.consent.clock import LogicalClock
from medconsent.constants import Limits
from medconsent.exceptions import InvalidCategoryError, InvalidDurationError, ValidationError
from medconsent.utils.validators import (
    sanitize_details,
    utf8_length,
    validate_bounded_text,
    validate_category_label,
    validate_category_list,
    validate_duration,
    validate_principal,
)


class TestValidators:
    """Test input validation helpers"""

    def test_principal(self):
        assert validate_principal("alice") == "alice"

        with pytest.raises(ValidationError):
            validate_principal(None)
        with pytest.raises(ValidationError):
            validate_principal("   ")
        with pytest.raises(ValidationError):
            validate_principal(42)
        with pytest.raises(ValidationError):
            validate_principal("a" * (Limits.MAX_PRINCIPAL_LENGTH + 1))
        with pytest.raises(ValidationError):
            validate_principal("\u00e9" * (Limits.MAX_PRINCIPAL_LENGTH // 2 + 1))

    def test_category_label(self):
        assert validate_category_label("x" * Limits.MAX_CATEGORY_LENGTH)

        with pytest.raises(InvalidCategoryError):
            validate_category_label(7)
        with pytest.raises(InvalidCategoryError):
            validate_category_label("\u00e9" * Limits.MAX_CATEGORY_LENGTH)

    def test_duration(self):
        assert validate_duration(1) == 1

        with pytest.raises(InvalidDurationError):
            validate_duration(0)
        with pytest.raises(ValidationError):
            validate_duration(True)
        with pytest.raises(ValidationError):
            validate_duration(1.5)

    def test_duration_upper_bound(self):
        assert validate_duration(Limits.MAX_DURATION) == Limits.MAX_DURATION

        with pytest.raises(InvalidDurationError) as exc_info:
            validate_duration(2**32)
        assert exc_info.value.details == {"duration": 2**32, "limit": Limits.MAX_DURATION}
        with pytest.raises(InvalidDurationError):
            validate_duration(2**64)

    def test_bounded_text(self):
        assert validate_bounded_text(None, 10) == ""

        with pytest.raises(ValidationError) as exc_info:
            validate_bounded_text("x" * 11, 10, "description")
        assert exc_info.value.details["field"] == "description"

    def test_category_list(self):
        assert validate_category_list(("a", "b"), 2) == ["a", "b"]

        with pytest.raises(ValidationError):
            validate_category_list("allergies", 10)
        with pytest.raises(ValidationError):
            validate_category_list(["a", "b", "c"], 2)

    def test_sanitize_details(self):
        assert sanitize_details("") == ""
        assert sanitize_details("a\tb") == "ab"
        assert sanitize_details("x" * 200, max_length=5) == "xxxxx"

    def test_sanitize_details_keeps_whole_characters(self):
        truncated = sanitize_details("a" + "\u00e9" * 100)

        assert truncated == "a" + "\u00e9" * 63
        assert utf8_length(truncated) == 127
        assert sanitize_details("\u00e9\u00e9", max_length=3) == "\u00e9"

    def test_utf8_length(self):
        assert utf8_length("abc") == 3
        assert utf8_length("\u00e9") == 2
        assert utf8_length("\u20ac") == 3


class TestLogicalClock:
    """Test the monotonic logical clock"""

    def test_advance(self):
        clock = LogicalClock(10)

        assert clock.now() == 10
        assert clock.advance() == 11
        assert clock.advance(0) == 11
        assert clock.advance(9) == 20

    def test_never_moves_backwards(self):
        clock = LogicalClock(10)

        with pytest.raises(ValidationError):
            clock.advance(-1)
        with pytest.raises(ValidationError):
            clock.set(9)
        assert clock.set(10) == 10

    def test_negative_start(self):
        with pytest.raises(ValidationError):
            LogicalClock(-1)

    def test_time_stays_within_storable_range(self):
        with pytest.raises(ValidationError):
            LogicalClock(Limits.MAX_LOGICAL_TIME + 1)

        clock = LogicalClock(Limits.MAX_LOGICAL_TIME - 1)
        assert clock.advance() == Limits.MAX_LOGICAL_TIME
        with pytest.raises(ValidationError):
            clock.advance()
        with pytest.raises(ValidationError):
            clock.set(2**64)
        assert clock.now() == Limits.MAX_LOGICAL_TIME


class TestConsentConfig:
    """Test configuration defaults and environment overrides"""

    def test_defaults(self):
        config = ConsentConfig()

        assert config.max_history_entries == Limits.MAX_HISTORY_ENTRIES
        assert config.max_delegates == Limits.MAX_DELEGATES
        assert config.database_url is None

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("MEDCONSENT_MAX_DELEGATES", "3")
        monkeypatch.setenv("MEDCONSENT_DATABASE_URL", "sqlite:///:memory:")

        config = ConsentConfig()

        assert config.max_delegates == 3
        assert config.database_url == "sqlite:///:memory:"

    def test_update_global_config(self):
        config = get_consent_config()
        previous = config.max_batch_categories
        try:
            updated = update_consent_config(max_batch_categories=4, unknown_setting=True)
            assert updated is get_consent_config()
            assert updated.max_batch_categories == 4
            assert not hasattr(updated, "unknown_setting")
        finally:
            update_consent_config(max_batch_categories=previous)
