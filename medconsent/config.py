"""
Configuration management for the medconsent engine
Capacity limits, storage backend and logging settings
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field

from .constants import DefaultCategories, Limits


class ConsentConfig(BaseSettings):
    """Consent engine configuration settings"""

    # Capacity limits
    max_history_entries: int = Field(default=Limits.MAX_HISTORY_ENTRIES, description="History entries kept per consent key")
    max_delegates: int = Field(default=Limits.MAX_DELEGATES, description="Delegates per granter")
    max_template_categories: int = Field(default=Limits.MAX_TEMPLATE_CATEGORIES)
    max_batch_categories: int = Field(default=Limits.MAX_BATCH_CATEGORIES)

    # String bounds
    max_category_length: int = Field(default=Limits.MAX_CATEGORY_LENGTH)
    max_details_length: int = Field(default=Limits.MAX_DETAILS_LENGTH)
    max_description_length: int = Field(default=Limits.MAX_DESCRIPTION_LENGTH)
    max_template_name_length: int = Field(default=Limits.MAX_TEMPLATE_NAME_LENGTH)

    # Category bootstrap
    default_categories: List[str] = Field(
        default_factory=lambda: list(DefaultCategories.ALL),
        description="Categories seeded on first initialization"
    )

    # Storage
    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy URL; in-memory storage when unset"
    )

    # Logical clock
    initial_block_height: int = Field(default=0)

    # Environment-specific overrides
    debug_mode: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    model_config = {"env_prefix": "MEDCONSENT_", "case_sensitive": False}


# Global configuration instance
consent_config = ConsentConfig()


def get_consent_config() -> ConsentConfig:
    """Get the global consent configuration instance"""
    return consent_config


def update_consent_config(**kwargs) -> ConsentConfig:
    """Update consent configuration with new values"""
    global consent_config
    for key, value in kwargs.items():
        if hasattr(consent_config, key):
            setattr(consent_config, key, value)
    return consent_config
