"""Application configuration for the pattern search service.

Loads settings from .env file with PATTERNATLAS_ prefix.
Validates pagination bounds and the per-call store timeout at load time.
"""

from typing import Optional

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pattern Atlas application settings.

    All settings are loaded from environment variables with PATTERNATLAS_
    prefix, or from a .env file in the working directory.
    """

    database_url: str = "sqlite:///./patternatlas.db"
    db_encryption_key: Optional[SecretStr] = None
    debug: bool = False

    # Search behaviour
    default_limit: int = 20
    max_limit: int = 100
    max_offset: int = 100_000
    default_related_limit: int = 5
    max_related_limit: int = 20
    max_keyword_terms: int = 10
    case_insensitive_filters: bool = False
    title_weight: float = 3.0
    description_weight: float = 1.0
    store_timeout_seconds: float = 5.0

    model_config = {
        "env_file": ".env",
        "env_prefix": "PATTERNATLAS_",
    }

    @model_validator(mode="after")
    def validate_search_bounds(self) -> "Settings":
        """Reject pagination and timeout values the search layer cannot honour."""
        if self.default_limit < 1 or self.max_limit < 1:
            raise ValueError("default_limit and max_limit must be positive")
        if self.max_offset < 0:
            raise ValueError("max_offset must not be negative")
        if self.default_limit > self.max_limit:
            raise ValueError(
                f"default_limit ({self.default_limit}) exceeds max_limit ({self.max_limit})"
            )
        if self.default_related_limit > self.max_related_limit:
            raise ValueError("default_related_limit exceeds max_related_limit")
        if self.store_timeout_seconds <= 0:
            raise ValueError("store_timeout_seconds must be greater than zero")
        if self.title_weight <= self.description_weight:
            raise ValueError("title_weight must be greater than description_weight")
        return self


def get_settings() -> Settings:
    """Create and return a Settings instance.

    Raises a clear error message if the environment holds invalid values.
    """
    try:
        return Settings()
    except Exception as e:
        raise RuntimeError(
            f"Failed to load Pattern Atlas settings: {e}\n"
            "Check PATTERNATLAS_* environment variables or the .env file."
        ) from e
