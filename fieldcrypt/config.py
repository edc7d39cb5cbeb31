"""
Configuration management using Pydantic Settings.
Loads encryption configuration from environment variables and .env file.

Settings objects are frozen: build one explicitly and pass it to key providers
and schemes, or use get_settings() for the environment-backed default.
"""
import json
from functools import lru_cache
from typing import Any, Dict, List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fieldcrypt.errors import ConfigurationError

SUPPORTED_HASH_DIGESTS = ("SHA256", "SHA1")


class Settings(BaseSettings):
    """Encryption settings loaded from environment variables."""

    # Key material
    # Comma-separated list; the last password is used for new encryptions
    ENCRYPTION_PRIMARY_KEY: Optional[str] = None
    ENCRYPTION_DETERMINISTIC_KEY: Optional[str] = None  # Single password, can't be rotated
    ENCRYPTION_KEY_DERIVATION_SALT: Optional[str] = None

    # Key derivation
    ENCRYPTION_KEY_DERIVATION_ITERATIONS: int = 65536
    ENCRYPTION_HASH_DIGEST_CLASS: str = "SHA256"  # Options: SHA256, SHA1

    # Behaviour
    ENCRYPTION_STORE_KEY_REFERENCES: bool = False  # Store key id in headers to skip trial decryption
    ENCRYPTION_SUPPORT_UNENCRYPTED_DATA: bool = False  # Tolerate legacy plaintext on read
    ENCRYPTION_EXTEND_QUERIES: bool = False  # Add clean values to deterministic query candidates

    # JSON list of scheme options, e.g. '[{"deterministic": false}]'
    ENCRYPTION_PREVIOUS: str = "[]"

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    APP_LOG_LEVEL: Optional[str] = None
    SQLALCHEMY_LOG_LEVEL: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        frozen=True,
    )

    @field_validator("ENCRYPTION_HASH_DIGEST_CLASS")
    @classmethod
    def _check_digest(cls, value: str) -> str:
        value = value.upper()
        if value not in SUPPORTED_HASH_DIGESTS:
            raise ValueError(
                f"Unsupported hash digest {value!r}, expected one of {SUPPORTED_HASH_DIGESTS}"
            )
        return value

    @field_validator("ENCRYPTION_KEY_DERIVATION_ITERATIONS")
    @classmethod
    def _check_iterations(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Key derivation iterations must be positive")
        return value

    @property
    def primary_keys(self) -> List[str]:
        """Parse primary key passwords from comma-separated string."""
        if not self.ENCRYPTION_PRIMARY_KEY:
            return []
        return [key.strip() for key in self.ENCRYPTION_PRIMARY_KEY.split(",") if key.strip()]

    @property
    def previous_schemes_options(self) -> List[Dict[str, Any]]:
        """
        Parse globally declared previous schemes.

        Raises:
            ConfigurationError: If ENCRYPTION_PREVIOUS is not a JSON list of objects
        """
        try:
            options = json.loads(self.ENCRYPTION_PREVIOUS or "[]")
        except ValueError as e:
            raise ConfigurationError(f"ENCRYPTION_PREVIOUS is not valid JSON: {e}") from e

        if not isinstance(options, list) or not all(isinstance(o, dict) for o in options):
            raise ConfigurationError("ENCRYPTION_PREVIOUS must be a JSON list of objects")
        return options

    def require(self, name: str) -> Any:
        """
        Return a credential setting, failing loudly when it is missing.

        Args:
            name: Settings field name (e.g. "ENCRYPTION_DETERMINISTIC_KEY")

        Raises:
            ConfigurationError: If the setting is empty
        """
        value = getattr(self, name)
        if value is None or value == "" or value == []:
            raise ConfigurationError(f"Missing encryption credential: {name}")
        return value


@lru_cache
def get_settings() -> Settings:
    """Return the default settings instance, loaded once from the environment."""
    return Settings()
