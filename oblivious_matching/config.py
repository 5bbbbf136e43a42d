"""Oblivious Matching Configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from oblivious_matching.core.backend import (
    DEFAULT_PLAINTEXT_MODULUS,
    DEFAULT_SLOT_COUNT,
    BatchParameters,
)


class MatchingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ORIDE_", env_file=".env", extra="ignore")

    # App
    APP_NAME: str = "Oblivious Ride Matching"
    LOG_LEVEL: str = "INFO"
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    # Homomorphic backend
    BACKEND: str = "tenseal"  # tenseal or plaintext
    SLOT_COUNT: int = DEFAULT_SLOT_COUNT
    PLAINTEXT_MODULUS: int = DEFAULT_PLAINTEXT_MODULUS
    SECURITY_LEVEL: int = 128

    # Rounds
    DEFAULT_CANDIDATE_COUNT: int = 2048
    VERIFY_CONSISTENCY: bool = True
    MAX_WORKERS: int = 1

    def batch_parameters(self) -> BatchParameters:
        return BatchParameters(
            slot_count=self.SLOT_COUNT,
            plaintext_modulus=self.PLAINTEXT_MODULUS,
            security_level=self.SECURITY_LEVEL,
        )


settings = MatchingSettings()
