"""Tests for environment-driven settings."""

import pytest

from oblivious_matching.config import MatchingSettings
from oblivious_matching.core.backend import DEFAULT_PLAINTEXT_MODULUS, DEFAULT_SLOT_COUNT
from oblivious_matching.core.errors import ConfigurationError


class TestMatchingSettings:
    def test_defaults(self) -> None:
        s = MatchingSettings(_env_file=None)
        params = s.batch_parameters()
        assert params.slot_count == DEFAULT_SLOT_COUNT
        assert params.plaintext_modulus == DEFAULT_PLAINTEXT_MODULUS
        assert s.DEFAULT_CANDIDATE_COUNT == 2048
        assert s.VERIFY_CONSISTENCY is True

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ORIDE_BACKEND", "plaintext")
        monkeypatch.setenv("ORIDE_SLOT_COUNT", "4096")
        monkeypatch.setenv("ORIDE_VERIFY_CONSISTENCY", "false")

        s = MatchingSettings(_env_file=None)
        assert s.BACKEND == "plaintext"
        assert s.batch_parameters().slot_count == 4096
        assert s.VERIFY_CONSISTENCY is False

    def test_invalid_parameters_fail_on_validate(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ORIDE_SLOT_COUNT", "3000")
        params = MatchingSettings(_env_file=None).batch_parameters()
        with pytest.raises(ConfigurationError, match="power of two"):
            params.validate()
