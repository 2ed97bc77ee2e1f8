"""Unit tests for core.config.Settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from regtest_scenarios.core.config import Settings


class TestSettings:
    def test_fields(self) -> None:
        assert set(Settings.model_fields) == {
            "LOG_LEVEL",
            "BITCOIN_RPC_URL",
            "BITCOIN_RPC_USER",
            "BITCOIN_RPC_PASSWORD",
            "BITCOIN_RPC_TIMEOUT",
            "SCRIPTS_DIR",
            "SCRIPT_EXEC_TIMEOUT",
            "SCRIPT_EXTRA_MODULES",
        }

    def test_environment_overrides(self, monkeypatch, tmp_path) -> None:
        monkeypatch.setenv("SCRIPTS_DIR", str(tmp_path))
        monkeypatch.setenv("SCRIPT_EXEC_TIMEOUT", "5")
        s = Settings(_env_file=None)
        assert s.SCRIPTS_DIR == Path(tmp_path)
        assert s.SCRIPT_EXEC_TIMEOUT == 5

    def test_negative_timeout_rejected(self, monkeypatch) -> None:
        monkeypatch.setenv("SCRIPT_EXEC_TIMEOUT", "-1")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)
