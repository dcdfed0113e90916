"""Tests for ClientConfig and key loading."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from xphere.config import (
    DEFAULT_BROADCAST_LIMIT,
    DEFAULT_ENDPOINTS,
    DEFAULT_TIMEOUT,
    ClientConfig,
    load_private_key,
)
from xphere.errors import ValidationError

from .conftest import RFC_SEED


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Isolated os.environ so load_dotenv writes cannot leak between tests."""
    env: dict[str, str] = {}
    monkeypatch.setattr(os, "environ", env)
    return env


class TestClientConfig:
    """Construction and validation."""

    def test_defaults(self) -> None:
        config = ClientConfig()
        assert config.endpoints == DEFAULT_ENDPOINTS
        assert config.timeout == DEFAULT_TIMEOUT
        assert config.broadcast_limit == DEFAULT_BROADCAST_LIMIT
        assert config.headers == {}

    def test_endpoints_from_string(self) -> None:
        assert ClientConfig(endpoints="https://a.test").endpoints == ("https://a.test",)

    def test_endpoints_from_mapping(self) -> None:
        config = ClientConfig(endpoints={"main": "https://a.test", "backup": "https://b.test"})
        assert config.endpoints == ("https://a.test", "https://b.test")

    def test_endpoints_deduplicated(self) -> None:
        config = ClientConfig(endpoints=["https://a.test", " https://a.test ", "https://b.test", ""])
        assert config.endpoints == ("https://a.test", "https://b.test")

    def test_empty_endpoints_fall_back_to_defaults(self) -> None:
        assert ClientConfig(endpoints=[]).endpoints == DEFAULT_ENDPOINTS

    @pytest.mark.parametrize("timeout", [0, -1, "30", True])
    def test_invalid_timeout(self, timeout: object) -> None:
        with pytest.raises(ValidationError):
            ClientConfig(timeout=timeout)  # type: ignore[arg-type]

    @pytest.mark.parametrize("limit", [0, -3, 2.5])
    def test_invalid_broadcast_limit(self, limit: object) -> None:
        with pytest.raises(ValidationError):
            ClientConfig(broadcast_limit=limit)  # type: ignore[arg-type]

    def test_immutable(self) -> None:
        config = ClientConfig()
        with pytest.raises(AttributeError):
            config.timeout = 5.0  # type: ignore[misc]

    def test_headers_copied(self) -> None:
        headers = {"X-Api-Key": "k"}
        config = ClientConfig(headers=headers)
        headers["X-Api-Key"] = "changed"
        assert config.headers == {"X-Api-Key": "k"}

    def test_with_overrides(self) -> None:
        base = ClientConfig(endpoints=["https://a.test"], timeout=10.0)
        derived = base.with_overrides(timeout=2.0)
        assert derived.timeout == 2.0
        assert derived.endpoints == ("https://a.test",)
        assert base.timeout == 10.0

    def test_with_overrides_validates(self) -> None:
        with pytest.raises(ValidationError):
            ClientConfig().with_overrides(broadcast_limit=0)


class TestFromEnv:
    """ClientConfig.from_env."""

    def test_reads_environment(self, clean_env: dict[str, str], tmp_path: Path) -> None:
        clean_env["XPHERE_ENDPOINTS"] = "https://a.test, https://b.test"
        clean_env["XPHERE_TIMEOUT"] = "5"
        clean_env["XPHERE_BROADCAST_LIMIT"] = "4"

        config = ClientConfig.from_env(env_path=tmp_path / "missing.env")

        assert config.endpoints == ("https://a.test", "https://b.test")
        assert config.timeout == 5.0
        assert config.broadcast_limit == 4

    def test_reads_dotenv_file(self, clean_env: dict[str, str], tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("XPHERE_ENDPOINTS=https://file.test\nXPHERE_TIMEOUT=7\n")

        config = ClientConfig.from_env(env_path=env_file)

        assert config.endpoints == ("https://file.test",)
        assert config.timeout == 7.0

    def test_environment_wins_over_file(self, clean_env: dict[str, str], tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("XPHERE_TIMEOUT=7\n")
        clean_env["XPHERE_TIMEOUT"] = "3"

        assert ClientConfig.from_env(env_path=env_file).timeout == 3.0

    def test_overrides_win(self, clean_env: dict[str, str], tmp_path: Path) -> None:
        clean_env["XPHERE_TIMEOUT"] = "3"
        config = ClientConfig.from_env(env_path=tmp_path / "missing.env", timeout=9.0, endpoints=None)
        assert config.timeout == 9.0
        assert config.endpoints == DEFAULT_ENDPOINTS

    def test_bad_number(self, clean_env: dict[str, str], tmp_path: Path) -> None:
        clean_env["XPHERE_TIMEOUT"] = "soon"
        with pytest.raises(ValidationError):
            ClientConfig.from_env(env_path=tmp_path / "missing.env")


class TestLoadPrivateKey:
    """load_private_key."""

    def test_from_environment(self, clean_env: dict[str, str], tmp_path: Path) -> None:
        clean_env["PRIVATE_KEY"] = RFC_SEED
        assert load_private_key(tmp_path / "missing.env") == RFC_SEED

    def test_strips_0x_prefix(self, clean_env: dict[str, str], tmp_path: Path) -> None:
        clean_env["PRIVATE_KEY"] = "0x" + RFC_SEED
        assert load_private_key(tmp_path / "missing.env") == RFC_SEED

    def test_from_dotenv_file(self, clean_env: dict[str, str], tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text(f"PRIVATE_KEY={RFC_SEED}\n")
        assert load_private_key(env_file) == RFC_SEED

    def test_missing(self, clean_env: dict[str, str], tmp_path: Path) -> None:
        with pytest.raises(ValidationError, match="PRIVATE_KEY not found"):
            load_private_key(tmp_path / "missing.env")

    def test_malformed(self, clean_env: dict[str, str], tmp_path: Path) -> None:
        clean_env["PRIVATE_KEY"] = "abc"
        with pytest.raises(ValidationError, match="64 hex"):
            load_private_key(tmp_path / "missing.env")
