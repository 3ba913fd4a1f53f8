"""Tests for configuration loading, env expansion and validation."""

from __future__ import annotations

import pytest

from mcp_conduit.config import build_config, load_config
from mcp_conduit.config.env import apply_env_overrides, expand_env_vars
from mcp_conduit.config.loader import CONFIG_ENV_VAR, find_config_file
from mcp_conduit.constants import DEFAULT_PORT, MAX_BODY_BYTES, RATE_LIMIT_MAX_REQUESTS
from mcp_conduit.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _no_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


class TestBuildConfig:
    def test_defaults(self) -> None:
        config = build_config({}, environ={})
        assert config.version == "1"
        assert config.server.port == DEFAULT_PORT
        assert config.server.mode == "development"
        assert config.server.api_key is None
        assert config.server.max_body_bytes == MAX_BODY_BYTES == 4 * 1024 * 1024
        assert config.rate_limit.max_requests == RATE_LIMIT_MAX_REQUESTS
        assert config.transport.stream_denylist == ["Cursor"]
        assert config.diagnostic
        assert not config.guarded

    def test_env_overrides(self) -> None:
        config = build_config(
            {"server": {"port": 9000}},
            environ={
                "CONDUIT_MODE": "prod",
                "MCP_API_KEY": "k",
                "PORT": "8123",
                "FRAPPE_URL": "https://erp.example.com/",
            },
        )
        assert config.server.mode == "production"
        assert config.server.api_key == "k"
        assert config.server.port == 8123
        assert config.backend.url == "https://erp.example.com"
        assert config.guarded

    def test_blank_override_is_ignored(self) -> None:
        config = build_config({"server": {"port": 9000}}, environ={"PORT": "  "})
        assert config.server.port == 9000

    def test_blank_api_key_means_none(self) -> None:
        assert build_config({"server": {"api_key": "  "}}, environ={}).server.api_key is None

    @pytest.mark.parametrize(
        "raw, fragment",
        [
            ({"version": "2"}, "Unsupported config version"),
            ({"server": {"mode": "staging"}}, "server → mode"),
            ({"server": {"port": 0}}, "server → port"),
            ({"server": {"max_body_bytes": 0}}, "server → max_body_bytes"),
            ({"metrics": {"sample_cap": 10, "sample_keep": 20}}, "sample_keep"),
            ({"backend": {"url": "erp.local"}}, "http:// or https://"),
        ],
    )
    def test_invalid_values(self, raw, fragment: str) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            build_config(raw, environ={})
        assert fragment in str(exc_info.value)


class TestEnvExpansion:
    def test_placeholders_expand_recursively(self) -> None:
        env = {"HOST": "erp.internal", "SECRET": "s3"}
        data = {
            "backend": {"url": "https://${HOST}/", "api_secret": "${SECRET}"},
            "server": {"cors_origins": ["https://${HOST}", "${MISSING}"]},
            "n": 3,
        }
        assert expand_env_vars(data, env) == {
            "backend": {"url": "https://erp.internal/", "api_secret": "s3"},
            "server": {"cors_origins": ["https://erp.internal", "${MISSING}"]},
            "n": 3,
        }

    def test_overrides_do_not_mutate_input(self) -> None:
        raw = {"server": {"port": 1}}
        updated = apply_env_overrides(raw, {"PORT": "2"})
        assert updated["server"]["port"] == "2"
        assert raw == {"server": {"port": 1}}


class TestLoadConfig:
    def test_yaml_file(self, tmp_path) -> None:
        path = tmp_path / "conduit.yaml"
        path.write_text(
            "version: '1'\n"
            "server:\n"
            "  mode: production\n"
            "  api_key: ${TEST_KEY}\n"
            "rate_limit:\n"
            "  max_requests: 5\n",
            encoding="utf-8",
        )
        config = load_config(str(path), environ={"TEST_KEY": "abc"})
        assert config.server.mode == "production"
        assert config.server.api_key == "abc"
        assert config.rate_limit.max_requests == 5

    def test_empty_file_gives_defaults(self, tmp_path) -> None:
        path = tmp_path / "config.yml"
        path.write_text("", encoding="utf-8")
        assert load_config(str(path), environ={}).server.mode == "development"

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="does not exist"):
            load_config(str(tmp_path / "nope.yaml"), environ={})

    def test_unsupported_extension(self, tmp_path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{}", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Unsupported config file extension"):
            load_config(str(path), environ={})

    def test_non_mapping_content(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(str(path), environ={})

    def test_discovery(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        assert find_config_file(str(tmp_path)) is None
        (tmp_path / "config.yaml").write_text("{}", encoding="utf-8")
        assert find_config_file(str(tmp_path)) == str(tmp_path / "config.yaml")
        monkeypatch.setenv(CONFIG_ENV_VAR, "/etc/conduit.yaml")
        assert find_config_file(str(tmp_path)) == "/etc/conduit.yaml"

    def test_no_file_uses_defaults(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        config = load_config(environ={"FRAPPE_API_KEY": "k", "FRAPPE_API_SECRET": "s"})
        assert config.backend.api_key == "k"
        assert config.backend.api_secret == "s"
