"""Tests for settings resolution and :func:`llm_strategy.create_strategy`."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from llm_strategy import ConfigurationError, OpenAIStrategy, create_strategy
from llm_strategy.config import CONFIG_ENV_VAR, load_settings
from llm_strategy.strategies.openai import DEFAULT_CHAT_URL


def test_env_settings_are_used_without_a_file():
    settings = load_settings(environ={
        "OPENAI_API_KEY": "env-key",
        "OPENAI_EMBED_URL": "https://gateway.test/embed",
        "OPENAI_RETRIES": "5",
    })

    assert settings == {
        "openai": {
            "api_key": "env-key",
            "embed_url": "https://gateway.test/embed",
            "retries": "5",
        }
    }


def test_empty_environment_yields_no_settings():
    assert load_settings(environ={}) == {}


def test_json_file_is_loaded_and_env_expanded(tmp_path: Path):
    config_file = tmp_path / "llm.json"
    config_file.write_text(json.dumps({"OpenAI": {"api_key": "${TEST_GATEWAY_KEY}", "timeout": 12}}), encoding="utf-8")

    settings = load_settings(config_file, environ={"TEST_GATEWAY_KEY": "expanded-key"})

    assert settings == {"openai": {"api_key": "expanded-key", "timeout": 12}}


def test_yaml_file_referenced_by_env_var(tmp_path: Path):
    config_file = tmp_path / "llm.yaml"
    config_file.write_text(
        "openai:\n"
        "  api_key: yaml-key\n"
        "  chat_url: https://gateway.test/chat\n",
        encoding="utf-8",
    )

    settings = load_settings(environ={CONFIG_ENV_VAR: str(config_file), "OPENAI_API_KEY": "ignored"})

    assert settings["openai"] == {"api_key": "yaml-key", "chat_url": "https://gateway.test/chat"}


def test_missing_file_is_a_configuration_error(tmp_path: Path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_settings(tmp_path / "absent.yaml", environ={})


def test_non_mapping_root_is_rejected(tmp_path: Path):
    config_file = tmp_path / "list.json"
    config_file.write_text("[1, 2, 3]", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="mapping"):
        load_settings(config_file, environ={})


def test_invalid_yaml_is_rejected(tmp_path: Path):
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("openai: [unclosed", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Failed to parse"):
        load_settings(config_file, environ={})


def test_create_strategy_selects_openai(stub_server):
    strategy = create_strategy("OpenAI", {"openai": {"api_key": "k"}}, transport=stub_server.transport)

    assert isinstance(strategy, OpenAIStrategy)
    assert strategy.config.chat_url == DEFAULT_CHAT_URL
    strategy.close()


def test_create_strategy_without_key_fails():
    with pytest.raises(ConfigurationError, match="API key is required"):
        create_strategy("openai", {})


def test_create_strategy_unknown_name():
    with pytest.raises(ConfigurationError, match="Unknown strategy"):
        create_strategy("carrier-pigeon", {"carrier-pigeon": {}})


def test_create_strategy_loads_settings_from_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "from-env")
    monkeypatch.setenv("OPENAI_TIMEOUT", "7.5")

    strategy = create_strategy()

    assert strategy.config.api_key == "from-env"
    assert strategy.config.timeout == 7.5
    strategy.close()


def test_expansion_uses_the_given_environment_only(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("TEST_GATEWAY_KEY", "process-key")
    config_file = tmp_path / "llm.yaml"
    config_file.write_text("openai:\n  api_key: ${TEST_GATEWAY_KEY}\n  chat_url: $GATEWAY/chat\n", encoding="utf-8")

    settings = load_settings(config_file, environ={"GATEWAY": "https://gateway.test"})

    assert settings["openai"] == {
        "api_key": "${TEST_GATEWAY_KEY}",
        "chat_url": "https://gateway.test/chat",
    }


def test_process_environment_expands_when_none_is_given(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("TEST_GATEWAY_KEY", "process-key")
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    config_file = tmp_path / "llm.json"
    config_file.write_text(json.dumps({"openai": {"api_key": "${TEST_GATEWAY_KEY}"}}), encoding="utf-8")

    assert load_settings(config_file)["openai"]["api_key"] == "process-key"


@pytest.mark.parametrize("key, value", [("timeout", "thirty"), ("retries", "three"), ("retries", "2.5"), ("timeout", [30])])
def test_non_numeric_transport_settings_are_configuration_errors(key, value):
    with pytest.raises(ConfigurationError, match=key):
        create_strategy("openai", {"openai": {"api_key": "k", key: value}})


def test_zero_transport_settings_are_kept(stub_server):
    strategy = create_strategy(
        "openai",
        {"openai": {"api_key": "k", "timeout": 0, "retries": 0}},
        transport=stub_server.transport,
    )

    assert strategy.config.timeout == 0.0
    assert strategy.config.retries == 0
    strategy.close()


def test_invalid_environment_timeout_is_a_configuration_error(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "from-env")
    monkeypatch.setenv("OPENAI_TIMEOUT", "thirty")

    with pytest.raises(ConfigurationError, match="timeout"):
        create_strategy()
