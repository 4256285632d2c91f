"""Settings resolution for provider strategies.

Settings are resolved in the following order:

1. An explicit JSON/YAML file passed to :func:`load_settings`.
2. A JSON/YAML file referenced via the ``LLM_STRATEGY_CONFIG`` environment variable.
3. Environment variables for each provider.

The file shape is a mapping of provider names to their settings::

    openai:
      api_key: ${OPENAI_API_KEY}
      chat_url: https://gateway.example.com/v1/chat/completions
      embed_url: https://gateway.example.com/v1/embeddings
      timeout: 30
      retries: 3

``${VAR}`` references are expanded from the environment.  Environment
variable fallbacks:

``OPENAI_API_KEY``
    Bearer token sent on every request.
``OPENAI_CHAT_URL`` / ``OPENAI_EMBED_URL``
    Override the default chat and embedding endpoints.
``OPENAI_TIMEOUT`` / ``OPENAI_RETRIES``
    Transport timeout in seconds and retry attempts.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from string import Template
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .core import ConfigurationError

_LOGGER = logging.getLogger(__name__)

CONFIG_ENV_VAR = "LLM_STRATEGY_CONFIG"

_ENV_KEYS = {
    "api_key": "OPENAI_API_KEY",
    "chat_url": "OPENAI_CHAT_URL",
    "embed_url": "OPENAI_EMBED_URL",
    "timeout": "OPENAI_TIMEOUT",
    "retries": "OPENAI_RETRIES",
}


def load_settings(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, Dict[str, Any]]:
    """Return provider settings keyed by lower-case provider name."""

    env = os.environ if environ is None else environ
    config_path = path or env.get(CONFIG_ENV_VAR)
    if config_path:
        return normalize_settings(read_config_file(Path(config_path), env))
    return normalize_settings(env_settings(env))


def read_config_file(path: Path, environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")
    content = path.read_text(encoding="utf-8")
    if not content.strip():
        return {}
    _LOGGER.debug("loading strategy settings from %s", path)
    # Try JSON first, then fall back to YAML.
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Failed to parse configuration file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration root must be a mapping of provider names to settings.")
    return _expand_env(data, os.environ if environ is None else environ)


def env_settings(environ: Mapping[str, str]) -> Dict[str, Dict[str, Any]]:
    openai: Dict[str, Any] = {}
    for key, variable in _ENV_KEYS.items():
        value = environ.get(variable)
        if value:
            openai[key] = value
    return {"openai": openai} if openai else {}


def normalize_settings(config: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    providers: Dict[str, Dict[str, Any]] = {}
    for name, settings in config.items():
        if settings is None:
            settings = {}
        if not isinstance(settings, Mapping):
            raise ConfigurationError(f"Settings for provider '{name}' must be a mapping.")
        providers[str(name).lower()] = dict(settings)
    return providers


def _expand_env(value: Any, environ: Mapping[str, str]) -> Any:
    if isinstance(value, dict):
        return {key: _expand_env(item, environ) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env(item, environ) for item in value]
    if isinstance(value, str):
        # Unknown variables are left as written.
        return Template(value).safe_substitute(environ)
    return value
