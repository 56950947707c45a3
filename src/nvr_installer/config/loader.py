# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nvr_installer/config/loader.py

import logging
import os
import yaml
from pathlib import Path
from typing import Mapping, Optional
from .models import ProvisionConfig

log = logging.getLogger("nvr_installer")


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Recursively merge *override* into *base* (mutates base).
    Only overwrites when the override value is non-empty.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            _deep_merge(base[key], value)
        elif isinstance(value, dict):
            base[key] = _deep_merge({}, value)
        else:
            if value not in (None, ""):
                base[key] = value
    return base


def _find_secrets_file(config_path: Optional[Path], env: Mapping[str, str]) -> Path | None:
    """
    Locate secrets.yaml using this priority:

    1. NVR_SECRETS_FILE environment variable (explicit override)
    2. secrets.yaml in the same directory as the config file
    """
    explicit = env.get("NVR_SECRETS_FILE")
    if explicit:
        p = Path(explicit)
        if p.is_file():
            return p
        log.warning("NVR_SECRETS_FILE=%s does not exist, skipping", explicit)
        return None

    if config_path is not None:
        p = config_path.parent / "secrets.yaml"
        if p.is_file():
            return p

    return None


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    data = yaml.safe_load(expanded) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def _env_overrides(env: Mapping[str, str]) -> dict:
    return {
        "env": {"nvr_url": env.get("NVR_URL")},
        "registry": {
            "username": env.get("NVR_REGISTRY_USERNAME"),
            "token": env.get("NVR_REGISTRY_TOKEN"),
        },
    }


def load_config(
    path: str | Path | None = None,
    overrides: Optional[dict] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ProvisionConfig:
    """
    Build the provisioning config. Later layers win:

      1. model defaults
      2. YAML config file (``${ENV_VAR}`` placeholders expanded)
      3. secrets.yaml (``NVR_SECRETS_FILE`` or next to the config file)
      4. environment: ``NVR_URL``, ``NVR_REGISTRY_USERNAME``, ``NVR_REGISTRY_TOKEN``
      5. CLI overrides

    Empty values never overwrite a lower layer.
    """
    env = os.environ if env is None else env
    data: dict = {}

    config_path = Path(path).expanduser() if path else None
    if config_path is not None:
        data = _load_yaml(config_path)

    secrets_path = _find_secrets_file(config_path, env)
    if secrets_path:
        log.debug("Merging secrets from %s", secrets_path)
        _deep_merge(data, _load_yaml(secrets_path))

    _deep_merge(data, _env_overrides(env))
    if overrides:
        _deep_merge(data, overrides)

    return ProvisionConfig.model_validate(data)
