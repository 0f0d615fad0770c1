from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .settings import Settings

ENV_PREFIX = "BTCE_GATEWAY_"
_RESERVED_ENV = {"CONFIG", "LOG_LEVEL", "LOG_DIR"}


def _nested_assign(target: dict[str, Any], keys: list[str], value: Any) -> None:
    node = target
    for key in keys[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[keys[-1]] = value


def _coerce_env_value(raw: str) -> Any:
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw


def apply_env_overrides(data: dict[str, Any], environ: dict[str, str] | None = None) -> dict[str, Any]:
    """Overlay ``BTCE_GATEWAY_A__B=value`` variables onto ``data["a"]["b"]``.

    Values are parsed as YAML scalars so numbers and booleans keep their type.
    """
    environ = os.environ if environ is None else environ
    merged: dict[str, Any] = dict(data)

    for name, raw_value in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        remainder = name[len(ENV_PREFIX) :]
        if remainder in _RESERVED_ENV:
            continue

        keys = [part.lower() for part in remainder.split("__") if part]
        if keys:
            _nested_assign(merged, keys, _coerce_env_value(raw_value))

    return merged


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}

    loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config root must be a mapping, got: {type(loaded)!r}")
    return loaded


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from YAML, then apply environment overrides.

    A missing file is not an error; defaults plus environment apply.
    """
    if config_path is None:
        config_path = os.environ.get(f"{ENV_PREFIX}CONFIG", "config.yml")

    data = apply_env_overrides(_read_yaml(Path(config_path)))

    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc
