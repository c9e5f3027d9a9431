"""Settings loader with layered configuration sources."""

import json
import os
from pathlib import Path
from typing import Any

from src.commons.settings.models import Settings

ENV_PREFIX = "MEDIA_PIPELINE__"


class SettingsLoader:
    """Builds Settings from JSON files and environment variables.

    Later sources win:
    1. config/appsettings.json
    2. config/appsettings.{environment}.json
    3. MEDIA_PIPELINE__* environment variables
    """

    def __init__(
        self,
        config_dir: Path | None = None,
        environment: str | None = None,
    ) -> None:
        """Initialize the settings loader.

        Args:
            config_dir: Directory holding the appsettings files.
                Defaults to ./config.
            environment: Environment name (dev, staging, prod). Defaults to
                MEDIA_PIPELINE__APP__ENVIRONMENT, then 'dev'.
        """
        self.config_dir = config_dir or Path("config")
        self.environment = environment or os.getenv(
            f"{ENV_PREFIX}APP__ENVIRONMENT", "dev"
        )

    def load(self) -> Settings:
        """Resolve all layers into a Settings instance."""
        layers = [
            self._read_json("appsettings.json"),
            self._read_json(f"appsettings.{self.environment}.json"),
            self._read_env(),
        ]
        merged: dict[str, Any] = {}
        for layer in layers:
            merged = deep_merge(merged, layer)
        return Settings(**merged)

    def _read_json(self, filename: str) -> dict[str, Any]:
        path = self.config_dir / filename
        if not path.exists():
            return {}
        with path.open(encoding="utf-8") as f:
            return dict(json.load(f))

    def _read_env(self) -> dict[str, Any]:
        """Turn MEDIA_PIPELINE__QUEUE__SUBJECT=x into {"queue": {"subject": "x"}}."""
        result: dict[str, Any] = {}
        for key, raw in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue
            *parents, leaf = key[len(ENV_PREFIX) :].lower().split("__")
            node = result
            for part in parents:
                node = node.setdefault(part, {})
            node[leaf] = coerce_env_value(raw)
        return result


def coerce_env_value(value: str) -> Any:
    """Coerce an environment string to bool, int, float or JSON when it parses.

    Args:
        value: Raw environment value.

    Returns:
        The coerced value, or the original string.
    """
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"

    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue

    if value.startswith(("[", "{")):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    return value


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class _SettingsHolder:
    instance: Settings | None = None


def get_settings(
    config_dir: Path | None = None,
    environment: str | None = None,
    *,
    reload: bool = False,
) -> Settings:
    """Get or create the process-wide settings.

    Args:
        config_dir: Optional config directory override.
        environment: Optional environment override.
        reload: Force a fresh load.

    Returns:
        Settings instance.
    """
    if _SettingsHolder.instance is None or reload:
        loader = SettingsLoader(config_dir=config_dir, environment=environment)
        _SettingsHolder.instance = loader.load()
    return _SettingsHolder.instance


def reset_settings() -> None:
    """Drop the cached settings. Used by tests."""
    _SettingsHolder.instance = None
