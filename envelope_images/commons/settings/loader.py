"""Settings loader with hierarchical configuration support."""

import json
import os
from pathlib import Path
from typing import Any

from envelope_images.commons.settings.models import Settings


class SettingsLoader:
    """Loads and merges configuration from multiple sources.

    Configuration precedence (highest to lowest):
    1. Environment variables
    2. Environment-specific config (appsettings.{env}.json)
    3. Base config (appsettings.json)
    """

    ENV_PREFIX = "ENVELOPE_IMAGES__"

    def __init__(
        self,
        config_dir: Path | None = None,
        environment: str | None = None,
    ) -> None:
        """Initialize the settings loader.

        Args:
            config_dir: Directory containing configuration files.
                       Defaults to ENVELOPE_IMAGES_CONFIG_DIR or
                       'config' in the current working directory.
            environment: Environment name (dev, staging, prod).
                        Defaults to ENVELOPE_IMAGES__APP__ENVIRONMENT or 'dev'.
        """
        self.config_dir = config_dir or Path(
            os.getenv("ENVELOPE_IMAGES_CONFIG_DIR", "config")
        )
        self.environment = environment or os.getenv(
            "ENVELOPE_IMAGES__APP__ENVIRONMENT", "dev"
        )

    def load(self) -> Settings:
        """Load settings with proper precedence."""
        config = self._load_json("appsettings.json")

        env_config = self._load_json(f"appsettings.{self.environment}.json")
        config = self._deep_merge(config, env_config)

        env_overrides = self._load_env_vars()
        config = self._deep_merge(config, env_overrides)

        return Settings(**config)

    def _load_env_vars(self) -> dict[str, Any]:
        """Load environment variables with the ENVELOPE_IMAGES__ prefix.

        Parses env vars like ENVELOPE_IMAGES__UPLOADS__MAX_FILE_SIZE_BYTES into
        nested dicts: {"uploads": {"max_file_size_bytes": 1048576}}
        """
        result: dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(self.ENV_PREFIX):
                continue

            key_path = key[len(self.ENV_PREFIX) :].lower().split("__")

            current = result
            for part in key_path[:-1]:
                current = current.setdefault(part, {})

            current[key_path[-1]] = self._coerce_value(value)

        return result

    def _coerce_value(self, value: str) -> Any:
        """Decode JSON lists and objects; leave scalars for pydantic to coerce.

        Scalars stay strings so that digit-only secrets and bucket names are
        not turned into numbers before validation.
        """
        # Lists such as ALLOWED_CONTENT_TYPES or CORS_ORIGINS
        if value.startswith(("[", "{")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _load_json(self, filename: str) -> dict[str, Any]:
        """Load JSON config file, or an empty dict if it doesn't exist."""
        path = self.config_dir / filename
        if path.exists():
            with path.open(encoding="utf-8") as f:
                return dict(json.load(f))
        return {}

    def _deep_merge(
        self,
        base: dict[str, Any],
        override: dict[str, Any],
    ) -> dict[str, Any]:
        """Deep merge two dictionaries, values from `override` winning."""
        result = base.copy()
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result


# Global settings instance
_settings: Settings | None = None


def get_settings(
    config_dir: Path | None = None,
    environment: str | None = None,
    *,
    reload: bool = False,
) -> Settings:
    """Get or create the global settings instance.

    Args:
        config_dir: Optional config directory override.
        environment: Optional environment override.
        reload: Force reload settings from files.

    Returns:
        Settings instance.
    """
    global _settings  # noqa: PLW0603
    if _settings is None or reload:
        loader = SettingsLoader(config_dir=config_dir, environment=environment)
        _settings = loader.load()
    return _settings


def reset_settings() -> None:
    """Reset the global settings instance. Useful for testing."""
    global _settings  # noqa: PLW0603
    _settings = None
