from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.errors import ConfigLoadError
from .wiki.models import RegistryConfig, WikiConfig

logger = logging.getLogger("mwclient.config")

__version__ = "0.1.0"

USER_AGENT = f"mw-rest-client/{__version__} (MediaWiki MCP Server)"


class Settings(BaseSettings):
    config_path: str = Field("config.json", validation_alias="CONFIG")

    log_level: str = Field("INFO", validation_alias="MW_LOG_LEVEL")
    request_timeout: float = Field(30.0, validation_alias="MW_REQUEST_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()


DEFAULT_CONFIG = RegistryConfig(
    default_wiki="en.wikipedia.org",
    wikis={
        "en.wikipedia.org": WikiConfig(
            sitename="Wikipedia",
            server="https://en.wikipedia.org",
            articlepath="/wiki",
            scriptpath="/w",
            token=None,
            private=False,
        ),
        "localhost:8080": WikiConfig(
            sitename="Local MediaWiki Docker",
            server="http://localhost:8080",
            articlepath="/wiki",
            scriptpath="/w",
            token=None,
            private=False,
        ),
    },
)


def load_config_from_file(path: Optional[Union[str, Path]] = None) -> RegistryConfig:
    """
    Load the wiki registry configuration from a JSON file.

    Falls back to a copy of DEFAULT_CONFIG when the file does not exist.
    Raises ConfigLoadError when the file exists but is unreadable or invalid.
    """
    config_path = Path(path if path is not None else settings.config_path)

    if not config_path.exists():
        logger.info("No config file at %s; using default wikis", config_path)
        return DEFAULT_CONFIG.model_copy(deep=True)

    try:
        raw = config_path.read_text(encoding="utf-8")
        config = RegistryConfig.model_validate(json.loads(raw))
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        raise ConfigLoadError(
            f"Failed to load config from {config_path}: {exc}"
        ) from exc

    logger.info(
        "Loaded %d wiki(s) from %s (default: %s)",
        len(config.wikis),
        config_path,
        config.default_wiki,
    )
    return config
