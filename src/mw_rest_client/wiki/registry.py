"""
Wiki Registry

Holds the configured wikis and the currently selected ("active") one.

Design choices
--------------
- The registry is the only owner of the active-wiki selection. The request
  layer reads it through `current()` on every call and never mutates it.
- Thread-safe access using a re-entrant lock.
- Copy-on-read for collections (callers cannot mutate internal state).
- WikiConfig objects are frozen, so handing them out directly is safe.
"""

from __future__ import annotations

import logging
from pathlib import Path
from threading import RLock
from typing import Dict, List, Optional, Union

from ..config import load_config_from_file
from ..core.errors import WikiNotFoundError, WikiRegistryError
from .models import PublicWikiConfig, RegistryConfig, WikiConfig

logger = logging.getLogger("mwclient.registry")


class WikiRegistry:
    """
    In-memory registry mapping wiki keys (e.g. "en.wikipedia.org") to
    WikiConfig records, with exactly one wiki selected at any time.
    """

    def __init__(self, config: RegistryConfig) -> None:
        """
        Parameters
        ----------
        config : RegistryConfig
            Validated registry configuration. Its `default_wiki` becomes the
            initial selection.
        """
        self._lock = RLock()
        self._wikis: Dict[str, WikiConfig] = dict(config.wikis)
        self._current_key = config.default_wiki

    @classmethod
    def from_file(cls, path: Optional[Union[str, Path]] = None) -> "WikiRegistry":
        """Build a registry from `config.json` (or the built-in defaults)."""
        return cls(load_config_from_file(path))

    # ------------------------------------------------------------------
    # Active selection
    # ------------------------------------------------------------------

    @property
    def current_key(self) -> str:
        with self._lock:
            return self._current_key

    def current(self) -> WikiConfig:
        """Return the configuration of the currently selected wiki."""
        with self._lock:
            return self._wikis[self._current_key]

    def select(self, key: str) -> WikiConfig:
        """
        Make `key` the active wiki.

        Raises
        ------
        WikiNotFoundError
            If `key` is not registered.
        """
        with self._lock:
            if key not in self._wikis:
                raise WikiNotFoundError(key)
            self._current_key = key
            config = self._wikis[key]

        logger.info("Active wiki is now %s (%s)", key, config.server)
        return config

    # ------------------------------------------------------------------
    # Registry contents
    # ------------------------------------------------------------------

    def get(self, key: str) -> WikiConfig:
        with self._lock:
            try:
                return self._wikis[key]
            except KeyError:
                raise WikiNotFoundError(key) from None

    def add(self, key: str, config: WikiConfig) -> None:
        """Register a wiki, replacing any existing entry under the same key."""
        if not key:
            raise WikiRegistryError("Wiki key must be non-empty.")

        with self._lock:
            replaced = key in self._wikis
            self._wikis[key] = config

        logger.debug("%s wiki %s", "Replaced" if replaced else "Added", key)

    def remove(self, key: str) -> WikiConfig:
        """
        Unregister a wiki.

        Raises
        ------
        WikiNotFoundError
            If `key` is not registered.

        WikiRegistryError
            If `key` is the active wiki.
        """
        with self._lock:
            if key not in self._wikis:
                raise WikiNotFoundError(key)
            if key == self._current_key:
                raise WikiRegistryError(
                    f"Cannot remove the active wiki '{key}'; select another wiki first."
                )
            return self._wikis.pop(key)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._wikis)

    def public_configs(self) -> Dict[str, PublicWikiConfig]:
        """Return every wiki's configuration with credentials stripped."""
        with self._lock:
            return {key: cfg.to_public() for key, cfg in self._wikis.items()}

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._wikis

    def __len__(self) -> int:
        with self._lock:
            return len(self._wikis)
