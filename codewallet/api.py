"""
Core API for the fragment wallet.

CodeWallet wires configuration, the durable medium, the fragment store
and the theme preference together, and owns their lifecycle. It is the
whole surface a UI (or the CLI) uses:

- wallet.store: fragment and tag operations
- wallet.search(): substring search over the current fragments
- wallet.theme: dark/light preference
"""

import logging
from pathlib import Path
from typing import Optional

from .config import StoreConfig, get_default_store_path, load_or_create_config
from .importer import import_file
from .kv_store import KeyValueStore
from .persistence import Persistence
from .preferences import ThemePreference
from .protocol import KeyValueMedium
from .search import search as search_fragments
from .store import FragmentStore
from .types import Fragment

logger = logging.getLogger(__name__)


class CodeWallet:
    """
    A local collection of tagged text fragments.

    Usage::

        with CodeWallet() as wallet:             # ~/.codewallet
            wallet.store.add_fragment("Loop", "for i in range(10): pass", ["python"])
            wallet.search("range")
    """

    def __init__(
        self,
        store_path: Optional[str | Path] = None,
        *,
        config: Optional[StoreConfig] = None,
        medium: Optional[KeyValueMedium] = None,
    ):
        """
        Args:
            store_path: Store directory (default: CODEWALLET_STORE_PATH or ~/.codewallet)
            config: Use this config instead of reading/creating codewallet.toml
            medium: Use this durable medium instead of the SQLite database
        """
        self._store_path = get_default_store_path(Path(store_path) if store_path else None)
        if config is None:
            config = load_or_create_config(self._store_path)
        self._config = config

        self._ops_handler = None
        if config.ops_log:
            from .logging_config import configure_ops_log
            self._ops_handler = configure_ops_log(self._store_path)

        if medium is None:
            medium = KeyValueStore(config.database_path)
        self._medium = medium
        self._persistence = Persistence(medium)
        self.store = FragmentStore(self._persistence, default_color=config.default_tag_color)
        self.theme = ThemePreference(self._persistence)
        logger.debug("Opened wallet at %s", self._store_path)

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def store_path(self) -> Path:
        return self._store_path

    def search(self, term: str) -> list[Fragment]:
        """Fragments whose title, body or tags contain term (case-insensitive)."""
        return search_fragments(self.store.list_fragments(), term)

    def import_file(self, path: str | Path) -> Fragment:
        """Add a text/code file as a fragment tagged with its language."""
        return import_file(self.store, Path(path))

    def close(self) -> None:
        """Close the medium and detach the operations log."""
        if self._medium is not None:
            self._medium.close()
            self._medium = None
        if self._ops_handler is not None:
            from .logging_config import remove_ops_log
            remove_ops_log(self._ops_handler)
            self._ops_handler = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
