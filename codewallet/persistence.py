"""
Persistence adapter: JSON records on a key/value medium.

Each logical collection is serialized independently under its own key.
Loading never raises: a missing or damaged record yields the caller's
default and a log line. Saving never raises either; it reports success
as a bool so callers can log degraded (non-durable) operation.
"""

import json
import logging
from typing import Any

from .errors import PersistenceError
from .protocol import KeyValueMedium

logger = logging.getLogger(__name__)

# Record keys, shared with the original desktop app's storage layout
FRAGMENTS_KEY = "code-wallet-fragments"
TAGS_KEY = "code-wallet-tags"
TAG_COLORS_KEY = "code-wallet-tag-colors"
THEME_KEY = "code-wallet-theme"


class Persistence:
    """Serialize/deserialize named records. No business logic."""

    def __init__(self, medium: KeyValueMedium):
        self._medium = medium

    def load(self, key: str, default: Any) -> Any:
        """
        Load the JSON value stored under key.

        Args:
            key: Record key
            default: Returned when the record is absent or unusable. Its
                type is also the expected top-level type of the record
                (list or dict), so a record of the wrong shape is rejected.
                With a str default, a record that is not JSON is returned
                as plain text.

        Returns:
            The decoded value, or default
        """
        try:
            raw = self._medium.get(key)
        except PersistenceError as e:
            logger.error("Failed to read %s: %s", key, e)
            return default
        if raw is None:
            logger.debug("No stored record for %s", key)
            return default

        try:
            value = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            if isinstance(default, str) and isinstance(raw, str):
                # Plain-text record, as the desktop app stored strings
                return raw.strip()
            logger.error("Ignoring corrupt record %s: %s", key, e)
            return default

        if default is not None and not isinstance(value, type(default)):
            logger.error(
                "Ignoring record %s: expected %s, found %s",
                key, type(default).__name__, type(value).__name__,
            )
            return default
        return value

    def save(self, key: str, value: Any) -> bool:
        """
        Store value as JSON under key.

        Returns:
            True if the write reached the medium
        """
        try:
            raw = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.error("Cannot serialize %s: %s", key, e)
            return False
        try:
            self._medium.set(key, raw)
        except PersistenceError as e:
            logger.error("Failed to write %s, continuing without durability: %s", key, e)
            return False
        return True
