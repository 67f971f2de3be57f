"""
Theme preference (dark/light) with publish/subscribe notification.

The preference follows the same load/mutate/persist lifecycle as the
fragment store but has no relational invariants. Out-of-band requests
(e.g. a global hotkey) publish on ``toggle_requested``; only the
preference itself performs the toggle. Observers subscribe to
``changed`` and receive the new value; they never write it directly.
"""

import logging
from typing import Callable

from .persistence import THEME_KEY, Persistence

logger = logging.getLogger(__name__)

DARK = "dark"
LIGHT = "light"


class Channel:
    """A named publish/subscribe point."""

    def __init__(self, name: str):
        self.name = name
        self._subscribers: list[Callable] = []

    def subscribe(self, callback: Callable) -> Callable[[], None]:
        """
        Register a callback for published messages.

        Returns:
            A function that removes the subscription (safe to call twice)
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, *args) -> None:
        """Deliver args to every subscriber, in subscription order.

        A subscriber that raises is logged; delivery continues.
        """
        for callback in list(self._subscribers):
            try:
                callback(*args)
            except Exception as e:
                logger.warning("Subscriber %r on %s failed: %s", callback, self.name, e)

    def __len__(self) -> int:
        return len(self._subscribers)


class ThemePreference:
    """Durable dark-mode flag. False (light) when nothing is stored."""

    def __init__(self, persistence: Persistence, key: str = THEME_KEY):
        self._persistence = persistence
        self._key = key
        self.changed = Channel("theme-changed")
        self.toggle_requested = Channel("toggle-dark-mode")
        self.toggle_requested.subscribe(self.toggle)
        self._dark = self._persistence.load(self._key, LIGHT) == DARK

    def get(self) -> bool:
        """True for dark mode."""
        return self._dark

    def set(self, dark: bool) -> bool:
        """Set and persist the preference; notify if it changed.

        Returns:
            The current value
        """
        dark = bool(dark)
        if dark == self._dark:
            return self._dark
        self._dark = dark
        if not self._persistence.save(self._key, DARK if dark else LIGHT):
            logger.warning("Theme preference kept in memory only")
        logger.info("Theme set to %s", DARK if dark else LIGHT)
        self.changed.publish(dark)
        return self._dark

    def toggle(self) -> bool:
        """Flip and persist the preference. Returns the new value."""
        return self.set(not self._dark)

    def request_toggle(self) -> None:
        """Entry point for out-of-band triggers such as a global hotkey."""
        self.toggle_requested.publish()
