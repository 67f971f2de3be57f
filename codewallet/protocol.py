"""
Protocol definitions for the wallet's durable medium.

The persistence adapter talks to any object with this shape:
- KeyValueStore (SQLite, the default local medium)
- test doubles holding records in a dict
"""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueMedium(Protocol):
    """
    A durable string-to-string record store.

    Implementations raise PersistenceError when the medium itself fails.
    A missing key is not a failure: get() returns None.
    """

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> bool: ...

    def keys(self) -> list[str]: ...

    def close(self) -> None: ...
