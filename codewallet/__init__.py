"""
Code Wallet

A local store of short text fragments (code snippets, commands, notes)
labelled with free-form colored tags, with substring search.

Quick Start:
    from codewallet import CodeWallet

    with CodeWallet() as wallet:    # uses ~/.codewallet
        wallet.store.add_fragment("Copy", "cp a b", ["shell"])
        results = wallet.search("cp")

CLI Usage:
    codewallet add "Loop" "for i in range(10): pass" -t python
    codewallet search range
    codewallet tag-rename python py

Environment Variables:
    CODEWALLET_STORE_PATH  - Override default store location
    CODEWALLET_VERBOSE     - Set to 1 for debug logging to stderr
"""

from .api import CodeWallet
from .preferences import Channel, ThemePreference
from .search import filter_tags, search
from .store import FragmentStore
from .types import DEFAULT_TAG_COLOR, Fragment, Tag

__version__ = "0.1.0"
__all__ = [
    "CodeWallet",
    "Channel",
    "DEFAULT_TAG_COLOR",
    "Fragment",
    "FragmentStore",
    "Tag",
    "ThemePreference",
    "filter_tags",
    "search",
]
