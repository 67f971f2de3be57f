"""
Substring search over fragment snapshots.

Pure functions: they take a snapshot and a query and return a derived
list, preserving the input order. Nothing here is ranked or indexed.
"""

from typing import Iterable

from .types import Fragment


def matches(fragment: Fragment, term: str) -> bool:
    """True if the casefolded term occurs in the title, the body, or any tag name."""
    return (
        term in fragment.title.casefold()
        or term in fragment.body.casefold()
        or any(term in tag.casefold() for tag in fragment.tags)
    )


def search(fragments: Iterable[Fragment], term: str) -> list[Fragment]:
    """
    Case-insensitive substring search.

    A blank term returns every fragment unfiltered.
    """
    fragments = list(fragments)
    if not term or not term.strip():
        return fragments
    needle = term.casefold()
    return [f for f in fragments if matches(f, needle)]


def filter_tags(names: Iterable[str], term: str) -> list[str]:
    """Tag names containing term (case-insensitive); blank term returns all."""
    names = list(names)
    if not term or not term.strip():
        return names
    needle = term.strip().casefold()
    return [n for n in names if needle in n.casefold()]
