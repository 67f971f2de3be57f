"""
Fragment and tag store.

The store owns three collections and keeps them mutually consistent:

- fragments: ordered list of Fragment snapshots
- tag registry: ordered list of unique tag names
- tag colors: tag name -> display color

Every tag name attached to a fragment is registered (auto-registration
on add/update). Renaming or removing a tag cascades through all three
collections. Cascades build the new collections first and then commit
them together, so a failure part-way never leaves a half-applied change.

After each mutation the touched collection(s) are flushed through the
persistence adapter. Flushes are best-effort; the in-memory state is
authoritative.
"""

import logging
import uuid
from dataclasses import replace
from typing import Callable, Iterable, Optional

from .persistence import FRAGMENTS_KEY, TAG_COLORS_KEY, TAGS_KEY, Persistence
from .types import DEFAULT_TAG_COLOR, Fragment, Tag, normalize_tag_names, utc_now

logger = logging.getLogger(__name__)


def _require_text(value: str, field: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Fragment {field} must not be empty")


class FragmentStore:
    """
    In-memory fragment/tag store synchronized to a persistence adapter.

    State is loaded from the adapter on construction. All operations are
    synchronous and run to completion; the store assumes a single writer.
    """

    def __init__(
        self,
        persistence: Persistence,
        *,
        default_color: str = DEFAULT_TAG_COLOR,
        clock: Callable[[], str] = utc_now,
    ):
        """
        Args:
            persistence: Adapter used to load and flush the collections
            default_color: Color for tags registered without one
            clock: Returns the current canonical timestamp
        """
        self._persistence = persistence
        self._default_color = default_color
        self._clock = clock
        self._fragments: list[Fragment] = []
        self._tags: list[str] = []
        self._colors: dict[str, str] = {}
        self.load()

    @property
    def default_color(self) -> str:
        return self._default_color

    # -------------------------------------------------------------------------
    # Loading and flushing
    # -------------------------------------------------------------------------

    def load(self) -> None:
        """
        (Re)load all three collections from the persistence adapter.

        Each record loads independently. Malformed fragment entries are
        skipped. Tag names used by fragments but missing from the registry
        are re-registered, and the repaired registry is flushed.
        """
        fragments: list[Fragment] = []
        seen_ids: set[str] = set()
        for entry in self._persistence.load(FRAGMENTS_KEY, []):
            try:
                fragment = Fragment.from_dict(entry)
            except ValueError as e:
                logger.warning("Skipping malformed fragment record: %s", e)
                continue
            if fragment.id in seen_ids:
                logger.warning("Skipping duplicate fragment id %s", fragment.id)
                continue
            seen_ids.add(fragment.id)
            fragments.append(fragment)

        tags = list(normalize_tag_names(self._persistence.load(TAGS_KEY, [])))
        colors = {
            k: v for k, v in self._persistence.load(TAG_COLORS_KEY, {}).items()
            if isinstance(k, str) and isinstance(v, str)
        }

        self._fragments = fragments
        self._tags = tags
        self._colors = colors

        used = normalize_tag_names(name for f in fragments for name in f.tags)
        new_tags, new_colors, added = self._register(used)
        if added:
            logger.info("Re-registered %d tag(s) missing from the registry: %s",
                        len(added), ", ".join(added))
            self._tags, self._colors = new_tags, new_colors
            self._flush(tags=True, colors=True)

        logger.debug("Loaded %d fragments, %d tags", len(self._fragments), len(self._tags))

    def _flush(self, *, fragments: bool = False, tags: bool = False, colors: bool = False) -> bool:
        """Write the named collections. Returns True if every write succeeded."""
        ok = True
        if fragments:
            ok &= self._persistence.save(FRAGMENTS_KEY, [f.to_dict() for f in self._fragments])
        if tags:
            ok &= self._persistence.save(TAGS_KEY, list(self._tags))
        if colors:
            ok &= self._persistence.save(TAG_COLORS_KEY, dict(self._colors))
        if not ok:
            logger.warning("Changes kept in memory only; durable write failed")
        return ok

    def _register(self, names: Iterable[str]) -> tuple[list[str], dict[str, str], list[str]]:
        """Compute registry/colors with any unknown names added.

        Returns (tags, colors, added) without touching the store.
        """
        known = set(self._tags)
        added = [n for n in names if n not in known]
        if not added:
            return self._tags, self._colors, []
        colors = dict(self._colors)
        for name in added:
            colors.setdefault(name, self._default_color)
        return self._tags + added, colors, added

    def _index_of(self, id: str) -> Optional[int]:
        for i, fragment in enumerate(self._fragments):
            if fragment.id == id:
                return i
        return None

    def _touch(self, fragment: Fragment, **changes) -> Fragment:
        """Apply changes and bump updated_at (never earlier than created_at)."""
        now = max(self._clock(), fragment.created_at)
        return replace(fragment, updated_at=now, **changes)

    # -------------------------------------------------------------------------
    # Fragment operations
    # -------------------------------------------------------------------------

    def add_fragment(self, title: str, body: str, tags: Optional[Iterable[str]] = None) -> Fragment:
        """
        Create and store a new fragment.

        Side effect: every tag name not yet registered is registered with
        the default color.

        Args:
            title: Display title (must not be blank)
            body: Text content (must not be blank)
            tags: Tag names; trimmed, blanks dropped, duplicates suppressed

        Returns:
            The created Fragment

        Raises:
            ValueError: If title or body is blank (nothing is stored)
        """
        _require_text(title, "title")
        _require_text(body, "body")
        names = normalize_tag_names(tags)
        now = self._clock()
        fragment = Fragment(
            id=str(uuid.uuid4()),
            title=title,
            body=body,
            tags=names,
            created_at=now,
            updated_at=now,
        )
        new_tags, new_colors, added = self._register(names)

        self._fragments = self._fragments + [fragment]
        self._tags, self._colors = new_tags, new_colors

        logger.info("Added fragment %s %r", fragment.id, title)
        self._flush(fragments=True, tags=bool(added), colors=bool(added))
        return fragment

    def update_fragment(
        self,
        id: str,
        *,
        title: Optional[str] = None,
        body: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> Optional[Fragment]:
        """
        Merge new field values into an existing fragment.

        Fields passed as None are left untouched. updated_at is always
        recomputed. New tag names are auto-registered as in add_fragment().

        Returns:
            The updated Fragment, or None if no fragment has this id
        """
        index = self._index_of(id)
        if index is None:
            logger.debug("update_fragment: %s not found", id)
            return None

        changes: dict = {}
        if title is not None:
            _require_text(title, "title")
            changes["title"] = title
        if body is not None:
            _require_text(body, "body")
            changes["body"] = body
        added: list[str] = []
        new_tags, new_colors = self._tags, self._colors
        if tags is not None:
            names = normalize_tag_names(tags)
            changes["tags"] = names
            new_tags, new_colors, added = self._register(names)

        updated = self._touch(self._fragments[index], **changes)
        fragments = list(self._fragments)
        fragments[index] = updated

        self._fragments = fragments
        self._tags, self._colors = new_tags, new_colors

        logger.info("Updated fragment %s", id)
        self._flush(fragments=True, tags=bool(added), colors=bool(added))
        return updated

    def delete_fragment(self, id: str) -> bool:
        """
        Delete a fragment. Deleting an unknown id is a no-op.

        Returns:
            True if a fragment was removed
        """
        fragments = [f for f in self._fragments if f.id != id]
        if len(fragments) == len(self._fragments):
            return False
        self._fragments = fragments
        logger.info("Deleted fragment %s", id)
        self._flush(fragments=True)
        return True

    def get_fragment(self, id: str) -> Optional[Fragment]:
        """Get a fragment by id, or None."""
        index = self._index_of(id)
        return self._fragments[index] if index is not None else None

    def list_fragments(self) -> list[Fragment]:
        """All fragments in insertion order (a fresh list each call)."""
        return list(self._fragments)

    def fragments_by_tag(self, name: str) -> list[Fragment]:
        """Fragments carrying the tag, in collection order."""
        return [f for f in self._fragments if f.has_tag(name)]

    def count(self) -> int:
        return len(self._fragments)

    # -------------------------------------------------------------------------
    # Tag operations
    # -------------------------------------------------------------------------

    def add_tag(self, name: str, color: Optional[str] = None) -> bool:
        """
        Register a tag.

        Returns:
            False (and changes nothing) if the trimmed name is empty or
            already registered; True otherwise
        """
        if not isinstance(name, str):
            return False
        name = name.strip()
        if not name or name in self._tags:
            return False
        colors = dict(self._colors)
        colors[name] = color or self._default_color

        self._tags = self._tags + [name]
        self._colors = colors

        logger.info("Added tag %r", name)
        self._flush(tags=True, colors=True)
        return True

    def remove_tag(self, name: str) -> bool:
        """
        Remove a tag from the registry, the color map and every fragment.

        Only fragments that actually carried the tag get a new updated_at.
        A name that is neither registered nor colored is a no-op.

        Returns:
            True if anything changed
        """
        if name not in self._tags and name not in self._colors:
            return False

        changed = 0
        fragments = []
        for fragment in self._fragments:
            if name in fragment.tags:
                fragment = self._touch(
                    fragment, tags=tuple(t for t in fragment.tags if t != name))
                changed += 1
            fragments.append(fragment)
        tags = [t for t in self._tags if t != name]
        colors = {k: v for k, v in self._colors.items() if k != name}

        self._fragments, self._tags, self._colors = fragments, tags, colors

        logger.info("Removed tag %r from %d fragment(s)", name, changed)
        self._flush(fragments=True, tags=True, colors=True)
        return True

    def rename_tag(self, old_name: str, new_name: str) -> bool:
        """
        Rename a tag everywhere it appears.

        The registry entry, the color entry (value preserved) and every
        fragment's tag list are rewritten together. If new_name is already
        registered, the two tags merge into one entry under new_name: the
        migrated color wins and fragments carrying both keep a single
        occurrence. Use has_tag() to check for a collision first.

        Returns:
            False (no-op) if new_name is blank, unchanged, or old_name is
            not registered; True otherwise
        """
        if not isinstance(new_name, str):
            return False
        new_name = new_name.strip()
        if not new_name or new_name == old_name or old_name not in self._tags:
            return False
        merging = new_name in self._tags

        tags = []
        for t in self._tags:
            if t == old_name:
                if not merging:
                    tags.append(new_name)
            else:
                tags.append(t)

        colors = dict(self._colors)
        if old_name in colors:
            colors[new_name] = colors.pop(old_name)

        changed = 0
        fragments = []
        for fragment in self._fragments:
            if old_name in fragment.tags:
                renamed = normalize_tag_names(
                    new_name if t == old_name else t for t in fragment.tags)
                fragment = self._touch(fragment, tags=renamed)
                changed += 1
            fragments.append(fragment)

        self._fragments, self._tags, self._colors = fragments, tags, colors

        if merging:
            logger.info("Merged tag %r into %r (%d fragment(s))", old_name, new_name, changed)
        else:
            logger.info("Renamed tag %r to %r (%d fragment(s))", old_name, new_name, changed)
        self._flush(fragments=True, tags=True, colors=True)
        return True

    def set_tag_color(self, name: str, color: str) -> None:
        """Set the color for a name, whether or not it is registered."""
        colors = dict(self._colors)
        colors[name] = color
        self._colors = colors
        logger.info("Set color of tag %r to %s", name, color)
        self._flush(colors=True)

    def get_tag_color(self, name: str) -> str:
        """Stored color for a tag, or the default color."""
        return self._colors.get(name, self._default_color)

    def has_tag(self, name: str) -> bool:
        return name in self._tags

    def tag_names(self) -> list[str]:
        """Registered tag names in registration order."""
        return list(self._tags)

    def list_tags(self) -> list[Tag]:
        """Registered tags with their colors, in registration order."""
        return [Tag(name, self.get_tag_color(name)) for name in self._tags]

    def tag_usage(self) -> dict[str, int]:
        """Number of fragments carrying each registered tag."""
        usage = dict.fromkeys(self._tags, 0)
        for fragment in self._fragments:
            for name in fragment.tags:
                if name in usage:
                    usage[name] += 1
        return usage
