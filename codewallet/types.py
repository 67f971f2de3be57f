"""
Data types for the fragment wallet.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional


# Color given to a tag when it is first registered without an explicit one
DEFAULT_TAG_COLOR = "#6c757d"

_COLOR_RE = re.compile(r'^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$')


def utc_now() -> str:
    """Current UTC timestamp in canonical format: YYYY-MM-DDTHH:MM:SS.ffffff.

    All timestamps in codewallet are UTC, stored without timezone suffix.
    The format is fixed-width, so string order is chronological order.
    """
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")


def parse_utc_timestamp(ts: str) -> datetime:
    """Parse a stored timestamp string to a timezone-aware UTC datetime.

    Handles the canonical format and the 'Z'-suffixed form written by
    older wallets.
    """
    ts = ts.replace("Z", "+00:00")
    dt = datetime.fromisoformat(ts)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def canonical_timestamp(ts: str) -> str:
    """Rewrite any parseable timestamp into the canonical stored form."""
    return parse_utc_timestamp(ts).astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")


def local_date(utc_iso: str) -> str:
    """Convert a UTC ISO timestamp to a local-timezone date string (YYYY-MM-DD).

    Returns empty string for empty input.
    """
    if not utc_iso:
        return ""
    try:
        dt = parse_utc_timestamp(utc_iso)
        return dt.astimezone().strftime("%Y-%m-%d")
    except (ValueError, OverflowError):
        return utc_iso[:10]


def is_valid_color(color: str) -> bool:
    """Check for a CSS hex color (#rgb or #rrggbb)."""
    return isinstance(color, str) and bool(_COLOR_RE.match(color))


def normalize_tag_names(names: Optional[Iterable[str]]) -> tuple[str, ...]:
    """Trim tag names, drop empty ones and suppress duplicates (first wins)."""
    if not names:
        return ()
    seen: dict[str, None] = {}
    for name in names:
        if not isinstance(name, str):
            continue
        name = name.strip()
        if name and name not in seen:
            seen[name] = None
    return tuple(seen)


@dataclass(frozen=True)
class Fragment:
    """
    A titled, tagged unit of stored text (usually a code snippet).

    This is a read-only snapshot. To modify a fragment, use
    FragmentStore.update_fragment(), which returns a new Fragment.

    Attributes:
        id: Opaque identifier assigned at creation
        title: Display title
        body: Text content
        tags: Tag names, in attach order, without duplicates
        created_at: Canonical UTC timestamp of creation (never changes)
        updated_at: Canonical UTC timestamp of the last mutation
    """
    id: str
    title: str
    body: str
    tags: tuple[str, ...] = ()
    created_at: str = ""
    updated_at: str = ""

    def has_tag(self, name: str) -> bool:
        return name in self.tags

    def to_dict(self) -> dict:
        """Serialize to a JSON-ready dict."""
        return {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "tags": list(self.tags),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Fragment":
        """Deserialize from a JSON dict.

        Also reads records written by the original desktop app, which used
        ``code`` for the body and camelCase timestamps.

        Raises:
            ValueError: If required fields are missing or mistyped
        """
        if not isinstance(d, dict):
            raise ValueError(f"Fragment record must be an object, got {type(d).__name__}")
        id = d.get("id")
        title = d.get("title")
        body = d.get("body", d.get("code"))
        if not isinstance(id, str) or not id:
            raise ValueError(f"Fragment record has no id: {d!r:.80}")
        if not isinstance(title, str) or not isinstance(body, str):
            raise ValueError(f"Fragment {id} has no title/body")
        created = d.get("created_at") or d.get("createdAt") or ""
        updated = d.get("updated_at") or d.get("updatedAt") or created
        if not isinstance(created, str) or not isinstance(updated, str):
            raise ValueError(f"Fragment {id} timestamps must be ISO strings")
        try:
            if created:
                created = canonical_timestamp(created)
            if updated:
                updated = canonical_timestamp(updated)
        except OverflowError as e:
            raise ValueError(f"Fragment {id} timestamp out of range: {e}") from e
        tags = d.get("tags") or []
        if not isinstance(tags, list):
            raise ValueError(f"Fragment {id} tags must be a list")
        return cls(
            id=id,
            title=title,
            body=body,
            tags=normalize_tag_names(tags),
            created_at=created,
            updated_at=max(created, updated),
        )

    def __str__(self) -> str:
        tags = f" [{', '.join(self.tags)}]" if self.tags else ""
        return f"{self.id}: {self.title}{tags}"


@dataclass(frozen=True)
class Tag:
    """A named, colored label. The name is the tag's identity."""
    name: str
    color: str = DEFAULT_TAG_COLOR


@dataclass
class FragmentDraft:
    """Arguments for add_fragment(), as built by an import collaborator."""
    title: str
    body: str
    tags: list[str] = field(default_factory=list)
