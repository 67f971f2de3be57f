"""
Import text and code files as fragments.

The title is the file name without its extension; the single tag is the
language the extension stands for. The resulting fragment is added with
an ordinary add_fragment() call.
"""

import logging
import mimetypes
from pathlib import Path

from .store import FragmentStore
from .types import Fragment, FragmentDraft

logger = logging.getLogger(__name__)

# Extensions accepted even when mimetypes doesn't report text/*
TEXT_EXTENSIONS = frozenset({
    "js", "jsx", "ts", "tsx", "py", "java", "cpp", "c", "h", "css",
    "html", "xml", "json", "md", "txt", "sql", "sh", "bat",
})

LANGUAGE_TAGS = {
    "js": "JavaScript",
    "jsx": "React",
    "ts": "TypeScript",
    "tsx": "TypeScript React",
    "py": "Python",
    "java": "Java",
    "cpp": "C++",
    "c": "C",
    "h": "C Header",
    "css": "CSS",
    "html": "HTML",
    "xml": "XML",
    "json": "JSON",
    "md": "Markdown",
    "sql": "SQL",
    "sh": "Shell",
    "bat": "Batch",
}


def _extension(path: Path) -> str:
    return path.suffix[1:].lower()


def language_tag(filename: str) -> str:
    """Tag name for a file: the language name, or the upper-cased extension."""
    ext = _extension(Path(filename))
    if not ext:
        return ""
    return LANGUAGE_TAGS.get(ext, ext.upper())


def is_text_file(path: Path) -> bool:
    """Accept known code/text extensions and anything guessed as text/*."""
    if _extension(path) in TEXT_EXTENSIONS:
        return True
    mime, _ = mimetypes.guess_type(path.name)
    return bool(mime and mime.startswith("text/"))


def draft_from_file(path: Path) -> FragmentDraft:
    """
    Read a file into add_fragment() arguments.

    Raises:
        ValueError: If the file is not a text file, is not UTF-8, or is empty
        OSError: If the file can't be read
    """
    path = Path(path)
    if not is_text_file(path):
        raise ValueError(f"Not a text or code file: {path.name}")
    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ValueError(f"File is not valid UTF-8: {path.name}") from e
    if not content.strip():
        raise ValueError(f"File is empty: {path.name}")
    tag = language_tag(path.name)
    return FragmentDraft(
        title=path.stem or path.name,
        body=content,
        tags=[tag] if tag else [],
    )


def import_file(store: FragmentStore, path: Path) -> Fragment:
    """Import one file into the store. Returns the created fragment."""
    draft = draft_from_file(path)
    fragment = store.add_fragment(draft.title, draft.body, draft.tags)
    logger.info("Imported %s as fragment %s", path, fragment.id)
    return fragment
