"""
CLI interface for the fragment wallet.

Usage:
    codewallet add "Loop" "for i in range(10): pass" -t python
    codewallet search range
    codewallet tags
"""

import json
import os
import select
import sys
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .api import CodeWallet
from .logging_config import configure_quiet_mode, enable_debug_mode
from .search import filter_tags
from .types import Fragment, is_valid_color, local_date


# Configure quiet mode by default
# Set CODEWALLET_VERBOSE=1 to enable debug mode via environment
if os.environ.get("CODEWALLET_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _has_stdin_data() -> bool:
    """Check if stdin has data available without blocking.

    Returns True only when stdin is a pipe with data ready to read.
    """
    if sys.stdin.isatty():
        return False
    try:
        ready, _, _ = select.select([sys.stdin], [], [], 0)
        return bool(ready)
    except (ValueError, OSError):
        return False


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"codewallet {version('codewallet')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_store_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _store_callback(value: Optional[Path]):
    global _store_override
    _store_override = value


def _get_store_override() -> Optional[Path]:
    return _store_override


app = typer.Typer(
    name="codewallet",
    help="A local wallet of tagged code fragments.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


# -----------------------------------------------------------------------------
# Output Formatting
# -----------------------------------------------------------------------------

def _format_fragment_line(fragment: Fragment) -> str:
    """id date title [tags]"""
    tags = f"  [{', '.join(fragment.tags)}]" if fragment.tags else ""
    return f"{fragment.id}  {local_date(fragment.updated_at)}  {fragment.title}{tags}"


def _format_fragment_full(fragment: Fragment) -> str:
    lines = [
        "---",
        f"id: {fragment.id}",
        f"title: {fragment.title}",
    ]
    if fragment.tags:
        lines.append("tags:")
        lines.extend(f"  - {t}" for t in fragment.tags)
    lines.append(f"created: {fragment.created_at}")
    lines.append(f"updated: {fragment.updated_at}")
    lines.append("---")
    lines.append(fragment.body)
    return "\n".join(lines)


def _format_fragments(fragments: list[Fragment], as_json: bool = False) -> str:
    if as_json:
        return json.dumps([f.to_dict() for f in fragments], indent=2, ensure_ascii=False)
    if not fragments:
        return "No fragments found."
    return "\n".join(_format_fragment_line(f) for f in fragments)


def _echo_fragment(fragment: Fragment) -> None:
    if _get_json_output():
        typer.echo(json.dumps(fragment.to_dict(), indent=2, ensure_ascii=False))
    else:
        typer.echo(_format_fragment_full(fragment))


# -----------------------------------------------------------------------------
# Setup
# -----------------------------------------------------------------------------

@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    store: Annotated[Optional[Path], typer.Option(
        "--store", "-s",
        envvar="CODEWALLET_STORE_PATH",
        help="Path to the store directory (default: ~/.codewallet/)",
        callback=_store_callback,
        is_eager=True,
    )] = None,
):
    """A local wallet of tagged code fragments."""


TagOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--tag", "-t",
        help="Tag name (repeatable)",
    )
]


def _get_wallet() -> CodeWallet:
    """Open the wallet, handling errors gracefully."""
    import atexit

    try:
        wallet = CodeWallet(_get_store_override())
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    atexit.register(wallet.close)
    return wallet


def _read_body(body: Optional[str]) -> str:
    if body is not None:
        return body
    if _has_stdin_data():
        return sys.stdin.read()
    typer.echo("Error: Provide BODY as an argument or on stdin", err=True)
    raise typer.Exit(1)


# -----------------------------------------------------------------------------
# Fragment Commands
# -----------------------------------------------------------------------------

@app.command()
def add(
    title: Annotated[str, typer.Argument(help="Fragment title")],
    body: Annotated[Optional[str], typer.Argument(
        help="Fragment text (read from stdin if omitted)")] = None,
    tag: TagOption = None,
):
    """Add a fragment. Unknown tags are created with the default color."""
    wallet = _get_wallet()
    try:
        fragment = wallet.store.add_fragment(title, _read_body(body), tag or [])
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    if _get_json_output():
        _echo_fragment(fragment)
    else:
        typer.echo(fragment.id)


@app.command()
def get(
    id: Annotated[str, typer.Argument(help="Fragment ID")],
):
    """Show one fragment."""
    wallet = _get_wallet()
    fragment = wallet.store.get_fragment(id)
    if fragment is None:
        typer.echo(f"Not found: {id}", err=True)
        raise typer.Exit(1)
    _echo_fragment(fragment)


@app.command()
def edit(
    id: Annotated[str, typer.Argument(help="Fragment ID")],
    title: Annotated[Optional[str], typer.Option("--title", help="New title")] = None,
    body: Annotated[Optional[str], typer.Option("--body", help="New text")] = None,
    tag: Annotated[Optional[list[str]], typer.Option(
        "--tag", "-t",
        help="Replace the tag list (repeatable)",
    )] = None,
    clear_tags: Annotated[bool, typer.Option(
        "--clear-tags",
        help="Remove all tags from the fragment",
    )] = False,
):
    """Change a fragment's title, text or tags."""
    tags = [] if clear_tags else (tag or None)
    if title is None and body is None and tags is None:
        typer.echo("Error: Specify at least one of --title, --body, --tag, --clear-tags", err=True)
        raise typer.Exit(1)
    wallet = _get_wallet()
    try:
        fragment = wallet.store.update_fragment(id, title=title, body=body, tags=tags)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    if fragment is None:
        typer.echo(f"Not found: {id}", err=True)
        raise typer.Exit(1)
    _echo_fragment(fragment)


@app.command("rm")
def remove(
    ids: Annotated[list[str], typer.Argument(help="Fragment IDs to delete")],
):
    """Delete fragments. Unknown IDs are reported but not an error."""
    wallet = _get_wallet()
    for id in ids:
        if wallet.store.delete_fragment(id):
            typer.echo(f"Deleted {id}")
        else:
            typer.echo(f"Not found: {id}", err=True)


@app.command("list")
def list_fragments(
    tag: Annotated[Optional[str], typer.Option(
        "--tag", "-t",
        help="Only fragments with this tag",
    )] = None,
):
    """List fragments in the order they were added."""
    wallet = _get_wallet()
    if tag is not None:
        fragments = wallet.store.fragments_by_tag(tag)
    else:
        fragments = wallet.store.list_fragments()
    typer.echo(_format_fragments(fragments, as_json=_get_json_output()))


@app.command()
def search(
    term: Annotated[Optional[str], typer.Argument(
        help="Text to look for in titles, bodies and tags")] = None,
):
    """Case-insensitive substring search."""
    wallet = _get_wallet()
    typer.echo(_format_fragments(wallet.search(term or ""), as_json=_get_json_output()))


@app.command("import")
def import_(
    files: Annotated[list[Path], typer.Argument(
        help="Text or code files to import", exists=True, dir_okay=False)],
):
    """Import files: title from the file name, tag from the extension."""
    wallet = _get_wallet()
    failed = 0
    imported = []
    for path in files:
        try:
            imported.append(wallet.import_file(path))
        except (ValueError, OSError) as e:
            typer.echo(f"{path.name}: {e}", err=True)
            failed += 1
    typer.echo(_format_fragments(imported, as_json=_get_json_output()))
    if failed:
        raise typer.Exit(1)


# -----------------------------------------------------------------------------
# Tag Commands
# -----------------------------------------------------------------------------

@app.command()
def tags(
    pattern: Annotated[Optional[str], typer.Argument(
        help="Only tags containing this text")] = None,
):
    """List tags with their colors and usage counts."""
    wallet = _get_wallet()
    usage = wallet.store.tag_usage()
    names = filter_tags(wallet.store.tag_names(), pattern or "")
    if _get_json_output():
        typer.echo(json.dumps([
            {"name": n, "color": wallet.store.get_tag_color(n), "fragments": usage.get(n, 0)}
            for n in names
        ], indent=2, ensure_ascii=False))
        return
    if not names:
        typer.echo("No tags found.")
        return
    width = max(len(n) for n in names)
    for n in names:
        count = usage.get(n, 0)
        plural = "" if count == 1 else "s"
        typer.echo(f"{n:<{width}}  {wallet.store.get_tag_color(n)}  {count} fragment{plural}")


@app.command("tag-add")
def tag_add(
    name: Annotated[str, typer.Argument(help="Tag name")],
    color: Annotated[Optional[str], typer.Option(
        "--color", "-c",
        help="Hex color, e.g. #ff8800",
    )] = None,
):
    """Create a tag."""
    if color is not None and not is_valid_color(color):
        typer.echo(f"Error: Invalid color {color!r} (use #rgb or #rrggbb)", err=True)
        raise typer.Exit(1)
    wallet = _get_wallet()
    if not wallet.store.add_tag(name, color):
        if name.strip():
            typer.echo(f"Error: Tag already exists: {name.strip()}", err=True)
        else:
            typer.echo("Error: Tag name must not be empty", err=True)
        raise typer.Exit(1)
    typer.echo(f"Added tag {name.strip()}")


@app.command("tag-rm")
def tag_rm(
    name: Annotated[str, typer.Argument(help="Tag name")],
):
    """Delete a tag and remove it from every fragment."""
    wallet = _get_wallet()
    count = len(wallet.store.fragments_by_tag(name))
    if not wallet.store.remove_tag(name):
        typer.echo(f"Not found: {name}", err=True)
        return
    plural = "" if count == 1 else "s"
    typer.echo(f"Removed tag {name} from {count} fragment{plural}")


@app.command("tag-rename")
def tag_rename(
    old: Annotated[str, typer.Argument(help="Current tag name")],
    new: Annotated[str, typer.Argument(help="New tag name")],
    merge: Annotated[bool, typer.Option(
        "--merge",
        help="Allow renaming onto an existing tag (the two are merged)",
    )] = False,
):
    """Rename a tag everywhere it is used."""
    wallet = _get_wallet()
    new = new.strip()
    if not wallet.store.has_tag(old):
        typer.echo(f"Not found: {old}", err=True)
        raise typer.Exit(1)
    if not new:
        typer.echo("Error: New tag name must not be empty", err=True)
        raise typer.Exit(1)
    if new != old and wallet.store.has_tag(new) and not merge:
        typer.echo(f"Error: Tag already exists: {new}", err=True)
        typer.echo(f"Hint: use --merge to merge {old} into {new}", err=True)
        raise typer.Exit(1)
    if wallet.store.rename_tag(old, new):
        typer.echo(f"Renamed {old} to {new}")


@app.command("tag-color")
def tag_color(
    name: Annotated[str, typer.Argument(help="Tag name")],
    color: Annotated[str, typer.Argument(help="Hex color, e.g. #ff8800")],
):
    """Set a tag's display color."""
    if not is_valid_color(color):
        typer.echo(f"Error: Invalid color {color!r} (use #rgb or #rrggbb)", err=True)
        raise typer.Exit(1)
    wallet = _get_wallet()
    wallet.store.set_tag_color(name, color)
    typer.echo(f"{name} {color}")


# -----------------------------------------------------------------------------
# Preferences
# -----------------------------------------------------------------------------

@app.command()
def theme(
    toggle: Annotated[bool, typer.Option("--toggle", help="Switch between dark and light")] = False,
    dark: Annotated[bool, typer.Option("--dark", help="Use the dark theme")] = False,
    light: Annotated[bool, typer.Option("--light", help="Use the light theme")] = False,
):
    """Show or change the dark/light preference."""
    if sum((toggle, dark, light)) > 1:
        typer.echo("Error: Use only one of --toggle, --dark, --light", err=True)
        raise typer.Exit(1)
    wallet = _get_wallet()
    if toggle:
        wallet.theme.toggle()
    elif dark or light:
        wallet.theme.set(dark)
    typer.echo("dark" if wallet.theme.get() else "light")


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="codewallet CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
