"""
CLI interface for flashvocab.

Usage:
    flashvocab list --category Basic
    flashvocab add "Cat" "Con mèo" --type noun
    flashvocab review 3 --correct --time 1200
    flashvocab export words.csv
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import typer
from typing_extensions import Annotated

from .config import load_or_create_config
from .errors import log_exception
from .logging_config import configure_quiet_mode, enable_debug_mode
from .paths import DATA_DIR_ENV, get_data_dir
from .service import VocabularyService
from .transfer import FORMATS
from .types import ListOptions
from .vocabulary_api import SEARCH_BOTH, PageRequest, SearchRequest

# Set FLASHVOCAB_VERBOSE=1 to enable debug mode via environment
if os.environ.get("FLASHVOCAB_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


# Global state for CLI options
_json_output = False
_data_dir: Optional[Path] = None


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _data_dir_callback(value: Optional[Path]):
    global _data_dir
    _data_dir = value


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        typer.echo(f"flashvocab {version('flashvocab')}")
        raise typer.Exit()


app = typer.Typer(
    name="flashvocab",
    help="Vocabulary flashcards: local word store with optional search index.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode=None,
)


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
        help="Output the raw result envelope as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    data_dir: Annotated[Optional[Path], typer.Option(
        "--data-dir",
        envvar=DATA_DIR_ENV,
        help="Directory for config, logs and the store",
        callback=_data_dir_callback,
        is_eager=True,
    )] = None,
):
    """Vocabulary flashcards: local word store with optional search index."""


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def _run(
    op: Callable[[VocabularyService], Awaitable[dict[str, Any]]],
    *,
    probe_index: bool = False,
) -> dict[str, Any]:
    """Start a service, run one operation, close the service."""
    data_dir = _data_dir or get_data_dir()

    async def runner() -> dict[str, Any]:
        service = VocabularyService(load_or_create_config(data_dir))
        started = await service.start(probe_index=probe_index)
        if not started["success"]:
            await service.close()
            return started
        try:
            return await op(service)
        finally:
            await service.close()

    return asyncio.run(runner())


def _emit(result: dict[str, Any], render: Callable[[Any], str]) -> None:
    """Print a result envelope, or its error and exit non-zero."""
    if _json_output:
        typer.echo(json.dumps(result, ensure_ascii=False, indent=2))
        if not result["success"]:
            raise typer.Exit(1)
        return
    if not result["success"]:
        typer.echo(f"Error: {result['error']}", err=True)
        raise typer.Exit(1)
    text = render(result["data"])
    if text:
        typer.echo(text)


def _format_word(word: dict[str, Any]) -> str:
    line = f"{word.get('id')!s:>5}  {word.get('english')}  -  {word.get('vietnamese')}"
    extras = [v for v in (word.get("type"), word.get("category") or word.get("note")) if v]
    if extras:
        line += f"  [{', '.join(extras)}]"
    return line


def _format_words(words: list[dict[str, Any]]) -> str:
    if not words:
        return "No vocabulary found."
    return "\n".join(_format_word(w) for w in words)


def _format_mapping(data: dict[str, Any]) -> str:
    width = max((len(k) for k in data), default=0)
    return "\n".join(f"{k:<{width}}  {v}" for k, v in data.items())


def _infer_format(path: Path, fmt: Optional[str]) -> str:
    if fmt:
        return fmt
    suffix = path.suffix.lstrip(".").lower()
    if suffix in FORMATS:
        return suffix
    typer.echo(f"Cannot infer format from {path.name}; use --format", err=True)
    raise typer.Exit(1)


CategoryOption = Annotated[
    Optional[str],
    typer.Option("--category", "-c", help="Only words in this category")
]

FormatOption = Annotated[
    Optional[str],
    typer.Option("--format", "-f", help="json or csv (default: from file extension)")
]


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command()
def init():
    """Create the store (seeding starter data) and show where it lives."""
    async def op(service: VocabularyService):
        stats = await service.get_stats()
        stats["data"]["path"] = str(service.manager.path)
        return stats

    _emit(_run(op), _format_mapping)


@app.command("list")
def list_words(
    category: CategoryOption = None,
    offset: Annotated[int, typer.Option(
        "--offset", help="Skip this many words (a multiple of --limit with --index)"
    )] = 0,
    limit: Annotated[Optional[int], typer.Option("--limit", "-n", help="Maximum words")] = None,
    index: Annotated[bool, typer.Option(
        "--index", help="Prefer the search index, falling back to the local store"
    )] = False,
):
    """List vocabulary."""
    if index:
        # The index pages by whole pages of --limit words
        size = limit or 10
        if offset % size:
            typer.echo(f"--offset must be a multiple of the page size ({size}) with --index", err=True)
            raise typer.Exit(1)
        request = PageRequest(page=offset // size, size=size, category=category)
        _emit(_run(lambda s: s.load_vocabulary(request), probe_index=True), _format_words)
        return

    options = ListOptions(category=category, offset=offset, limit=limit)
    _emit(_run(lambda s: s.get_all_vocabulary(options)), _format_words)


@app.command()
def add(
    english: Annotated[str, typer.Argument(help="English word or phrase")],
    vietnamese: Annotated[str, typer.Argument(help="Vietnamese meaning")],
    word_type: Annotated[Optional[str], typer.Option("--type", "-t", help="Word class")] = None,
    phonetic: Annotated[Optional[str], typer.Option("--phonetic", help="Pronunciation")] = None,
    example: Annotated[Optional[str], typer.Option("--example", "-e", help="Example sentence")] = None,
    category: Annotated[Optional[str], typer.Option("--category", "-c", help="Category name")] = None,
):
    """Add a word to the local store."""
    result = _run(lambda s: s.add_vocabulary(
        english, vietnamese,
        type=word_type, phonetic=phonetic, example=example, category=category,
    ))
    _emit(result, lambda data: f"Added: {data['id']}")


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Text to look for")],
    index: Annotated[bool, typer.Option("--index", help="Search the remote index")] = False,
    search_type: Annotated[str, typer.Option(
        "--in", help="Index search field: both, english or vietnamese"
    )] = SEARCH_BOTH,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum index results")] = 20,
):
    """Search words by substring."""
    if index:
        request = SearchRequest(limit=limit, search_type=search_type)
        _emit(_run(lambda s: s.search_index(query, request), probe_index=True), _format_words)
        return
    _emit(_run(lambda s: s.search_vocabulary(query)), _format_words)


@app.command()
def review(
    word_id: Annotated[int, typer.Argument(help="Word id")],
    correct: Annotated[bool, typer.Option("--correct/--wrong", help="Was the answer right?")] = True,
    response_time: Annotated[float, typer.Option("--time", help="Response time in ms")] = 0.0,
    session_type: Annotated[str, typer.Option("--type", help="Session type")] = "flashcard",
):
    """Record one learning session against a word."""
    result = _run(lambda s: s.record_session(word_id, correct, response_time, session_type))
    _emit(result, lambda data: f"Recorded session {data['id']}")


@app.command()
def stats(
    word_id: Annotated[Optional[int], typer.Argument(help="Word id (default: overall progress)")] = None,
):
    """Show learning progress, overall or for one word."""
    if word_id is None:
        _emit(_run(lambda s: s.get_progress()), _format_mapping)
    else:
        _emit(_run(lambda s: s.get_word_statistics(word_id)), _format_mapping)


@app.command("import")
def import_cmd(
    file: Annotated[Path, typer.Argument(help="File to import", exists=True, dir_okay=False)],
    fmt: FormatOption = None,
):
    """Import words from a json or csv file."""
    fmt = _infer_format(file, fmt)
    result = _run(lambda s: s.import_vocabulary(file, fmt))
    _emit(result, lambda data: f"Imported {data['imported']} of {data['total']} records")


@app.command()
def export(
    file: Annotated[Path, typer.Argument(help="Destination file")],
    fmt: FormatOption = None,
    category: CategoryOption = None,
):
    """Export words to a json or csv file."""
    fmt = _infer_format(file, fmt)
    result = _run(lambda s: s.export_vocabulary(file, fmt, ListOptions(category=category)))
    _emit(result, lambda data: f"Exported to {data}")


@app.command()
def backup(
    dest: Annotated[Path, typer.Argument(help="Backup file to write")],
):
    """Copy the store file to a backup location."""
    _emit(_run(lambda s: s.backup(dest)), lambda data: f"Backed up to {data}")


@app.command()
def restore(
    src: Annotated[Path, typer.Argument(help="Backup file to restore", exists=True, dir_okay=False)],
):
    """Replace the store with a backup."""
    _emit(_run(lambda s: s.restore(src)), lambda data: f"Restored from {data}")


@app.command("index-status")
def index_status():
    """Probe the search index and show its statistics."""
    async def op(service: VocabularyService):
        if not service.index_ready():
            return await service.health_check()
        return await service.get_index_statistics()

    def render(data: dict[str, Any]) -> str:
        if "categories" not in data:
            return "Search index: not available"
        lines = [f"Search index: {data['total']} documents"]
        lines += [f"  {c['name']}: {c['count']}" for c in data["categories"]]
        return "\n".join(lines)

    _emit(_run(op, probe_index=True), render)


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
        log_path = log_exception(e, "flashvocab CLI", data_dir=_data_dir)
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Full traceback in {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
