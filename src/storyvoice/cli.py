"""Typer CLI definition for storyvoice."""

import asyncio
import logging
import shutil
import sys
import uuid
from datetime import datetime, timedelta
from pathlib import Path

import typer

from .cache.manager import GenerationCache
from .config import load_config
from .core import clone_voice_sample, narrate_story, open_caches
from .errors import (
    CacheError,
    StoryVoiceError,
    TTSAPIError,
    TTSAuthError,
)
from .narrators import NarratorStore
from .stories import StoryStore

app = typer.Typer(help="Narrate storybooks with cloned voices, cached on disk")
narrators_app = typer.Typer(help="Manage registered narrators")
cache_app = typer.Typer(help="Inspect and maintain the generation caches")
stories_app = typer.Typer(help="Browse saved stories and their narration")
app.add_typer(narrators_app, name="narrators")
app.add_typer(cache_app, name="cache")
app.add_typer(stories_app, name="stories")

_debug = False


@app.callback()
def main(
    debug: bool = typer.Option(
        False, "--debug", help="Show verbose error messages and cache activity"
    ),
) -> None:
    """Narrate storybooks with cloned voices."""
    global _debug
    _debug = debug
    # Configure logging for debug mode
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )


def _fail(label: str, e: Exception, message: str | None = None) -> typer.Exit:
    """Report an error the way every command does and return the exit."""
    if _debug:
        typer.echo(f"Debug - {label}: {e!r}", err=True)
    else:
        typer.echo(f"Error: {message or e}", err=True)
    return typer.Exit(1)


def read_pages(texts: list[str] | None, file: Path | None) -> list[str]:
    """Collect page texts from arguments, a file (one page per line) or stdin.

    Raises:
        ValueError: If no page text is provided
    """
    if texts:
        return list(texts)

    if file is not None:
        content = file.read_text(encoding="utf-8")
    elif not sys.stdin.isatty():
        content = sys.stdin.read()
    else:
        content = ""

    pages = [line.strip() for line in content.splitlines() if line.strip()]
    if not pages:
        raise ValueError("No page text provided")
    return pages


@app.command()
def narrate(
    texts: list[str] | None = typer.Argument(None, help="Page texts, in order"),
    story_id: str = typer.Option(..., "--story-id", "-s", help="Story identifier"),
    narrator_id: str = typer.Option(
        ..., "--narrator-id", "-n", help="Registered narrator ID"
    ),
    file: Path | None = typer.Option(
        None, "-f", "--file", help="Read pages from file, one per line"
    ),
    title: str | None = typer.Option(
        None, "--title", "-t", help="Story title saved in the story library"
    ),
) -> None:
    """Narrate every page of a story and print one audio URL per page."""
    try:
        pages = read_pages(texts, file)
    except OSError as e:
        raise _fail("File error", e, f"Cannot read pages from {file}") from None
    except ValueError as e:
        raise _fail("Input error", e) from None

    try:
        result = asyncio.run(narrate_story(story_id, narrator_id, pages, title=title))
    except KeyError as e:
        raise _fail("Unknown narrator", e, f"Narrator '{narrator_id}' not found") from None
    except TTSAuthError as e:
        raise _fail("Authentication error", e) from None
    except CacheError as e:
        raise _fail("Cache error", e) from None
    except Exception as e:
        raise _fail("Unexpected error", e, "An unexpected error occurred") from None

    for index, url in enumerate(result.narration_urls):
        typer.echo(f"{index}: {url if url else 'FAILED'}")

    if result.failed_pages:
        typer.echo(
            f"{len(result.failed_pages)} of {len(pages)} pages failed", err=True
        )
        raise typer.Exit(1)


@app.command()
def clone(
    sample: Path = typer.Argument(..., help="Voice sample audio file"),
    name: str = typer.Option("Narrator", "--name", help="Name for the cloned voice"),
) -> None:
    """Clone a voice sample (or reuse the clone of an identical sample)."""
    try:
        voice_id = asyncio.run(clone_voice_sample(sample, name))
    except FileNotFoundError as e:
        raise _fail("File error", e, f"Voice sample not found: {sample}") from None
    except TTSAuthError as e:
        raise _fail("Authentication error", e) from None
    except TTSAPIError as e:
        raise _fail("API error", e) from None
    except StoryVoiceError as e:
        raise _fail("Clone error", e) from None
    except Exception as e:
        raise _fail("Unexpected error", e, "An unexpected error occurred") from None

    typer.echo(voice_id)


@narrators_app.command("list")
def narrators_list() -> None:
    """List registered narrators."""
    try:
        narrators = NarratorStore(load_config().storage.narrators_path).list_all()
    except StoryVoiceError as e:
        raise _fail("Narrator store error", e) from None

    if not narrators:
        typer.echo("No narrators registered")
        return
    for narrator in narrators:
        voice = narrator.voice_url or "default voice"
        typer.echo(f"{narrator.id}  {narrator.name}  ({voice})")


@narrators_app.command("add")
def narrators_add(
    name: str = typer.Argument(..., help="Narrator name"),
    voice: Path | None = typer.Option(
        None, "--voice", help="Voice sample to copy into the uploads directory"
    ),
) -> None:
    """Register a narrator, optionally with a voice sample."""
    config = load_config()
    voice_url = None
    if voice is not None:
        if not voice.is_file():
            typer.echo(f"Error: Voice sample not found: {voice}", err=True)
            raise typer.Exit(1)
        config.storage.uploads_dir.mkdir(parents=True, exist_ok=True)
        filename = f"voiceFile-{uuid.uuid4().hex}{voice.suffix}"
        shutil.copyfile(voice, config.storage.uploads_dir / filename)
        voice_url = f"/uploads/{filename}"

    try:
        narrator = NarratorStore(config.storage.narrators_path).create(
            name, voice_url=voice_url
        )
    except StoryVoiceError as e:
        raise _fail("Narrator store error", e) from None
    typer.echo(narrator.id)


@narrators_app.command("remove")
def narrators_remove(narrator_id: str = typer.Argument(..., help="Narrator ID")) -> None:
    """Remove a registered narrator."""
    config = load_config()
    try:
        store = NarratorStore(config.storage.narrators_path)
        narrator = store.get(narrator_id)
        removed = narrator is not None and store.delete(narrator_id)
    except StoryVoiceError as e:
        raise _fail("Narrator store error", e) from None
    if not removed:
        typer.echo(f"Error: Narrator '{narrator_id}' not found", err=True)
        raise typer.Exit(1)

    # The narrator's uploaded sample goes with it
    if narrator.voice_url:
        sample = config.storage.data_dir / narrator.voice_url.lstrip("/")
        sample.unlink(missing_ok=True)
    typer.echo(f"Removed {narrator.name}")


def _select_caches(which: str) -> list[tuple[str, GenerationCache]]:
    if which not in ("voices", "narrations", "all"):
        typer.echo("Error: cache must be 'voices', 'narrations' or 'all'", err=True)
        raise typer.Exit(1)
    try:
        voices, narrations = open_caches(load_config())
    except CacheError as e:
        raise _fail("Cache error", e) from None
    selected = [("voices", voices), ("narrations", narrations)]
    return [(label, c) for label, c in selected if which in (label, "all")]


@cache_app.command("show")
def cache_show(
    which: str = typer.Argument("all", help="voices, narrations or all"),
) -> None:
    """Print cached entries."""
    for label, cache in _select_caches(which):
        typer.echo(f"=== {label} ({len(cache)} entries, {cache.path}) ===")
        if cache.load_error:
            typer.echo(f"! corrupt file discarded: {cache.load_error}")
        for entry in cache.entries():
            created = datetime.fromtimestamp(entry.created_at / 1000)
            typer.echo(f"{entry.key}  {entry.value}  {created:%Y-%m-%d %H:%M}")


@cache_app.command("prune")
def cache_prune(
    days: int = typer.Option(..., "--days", min=0, help="Remove entries older than this"),
    which: str = typer.Argument("all", help="voices, narrations or all"),
) -> None:
    """Remove entries older than the given number of days."""
    for label, cache in _select_caches(which):
        try:
            removed = cache.prune(timedelta(days=days))
        except CacheError as e:
            raise _fail("Cache error", e) from None
        typer.echo(f"{label}: removed {removed} entries")


@cache_app.command("forget")
def cache_forget(
    key: str = typer.Argument(..., help="Cache key to remove"),
    which: str = typer.Option("all", "--cache", help="voices, narrations or all"),
) -> None:
    """Remove a single key so the next request regenerates it."""
    removed = False
    for label, cache in _select_caches(which):
        try:
            if cache.invalidate(key):
                typer.echo(f"{label}: removed {key}")
                removed = True
        except CacheError as e:
            raise _fail("Cache error", e) from None
    if not removed:
        typer.echo(f"Error: Key not found: {key}", err=True)
        raise typer.Exit(1)


def _open_stories() -> StoryStore:
    try:
        return StoryStore(load_config().storage.stories_path)
    except StoryVoiceError as e:
        raise _fail("Story store error", e) from None


@stories_app.command("list")
def stories_list() -> None:
    """List saved stories, most recent first."""
    try:
        stories = _open_stories().list_all()
    except StoryVoiceError as e:
        raise _fail("Story store error", e) from None

    if not stories:
        typer.echo("No stories saved")
        return
    for story in stories:
        narrated = sum(1 for url in story.narration_urls if url)
        typer.echo(
            f"{story.id}  {story.title}  ({narrated}/{len(story.content)} pages narrated)"
        )


@stories_app.command("show")
def stories_show(story_id: str = typer.Argument(..., help="Story ID")) -> None:
    """Print a story's pages with their narration URLs."""
    try:
        story = _open_stories().get(story_id)
    except StoryVoiceError as e:
        raise _fail("Story store error", e) from None
    if story is None:
        typer.echo(f"Error: Story '{story_id}' not found", err=True)
        raise typer.Exit(1)

    typer.echo(f"=== {story.title} ({story.id}) ===")
    if story.narrator_id:
        typer.echo(f"Narrator: {story.narrator_id}")
    for index, text in enumerate(story.content):
        url = story.narration_urls[index] if index < len(story.narration_urls) else None
        typer.echo(f"{index}: {url or 'NOT NARRATED'}  {text}")


@stories_app.command("remove")
def stories_remove(story_id: str = typer.Argument(..., help="Story ID")) -> None:
    """Remove a saved story. Cached narration audio is kept."""
    try:
        removed = _open_stories().delete(story_id)
    except StoryVoiceError as e:
        raise _fail("Story store error", e) from None
    if not removed:
        typer.echo(f"Error: Story '{story_id}' not found", err=True)
        raise typer.Exit(1)
    typer.echo(f"Removed {story_id}")
