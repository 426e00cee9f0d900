"""
Typer CLI for frflow.

Commands:
    frflow generate "au café" --level A2   - Generate and archive a lesson
    frflow import-lesson lesson.json       - Archive a lesson from a JSON file
    frflow lessons                         - List archived lessons
    frflow collect <lesson-id> --section   - Add lesson content to the notebook
    frflow lookup <word> [--group ...]     - Explain a word, optionally keep it
    frflow items [--kind vocab]            - List review items
    frflow due                             - Show the due queue
    frflow review                          - Grade due items interactively
    frflow delete <item-id>                - Remove a review item
    frflow groups                          - Review item count per lesson group
    frflow settings show|set               - Show or change user preferences

The session backend is picked from configuration: with FRFLOW_CLOUD_USER_ID
and FRFLOW_CLOUD_ID_TOKEN set, the remote store is used; otherwise the
device store.
"""

from __future__ import annotations

import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from loguru import logger
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from config import get_settings
from frflow.archive import ContentArchive
from frflow.core.exceptions import FrflowError
from frflow.core.identity import canonical_surface
from frflow.core.models import (
    CEFRLevel,
    GrammarEntry,
    ItemKind,
    Lesson,
    ReviewItem,
    TextLine,
    UserSettings,
    VocabEntry,
    make_group_id,
)
from frflow.core.modes import identity_from_settings
from frflow.delivery.scheduler import ReviewQuality
from frflow.generation import LessonGenerator, build_lesson
from frflow.storage import StorageAdapter

app = typer.Typer(
    help="frflow: French lessons, a deduplicated notebook and spaced review",
    no_args_is_help=True,
)
settings_app = typer.Typer(help="Show or change user preferences", no_args_is_help=True)
app.add_typer(settings_app, name="settings")

console = Console()

T = TypeVar("T")

SECTIONS = ("vocab", "grammar", "dialogue", "essay")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr"),
):
    """French lesson generator and review notebook."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else get_settings().log_level)


# ========================================
# Session plumbing
# ========================================


def _run(work: Callable[[ContentArchive, StorageAdapter], Awaitable[T]]) -> T:
    """
    Open a storage session, run `work` against it and close it again.

    FrflowError is reported as an error panel and exits with code 1.
    """
    settings = get_settings()

    async def runner() -> T:
        storage = StorageAdapter.for_session(settings, identity_from_settings(settings))
        try:
            return await work(ContentArchive(storage), storage)
        finally:
            await storage.close()

    try:
        return asyncio.run(runner())
    except FrflowError as e:
        _error(str(e))
        raise typer.Exit(1)


def _error(message: str) -> None:
    console.print(Panel(f"[bold red]{message}[/bold red]", border_style="red", box=box.HEAVY))


def _parse_kind(kind: Optional[str]) -> Optional[ItemKind]:
    if kind is None:
        return None
    try:
        return ItemKind.parse(kind)
    except ValueError:
        _error(f"Unknown item kind: {kind} (expected vocab, grammar or text)")
        raise typer.Exit(1)


def _format_ms(timestamp: Optional[int]) -> str:
    if timestamp is None:
        return "-"
    return datetime.fromtimestamp(timestamp / 1000).strftime("%Y-%m-%d %H:%M")


def describe_item(item: ReviewItem) -> tuple[str, str]:
    """Title and subtitle shown for a review item."""
    payload = item.payload
    if isinstance(payload, VocabEntry):
        return canonical_surface(payload.word), payload.meaning
    if isinstance(payload, GrammarEntry):
        return payload.point, payload.explanation
    if isinstance(payload, TextLine):
        return canonical_surface(payload.text), payload.translation
    raise TypeError(f"Unhandled review payload: {type(payload).__name__}")


def _items_table(title: str, items: list[ReviewItem]) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAVY)
    table.add_column("ID", style="dim")
    table.add_column("Kind", style="cyan")
    table.add_column("Item", style="bold")
    table.add_column("Meaning")
    table.add_column("Level", justify="right")
    table.add_column("Next review")

    for item in items:
        head, sub = describe_item(item)
        table.add_row(
            item.id,
            item.kind.value,
            head,
            sub,
            str(item.strength_level),
            _format_ms(item.next_review_at),
        )
    return table


def _print_lesson_summary(lesson: Lesson) -> None:
    console.print(
        Panel(
            f"[bold]{canonical_surface(lesson.title)}[/bold]\n\n"
            f"Group: [cyan]{lesson.group_id}[/cyan]\n"
            f"Vocabulary: {len(lesson.vocabulary)}  Grammar: {len(lesson.grammar)}  "
            f"Dialogue: {len(lesson.texts.dialogue)}  Essay: {len(lesson.texts.essay.content)}",
            title=f"Lesson {lesson.id}",
            border_style="green",
            box=box.ROUNDED,
        )
    )


# ========================================
# Lessons
# ========================================


@app.command("generate")
def generate(
    topic: str = typer.Argument(..., help="Lesson topic, e.g. 'au café'"),
    level: Optional[CEFRLevel] = typer.Option(None, "--level", "-l", help="CEFR level"),
):
    """Generate a lesson with the configured provider and archive it."""
    lesson_level = level or get_settings().default_level

    async def work(archive: ContentArchive, storage: StorageAdapter):
        user_settings = await storage.load_settings()
        async with LessonGenerator(get_settings(), user_settings) as generator:
            with console.status(f"Generating {lesson_level.value} lesson on '{topic}'..."):
                lesson = await generator.generate(topic, lesson_level)
        return lesson, await archive.archive_lesson(lesson)

    lesson, outcome = _run(work)
    _print_lesson_summary(lesson)
    console.print(
        f"[green]✓[/green] Archived: {outcome.added} vocabulary items added, "
        f"{outcome.skipped} already in the notebook"
    )


@app.command("import-lesson")
def import_lesson(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Lesson JSON file"),
    level: Optional[CEFRLevel] = typer.Option(None, "--level", "-l", help="Level if the file has none"),
):
    """Archive a lesson stored as JSON (a stored document or a raw provider response)."""
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        _error(f"Cannot read {path}: {e}")
        raise typer.Exit(1)
    if not isinstance(raw, dict):
        _error(f"{path} does not contain a JSON object")
        raise typer.Exit(1)

    try:
        if raw.get("id") and raw.get("groupId"):
            lesson = Lesson.from_document(raw)
        else:
            lesson_level = CEFRLevel(raw.get("level") or level or get_settings().default_level)
            lesson = build_lesson(raw, raw.get("topic") or path.stem, lesson_level)
    except (ValidationError, ValueError) as e:
        _error(f"Invalid lesson in {path}: {e}")
        raise typer.Exit(1)

    outcome = _run(lambda archive, _: archive.archive_lesson(lesson))
    _print_lesson_summary(lesson)
    if not outcome.lesson_stored:
        console.print("[yellow]Lesson was already archived, nothing changed[/yellow]")
        return
    console.print(
        f"[green]✓[/green] Archived: {outcome.added} vocabulary items added, "
        f"{outcome.skipped} already in the notebook"
    )


@app.command("lessons")
def lessons(
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Only this lesson group"),
):
    """List archived lessons, newest first."""
    found = _run(lambda archive, _: archive.list_lessons(group))
    if not found:
        console.print("[dim]No lessons archived yet[/dim]")
        return

    table = Table(title="Lessons", box=box.SIMPLE_HEAVY)
    table.add_column("ID", style="dim")
    table.add_column("Group", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Created")
    for lesson in found:
        table.add_row(
            lesson.id,
            lesson.group_id,
            canonical_surface(lesson.title),
            _format_ms(lesson.created_at),
        )
    console.print(table)


@app.command("collect")
def collect(
    lesson_id: str = typer.Argument(..., help="Archived lesson id"),
    section: str = typer.Option("all", "--section", "-s", help="vocab, grammar, dialogue, essay or all"),
):
    """Add a lesson's content to the review notebook."""
    sections = SECTIONS if section == "all" else (section,)
    if any(s not in SECTIONS for s in sections):
        _error(f"Unknown section: {section}")
        raise typer.Exit(1)

    async def work(archive: ContentArchive, _: StorageAdapter):
        lesson = await archive.get_lesson(lesson_id)
        if lesson is None:
            return None
        results = {}
        for name in sections:
            if name == "vocab":
                results[name] = await archive.add_vocabulary(lesson.group_id, lesson.id, lesson.vocabulary)
            elif name == "grammar":
                results[name] = await archive.add_grammar(lesson.group_id, lesson.id, lesson.grammar)
            elif name == "dialogue":
                results[name] = await archive.add_text(lesson.group_id, lesson.id, lesson.texts.dialogue)
            else:
                results[name] = await archive.add_text(lesson.group_id, lesson.id, lesson.texts.essay.content)
        return results

    results = _run(work)
    if results is None:
        _error(f"Lesson not found: {lesson_id}")
        raise typer.Exit(1)

    for name, outcome in results.items():
        console.print(f"[green]✓[/green] {name}: {outcome.added} added, {outcome.skipped} skipped")


@app.command("lookup")
def lookup(
    word: str = typer.Argument(..., help="French word or phrase"),
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Add the entry to this group"),
    topic: Optional[str] = typer.Option(None, "--topic", help="Group topic (with --level)"),
    level: Optional[CEFRLevel] = typer.Option(None, "--level", "-l", help="Group level (with --topic)"),
):
    """Explain a word with the configured provider, optionally keeping it."""
    if group is None and topic is not None:
        group = make_group_id(topic, level or get_settings().default_level)

    async def work(archive: ContentArchive, storage: StorageAdapter):
        user_settings = await storage.load_settings()
        async with LessonGenerator(get_settings(), user_settings) as generator:
            entry = await generator.lookup_word(word)
        outcome = await archive.add_vocabulary(group, None, [entry]) if group else None
        return entry, outcome

    entry, outcome = _run(work)
    gender = f" ({entry.gender})" if entry.gender and entry.gender != "none" else ""
    console.print(
        Panel(
            f"[bold]{canonical_surface(entry.word)}[/bold]{gender}\n"
            f"{entry.meaning}\n\n"
            f"[dim]{canonical_surface(entry.example.text)}[/dim]\n"
            f"[dim]{entry.example.translation}[/dim]",
            border_style="cyan",
            box=box.ROUNDED,
        )
    )
    if outcome is not None:
        if outcome.added:
            console.print(f"[green]✓[/green] Added to {group}")
        else:
            console.print(f"[yellow]Already in {group}[/yellow]")


# ========================================
# Notebook
# ========================================


@app.command("items")
def items(
    kind: Optional[str] = typer.Option(None, "--kind", "-k", help="vocab, grammar or text"),
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Only this lesson group"),
):
    """List review items, newest first."""
    item_kind = _parse_kind(kind)
    found = _run(lambda archive, _: archive.list_items(item_kind, group))
    if not found:
        console.print("[dim]Notebook is empty[/dim]")
        return
    console.print(_items_table(f"Review items ({len(found)})", found))


@app.command("due")
def due(
    kind: Optional[str] = typer.Option(None, "--kind", "-k", help="vocab, grammar or text"),
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Only this lesson group"),
):
    """Show items whose review time has passed, most overdue first."""
    item_kind = _parse_kind(kind)
    queue = _run(lambda archive, _: archive.due_queue(item_kind, group))
    if not queue:
        console.print("[green]Nothing due, come back later[/green]")
        return
    console.print(_items_table(f"Due now ({len(queue)})", queue))


@app.command("review")
def review(
    kind: Optional[str] = typer.Option(None, "--kind", "-k", help="vocab, grammar or text"),
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Only this lesson group"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum items this session"),
):
    """Grade due items one by one (hard / good / easy)."""
    item_kind = _parse_kind(kind)
    queue = _run(lambda archive, _: archive.due_queue(item_kind, group))[:limit]
    if not queue:
        console.print("[green]Nothing due, come back later[/green]")
        return

    # Prompts block, so each grade is recorded in its own short session
    reviewed = 0
    for position, item in enumerate(queue, start=1):
        head, sub = describe_item(item)
        console.print(
            Panel(
                f"[bold]{head}[/bold]",
                title=f"{position}/{len(queue)}  {item.kind.value}",
                border_style="cyan",
                box=box.ROUNDED,
            )
        )
        Prompt.ask("[dim]Press enter to reveal[/dim]", default="", show_default=False)
        console.print(f"  {sub}")

        answer = Prompt.ask(
            "How well did you recall it?",
            choices=["hard", "good", "easy", "skip", "quit"],
            default="good",
        )
        if answer == "quit":
            break
        if answer == "skip":
            continue

        quality = ReviewQuality.parse(answer)
        updated = _run(lambda archive, _: archive.record_review(item, quality))
        reviewed += 1
        console.print(
            f"  [green]✓[/green] level {item.strength_level} → {updated.strength_level}, "
            f"next review {_format_ms(updated.next_review_at)}"
        )

    console.print(f"\n[bold green]Session complete:[/bold green] {reviewed} of {len(queue)} reviewed")


@app.command("delete")
def delete(item_id: str = typer.Argument(..., help="Review item id")):
    """Remove a review item (a missing id is not an error)."""
    _run(lambda archive, _: archive.delete_item(item_id))
    console.print(f"[green]✓[/green] Deleted {item_id}")


@app.command("groups")
def groups():
    """Review item count per lesson group."""
    summaries = _run(lambda archive, _: archive.list_groups())
    if not summaries:
        console.print("[dim]No review items yet[/dim]")
        return

    table = Table(title="Lesson groups", box=box.SIMPLE_HEAVY)
    table.add_column("Group", style="cyan")
    table.add_column("Items", justify="right")
    for summary in summaries:
        table.add_row(summary.group_id, str(summary.count))
    console.print(table)


# ========================================
# Settings
# ========================================


def _mask(value: str) -> str:
    if not value:
        return "[dim]unset[/dim]"
    return value[:4] + "…" if len(value) > 8 else "****"


@settings_app.command("show")
def settings_show():
    """Show user preferences."""
    prefs = _run(lambda _, storage: storage.load_settings())

    table = Table(title="User settings", box=box.SIMPLE_HEAVY)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for name, field in UserSettings.model_fields.items():
        value = getattr(prefs, name)
        if name.endswith("_key"):
            value = _mask(value)
        table.add_row(f"{name} ({field.alias})", str(value))
    console.print(table)


@settings_app.command("set")
def settings_set(
    key: str = typer.Argument(..., help="Setting name, snake_case or camelCase"),
    value: str = typer.Argument(..., help="New value"),
):
    """Change one user preference."""
    names = {name: name for name in UserSettings.model_fields}
    names.update({field.alias: name for name, field in UserSettings.model_fields.items() if field.alias})
    if key not in names:
        _error(f"Unknown setting: {key}")
        raise typer.Exit(1)

    async def work(_: ContentArchive, storage: StorageAdapter):
        current: dict[str, Any] = (await storage.load_settings()).model_dump()
        current[names[key]] = value
        await storage.save_settings(UserSettings(**current))

    _run(work)
    console.print(f"[green]✓[/green] {names[key]} updated")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
