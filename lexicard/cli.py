"""Command-line interface for lexicard."""

import asyncio
import logging
from pathlib import Path

import click
import structlog

from .config import HISTORY_DB
from .errors import LexicardError
from .models import Card, Grade, StatusLabel
from .parser import split_list_field, word_family_tokens
from .utils import import_cards_json, load_words_from_file
from .workspace import Workspace

log = structlog.get_logger()


def configure_logging(verbose: bool = False) -> None:
    """JSON logs by default, readable console logs with --verbose."""
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING)
    renderer = structlog.dev.ConsoleRenderer() if verbose else structlog.processors.JSONRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def render_card(card: Card) -> None:
    click.secho(card.word, bold=True, nl=False)
    if card.part_of_speech:
        click.echo(f"  ({card.part_of_speech})", nl=False)
    if card.pronunciation:
        click.echo(f"  {card.pronunciation}", nl=False)
    click.echo()

    rows = [
        ("Definition", card.definition),
        ("Translation", card.translation),
        ("Example", card.example_context),
        ("Family", ", ".join(display for _, display in word_family_tokens(card.word_family))),
        ("Synonyms", ", ".join(split_list_field(card.synonyms))),
        ("Antonyms", ", ".join(split_list_field(card.antonyms))),
        ("Etymology", card.etymology),
        ("Usage", card.usage_notes),
        ("Difficulty", card.difficulty),
    ]
    for label, value in rows:
        if value:
            click.echo(f"  {label:<12} {value}")
    click.secho(f"  [{card.source.value}]", dim=True)


def _run(ctx: click.Context, action):
    """Open the workspace, run an async action against it and persist."""
    workspace = Workspace.open(ctx.obj["db"])

    async def _main():
        try:
            return await action(workspace)
        finally:
            await workspace.close()

    try:
        return asyncio.run(_main())
    except LexicardError as e:
        log.error("Command failed", error=str(e))
        raise click.ClickException(str(e))
    finally:
        workspace.flush()


@click.group()
@click.option(
    "--db",
    type=click.Path(dir_okay=False, path_type=Path),
    default=HISTORY_DB,
    help="SQLite database holding cards and review progress"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose logging"
)
@click.pass_context
def main(ctx: click.Context, db: Path, verbose: bool):
    """Learn vocabulary with generated cards and spaced repetition."""
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["db"] = db


@main.command()
@click.argument("word", required=False)
@click.option("--offline", is_flag=True, help="Never call the text generator")
@click.option("--refresh", is_flag=True, help="Ignore the cached card and regenerate it")
@click.option("--short", is_flag=True, help="Print a one-line definition only")
@click.pass_context
def define(ctx: click.Context, word: str, offline: bool, refresh: bool, short: bool):
    """Show the card for WORD, or for the next scheduled word."""

    async def action(ws: Workspace):
        if short and word:
            click.echo(await ws.pipeline.short_definition(word, is_online=not offline))
            return
        _, card = await ws.show(word, is_online=not offline, refresh=refresh)
        if card is not None:
            render_card(card)

    _run(ctx, action)


@main.command()
@click.option("--limit", type=int, default=20, help="Maximum number of words to review")
@click.option("--offline", is_flag=True, help="Never call the text generator")
@click.pass_context
def review(ctx: click.Context, limit: int, offline: bool):
    """Review due saved words and grade your recall."""

    async def action(ws: Workspace):
        due = ws.due_words()[:limit]
        if not due:
            click.echo("No words due right now!")
            return
        click.echo(f"{len(due)} words due\n")
        for i, word in enumerate(due, 1):
            click.secho(f"[{i}/{len(due)}] {word}", bold=True)
            click.prompt("Press Enter to reveal", default="", show_default=False)
            _, card = await ws.show(word, is_online=not offline)
            if card is not None:
                render_card(card)
            answer = click.prompt("Did you know it?", type=click.Choice(["y", "n", "q"]), default="y")
            if answer == "q":
                break
            state = ws.grade(word, Grade.KNOW if answer == "y" else Grade.DONT_KNOW)
            click.echo(f"  -> {state.status.value}, next review {state.due_at:%Y-%m-%d}\n")

    _run(ctx, action)


@main.command()
@click.pass_context
def due(ctx: click.Context):
    """List saved words that are due for review."""

    async def action(ws: Workspace):
        for word in ws.due_words():
            click.echo(f"{word:<24} {ws.scheduler.store.status(word).value}")

    _run(ctx, action)


@main.command()
@click.argument("words", nargs=-1, required=True)
@click.pass_context
def save(ctx: click.Context, words):
    """Add WORDS to the saved list."""

    async def action(ws: Workspace):
        for word in words:
            if not ws.library.save(word):
                click.echo(f"'{word}' is already saved")

    _run(ctx, action)


@main.command()
@click.argument("words", nargs=-1, required=True)
@click.pass_context
def unsave(ctx: click.Context, words):
    """Move WORDS to the trash."""

    async def action(ws: Workspace):
        for word in words:
            if ws.library.unsave(word) is None:
                click.echo(f"'{word}' is not saved")

    _run(ctx, action)


@main.command(name="import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_(ctx: click.Context, file: Path):
    """Import a word list (one per line) or a JSON array of cards."""

    async def action(ws: Workspace):
        if file.suffix.lower() == ".json":
            try:
                cards = import_cards_json(file)
            except ValueError as e:
                raise click.ClickException(str(e))
            ws.pipeline.store_cards(cards)
            words = [word for word, _ in cards]
        else:
            words = load_words_from_file(file)
        added = ws.library.import_words(words)
        click.echo(f"Imported {len(added)} new words ({len(words) - len(added)} already saved)")

    _run(ctx, action)


@main.command()
@click.pass_context
def stats(ctx: click.Context):
    """Show progress per learning status."""

    async def action(ws: Workspace):
        counts = ws.library.counts()
        for label in StatusLabel:
            click.echo(f"{label.value:<12} {counts[label]}")
        click.echo(f"{'DUE':<12} {len(ws.due_words())}")
        click.echo(f"{'CACHED':<12} {len(ws.cache)}")
        if ws.pipeline.quota_exceeded():
            click.secho("Generator quota exhausted; new words use local fallbacks", fg="yellow")

    _run(ctx, action)


@main.command()
@click.option("--offline", is_flag=True, help="Use the local word list only")
@click.pass_context
def explore(ctx: click.Context, offline: bool):
    """Browse a pack of new words."""

    async def action(ws: Workspace):
        session = await ws.explore(is_online=not offline)
        while session.current_word:
            word = session.current_word
            _, card = await ws.show(word, is_online=not offline)
            click.secho(f"\n[{session.current}/{session.total}]", dim=True)
            if card is not None:
                render_card(card)
            choices = ["n", "p", "s", "q"] + (["m"] if session.at_end else [])
            answer = click.prompt(
                "next / previous / save / quit" + (" / more" if session.at_end else ""),
                type=click.Choice(choices), default="n",
            )
            if answer == "q":
                break
            if answer == "s":
                ws.library.save(word)
            elif answer == "p":
                session.back()
            elif answer == "m":
                await session.generate_more(is_online=not offline)
            elif not session.forward():
                click.echo("End of pack. Choose 'm' for more.")

    _run(ctx, action)


if __name__ == "__main__":
    main()
