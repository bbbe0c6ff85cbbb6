"""FocusForge CLI — card management, due queue, and interactive review."""

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Any, TypeVar

import typer

from focusforge.application.card_service import CardService
from focusforge.application.config import AppConfig, config_file, resolve_config
from focusforge.application.factory import get_card_store
from focusforge.application.utils.deck_file import load_deck
from focusforge.domain.cards.errors import (
    FlashcardError,
    InvalidQuality,
    NotFound,
    PersistenceError,
)
from focusforge.domain.cards.models import Card, Quality

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="focusforge: spaced-repetition flashcards.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Register subgroups
# ---------------------------------------------------------------------------

cards_app = typer.Typer(help="Add, list, import and delete cards.", no_args_is_help=True)
app.add_typer(cards_app, name="cards")

config_app = typer.Typer(help="Manage focusforge configuration.")
app.add_typer(config_app, name="config")


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    backend: Annotated[
        str | None, typer.Option(help="Card store backend: local, firestore.")
    ] = None,
    data_file: Annotated[
        Path | None, typer.Option(help="Card file for the local backend.")
    ] = None,
    timezone: Annotated[
        str | None, typer.Option(help="Calendar zone that decides what 'today' is.")
    ] = None,
):
    """Global settings for focusforge."""
    ctx.ensure_object(dict)
    ctx.obj["verbose_bonus"] = verbose
    ctx.obj["overrides"] = {
        "backend": backend,
        "data_file": data_file,
        "timezone": timezone,
    }


def _config(ctx: typer.Context) -> AppConfig:
    obj = ctx.obj or {}
    try:
        config = resolve_config(obj.get("overrides", {}))
    except ValueError as e:
        typer.secho(f"Invalid configuration: {e}", fg="red", err=True)
        raise typer.Exit(1) from None
    _set_log_level(config.verbose + obj.get("verbose_bonus", 0))
    return config


def _set_log_level(verbose: int) -> None:
    if verbose >= 3:
        logging.getLogger().setLevel(logging.DEBUG)
    elif verbose == 2:
        logging.getLogger().setLevel(logging.INFO)
    else:
        logging.getLogger().setLevel(logging.WARNING)


def _run(config: AppConfig, action: Callable[[CardService], Awaitable[T]]) -> T:
    """Run an async action against a service built from config, mapping errors to exit codes."""

    async def run() -> T:
        store = get_card_store(config)
        try:
            return await action(CardService(store, timezone=config.timezone))
        finally:
            await store.aclose()

    try:
        return asyncio.run(run())
    except (FlashcardError, ValueError) as e:
        typer.secho(f"Error: {e}", fg="red", err=True)
        raise typer.Exit(1) from None


def _card_dict(card: Card) -> dict[str, Any]:
    return {
        "id": card.id,
        "question": card.question,
        "answer": card.answer,
        "interval": card.interval,
        "ease_factor": round(card.ease_factor, 4),
        "next_review_date": card.next_review_date.isoformat(),
        "last_review_date": card.last_review_date.isoformat() if card.last_review_date else None,
        "created_at": card.created_at.isoformat() if card.created_at else None,
    }


def parse_quality(raw: str) -> int:
    """Accept a rating name (again/hard/good/easy) or a number 0-5."""
    text = raw.strip()
    by_name = {q.name.lower(): int(q) for q in Quality}
    if text.lower() in by_name:
        return by_name[text.lower()]
    try:
        quality = int(text)
    except ValueError:
        raise InvalidQuality(raw) from None
    if not 0 <= quality <= 5:
        raise InvalidQuality(quality)
    return quality


# ---------------------------------------------------------------------------
# Cards subgroup
# ---------------------------------------------------------------------------


@cards_app.command("add")
def cards_add(
    ctx: typer.Context,
    question: Annotated[str, typer.Argument(help="Question (front) text.")],
    answer: Annotated[str, typer.Argument(help="Answer (back) text.")],
):
    """Add a card. It is due immediately."""
    card_id = _run(_config(ctx), lambda service: service.add_card(question, answer))
    typer.secho(f"Added card {card_id}", fg="green")


@cards_app.command("list")
def cards_list(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List every card with its next review date."""
    cards = _run(_config(ctx), lambda service: service.list_cards())

    if json_output:
        typer.echo(json.dumps([_card_dict(c) for c in cards], indent=2))
        return

    if not cards:
        typer.secho("No flashcards yet! Add your first with 'focusforge cards add'.", fg="yellow")
        return

    for card in cards:
        typer.echo(
            f"{card.id}  next={card.next_review_date.isoformat()}  "
            f"ivl={card.interval}d  ease={card.ease_factor:.2f}  {card.question}"
        )


@cards_app.command("delete")
def cards_delete(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Id of the card to delete.")],
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Skip the confirmation prompt.")
    ] = False,
):
    """Delete a card."""
    if not force and not typer.confirm(f"Delete card {card_id}?"):
        raise typer.Exit(1)
    _run(_config(ctx), lambda service: service.delete_card(card_id))
    typer.secho(f"Deleted card {card_id}", fg="green")


@cards_app.command("import")
def cards_import(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="YAML file with a top-level 'cards' list.")],
):
    """Import cards from a YAML deck file."""

    async def action(service: CardService) -> list[str]:
        return await service.import_cards(load_deck(path))

    card_ids = _run(_config(ctx), action)
    typer.secho(f"Imported {len(card_ids)} cards from {path.name}", fg="green")


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def due(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show the cards due for review today, in review order."""

    queue, summary = _run(_config(ctx), lambda service: service.due_overview())

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "as_of": summary.as_of.isoformat(),
                    "total": summary.total,
                    "due": summary.due,
                    "overdue": summary.overdue,
                    "new": summary.new,
                    "queue": [_card_dict(c) for c in queue],
                },
                indent=2,
            )
        )
        return

    typer.echo(
        f"Cards Due: {summary.due}  (overdue {summary.overdue}, new {summary.new}, "
        f"total {summary.total})"
    )
    for i, card in enumerate(queue, start=1):
        typer.echo(f"  [{i}] {card.question}  (due {card.next_review_date.isoformat()})")
    if not queue:
        typer.secho("No flashcards due for review today!", fg="green")


@app.command()
def review(
    ctx: typer.Context,
    limit: Annotated[
        int | None, typer.Option(help="Review at most this many cards.")
    ] = None,
):
    """[bold green]Review[/bold green] today's due cards interactively."""

    async def action(service: CardService) -> int:
        session = await service.start_session(limit=limit)
        if session.is_complete:
            typer.secho("No flashcards due for review today!", fg="green")
            return 0

        while not session.is_complete:
            card = session.current_card
            typer.echo(f"\nCard {session.position + 1} of {session.total}")
            typer.secho(card.question, bold=True)
            typer.prompt("Press Enter to show the answer", default="", show_default=False)
            session.reveal_answer()
            typer.echo(card.answer)

            while True:
                raw = typer.prompt("Rate (again/hard/good/easy or 0-5, q to quit)")
                if raw.strip().lower() in ("q", "quit"):
                    reviewed = len(session.reviewed)
                    session.abort()
                    typer.secho(f"Stopped after {reviewed} cards.", fg="yellow")
                    return reviewed
                try:
                    update = await session.submit_rating(parse_quality(raw))
                except InvalidQuality as e:
                    typer.secho(str(e), fg="red")
                    continue
                except NotFound:
                    typer.secho(f"Card {card.id} no longer exists; skipping it.", fg="yellow")
                    session.skip()
                    break
                except PersistenceError as e:
                    typer.secho(f"Could not save review: {e}. Try again or 'q' to quit.", fg="red")
                    continue
                typer.echo(
                    f"Next review {update.next_review_date.isoformat()} "
                    f"(in {update.interval}d, ease {update.ease_factor:.2f})"
                )
                break

        typer.secho(
            "Review Complete! You have reviewed all due flashcards for today!", fg="green"
        )
        return len(session.reviewed)

    _run(_config(ctx), action)


@app.command()
def serve(
    port: Annotated[int, typer.Option(help="Port to bind the server to.")] = 8777,
    host: Annotated[str, typer.Option(help="Host to bind the server to.")] = "127.0.0.1",
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the HTTP API server."""
    import uvicorn

    uvicorn.run("focusforge.server:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    for secret in ("firestore_api_key", "firestore_token"):
        if d.get(secret):
            d[secret] = "***"
    typer.echo(json.dumps(d, indent=2))


@config_app.command("path")
def config_path():
    """Print the location of the config file."""
    typer.echo(str(config_file()))


def main():
    app()


if __name__ == "__main__":
    main()
