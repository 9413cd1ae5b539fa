"""cadence CLI: inspect and drive a ledger snapshot from the terminal."""

import asyncio
import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError

from cadence.application.config import CadenceConfig, resolve_config
from cadence.application.id_service import new_card
from cadence.application.scheduling.forecast import estimate_retention
from cadence.application.scheduling.service import DeckDraft, ReviewService, ReviewSubmission
from cadence.domain.errors import CadenceError
from cadence.infrastructure.adapters.ledger import YamlSnapshotLedger

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="cadence: spaced-repetition scheduling for meeting flashcards.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage cadence configuration.")
app.add_typer(config_app, name="config")

deck_app = typer.Typer(help="Create and list decks.")
app.add_typer(deck_app, name="deck")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

_LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO}


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    ledger: Annotated[
        Path | None,
        typer.Option(
            "--ledger", "-l", help="YAML ledger snapshot. Defaults to 'ledger_path' in config."
        ),
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for cadence."""
    ctx.ensure_object(dict)
    ctx.obj["ledger_path"] = ledger
    ctx.obj["verbose"] = verbose or None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _config(ctx: typer.Context) -> CadenceConfig:
    obj = ctx.obj or {}
    config = resolve_config(
        {"ledger_path": obj.get("ledger_path"), "verbose": obj.get("verbose")}
    )
    logging.getLogger("cadence").setLevel(_LOG_LEVELS.get(config.verbose, logging.DEBUG))
    return config


def _open_ledger(config: CadenceConfig) -> YamlSnapshotLedger:
    if config.ledger_path is None:
        typer.secho(
            "No ledger configured. Pass --ledger or set CADENCE_LEDGER_PATH.", fg="red"
        )
        raise typer.Exit(2)
    try:
        return YamlSnapshotLedger.load(config.ledger_path)
    except CadenceError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1) from e


def _service(config: CadenceConfig, ledger: YamlSnapshotLedger) -> ReviewService:
    return ReviewService(
        ledger,
        session_limit=config.session_limit,
        stats_window=timedelta(hours=config.stats_window_hours),
        retention_sample_size=config.retention_sample_size,
        forecast_days=config.forecast_days,
    )


def _run(coro):
    try:
        return asyncio.run(coro)
    except CadenceError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1) from e


def _to_json(value: Any) -> str:
    return json.dumps(value, indent=2, default=str)


def _short(text: str, width: int = 60) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def session(
    ctx: typer.Context,
    deck: Annotated[str | None, typer.Option(help="Only consider cards in this deck.")] = None,
    limit: Annotated[
        int | None, typer.Option(help="Maximum cards in the session. Defaults to config.")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show the cards due for the next review session, most overdue first."""
    config = _config(ctx)
    ledger = _open_ledger(config)
    review_session = _run(_service(config, ledger).get_review_session(deck_id=deck, limit=limit))

    if json_output:
        typer.echo(_to_json([asdict(c) for c in review_session.cards]))
        return

    if not review_session.cards:
        typer.secho("Nothing due. Come back later.", fg="green")
        return

    typer.echo(f"Due now: {len(review_session.cards)} cards")
    for i, card in enumerate(review_session.cards, start=1):
        typer.echo(
            f"  [{i}] {card.id}  d={card.difficulty}  due {card.next_review:%Y-%m-%d %H:%M}"
            f"  {_short(card.question)}"
        )


@app.command()
def review(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to review.")],
    rating: Annotated[int, typer.Argument(help="Recall quality 0-5 (clamped).")],
    time_spent: Annotated[
        float, typer.Option("--time", "-t", help="Seconds spent on the card.")
    ] = 10.0,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Record a review, reschedule the card and save the snapshot."""
    config = _config(ctx)
    ledger = _open_ledger(config)

    try:
        submission = ReviewSubmission(card_id=card_id, rating=rating, time_spent=time_spent)
    except ValidationError as e:
        typer.secho(f"Invalid review: {e.errors()[0]['msg']}", fg="red")
        raise typer.Exit(2) from e

    outcome = _run(_service(config, ledger).submit_review(submission))
    ledger.dump()

    if json_output:
        typer.echo(
            _to_json(
                {
                    "card_id": outcome.card.id,
                    "rating": outcome.event.rating,
                    "time_spent": outcome.event.time_spent,
                    "next_review": outcome.card.next_review.isoformat(),
                    "new_interval": outcome.card.interval,
                    "new_ease_factor": outcome.card.ease_factor,
                    "matured": outcome.maturity is not None,
                }
            )
        )
        return

    color = "green" if outcome.event.was_correct else "yellow"
    typer.secho(
        f"{outcome.card.id}: next review in {outcome.card.interval}d "
        f"({outcome.card.next_review:%Y-%m-%d}), ease {outcome.card.ease_factor}",
        fg=color,
    )
    if outcome.maturity is not None:
        typer.secho("Card is now mature.", fg="green")


@app.command()
def add(
    ctx: typer.Context,
    question: Annotated[str, typer.Argument(help="Question side.")],
    answer: Annotated[str, typer.Argument(help="Answer side.")],
    deck: Annotated[str, typer.Option(help="Deck id to add the card to (see 'deck list').")],
    context: Annotated[str | None, typer.Option(help="Optional source context.")] = None,
    difficulty: Annotated[int, typer.Option(min=1, max=5, help="Author difficulty 1-5.")] = 3,
):
    """Add a new card, due immediately, to a deck."""
    config = _config(ctx)
    ledger = _open_ledger(config)
    card = new_card(question, answer, context=context, difficulty=difficulty)
    updated = _run(_service(config, ledger).add_cards(deck, [card]))
    ledger.dump()
    typer.secho(f"Added {card.id} to {updated.name} ({updated.total_cards} cards)", fg="green")


@app.command()
def stats(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show study statistics: due, new, retention, study time."""
    config = _config(ctx)
    ledger = _open_ledger(config)
    result = _run(_service(config, ledger).get_study_stats())

    if json_output:
        typer.echo(_to_json(asdict(result)))
        return

    typer.echo(f"Cards: {result.total_cards}  Due: {result.due_today}  New: {result.new_cards}")
    typer.echo(f"Reviewed today: {result.reviewed_today}  Streak: {result.streak_days}")
    typer.echo(
        f"Retention: {result.average_retention:.0%}  "
        f"Study time: {result.total_study_time / 60:.1f} min"
    )
    if result.cards_by_difficulty:
        histogram = "  ".join(f"{d}:{n}" for d, n in result.cards_by_difficulty.items())
        typer.echo(f"By difficulty: {histogram}")


@app.command()
def forecast(
    ctx: typer.Context,
    deck: Annotated[str | None, typer.Option(help="Only count cards in this deck.")] = None,
    days: Annotated[int | None, typer.Option(min=1, help="Days to project.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Project the review workload for the coming days."""
    config = _config(ctx)
    ledger = _open_ledger(config)
    schedule = _run(_service(config, ledger).get_forecast(deck_id=deck, days=days))

    if json_output:
        typer.echo(_to_json([asdict(day) for day in schedule]))
        return

    for day in schedule:
        typer.echo(
            f"{day.date}  {day.due_count:>4} due  ({day.new_count} new, {day.review_count} review)"
        )


@app.command()
def mastery(
    ctx: typer.Context,
    deck: Annotated[str | None, typer.Option(help="Only count cards in this deck.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show how many cards have matured (interval above 21 days)."""
    config = _config(ctx)
    ledger = _open_ledger(config)
    result = _run(_service(config, ledger).get_mastery_stats(deck_id=deck))

    if json_output:
        typer.echo(_to_json(asdict(result)))
        return

    typer.echo(
        f"Mature: {result.mature_cards}/{result.total_cards} ({result.mastery_percentage}%)"
    )
    if result.average_time_to_mastery is None:
        typer.echo("Average time to mastery: unknown")
    else:
        typer.echo(f"Average time to mastery: ~{result.average_time_to_mastery} days")


@app.command()
def retention(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to estimate.")],
):
    """Estimate the current recall probability of one card."""
    config = _config(ctx)
    ledger = _open_ledger(config)
    card = _run(ledger.get_card(card_id))
    typer.echo(f"{estimate_retention(card, datetime.now(timezone.utc)):.2f}")


# ---------------------------------------------------------------------------
# Deck subgroup
# ---------------------------------------------------------------------------


@deck_app.command("create")
def deck_create(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Deck name (1-100 characters).")],
    description: Annotated[
        str | None, typer.Option(help="Optional description (up to 500 characters).")
    ] = None,
    new_cards_per_day: Annotated[int | None, typer.Option(help="Daily new-card cap.")] = None,
    review_limit: Annotated[int | None, typer.Option(help="Daily review cap.")] = None,
):
    """Create an empty deck and save the snapshot."""
    config = _config(ctx)
    ledger = _open_ledger(config)

    fields = {"new_cards_per_day": new_cards_per_day, "review_limit": review_limit}
    try:
        draft = DeckDraft(
            name=name,
            description=description,
            **{k: v for k, v in fields.items() if v is not None},
        )
    except ValidationError as e:
        typer.secho(f"Invalid deck: {e.errors()[0]['msg']}", fg="red")
        raise typer.Exit(2) from e

    created = _run(_service(config, ledger).create_deck(draft))
    ledger.dump()
    typer.secho(f"Created deck {created.id} ({created.name})", fg="green")


@deck_app.command("list")
def deck_list(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List decks with their card and maturity counts."""
    config = _config(ctx)
    ledger = _open_ledger(config)
    decks = _run(_service(config, ledger).list_decks())

    if json_output:
        typer.echo(_to_json([asdict(d) for d in decks]))
        return

    if not decks:
        typer.echo("No decks yet. Create one with 'cadence deck create NAME'.")
        return

    for d in decks:
        typer.echo(f"{d.id}  {d.name}  ({d.total_cards} cards, {d.mature_cards} mature)")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


def main():
    app()


if __name__ == "__main__":
    main()
