"""
Typer CLI for the EduKid practice service.

Commands:
    edukid db init          - Initialize database tables
    edukid db seed          - Load demo subjects, topics, users and questions
    edukid topics           - List topics with a learner's mastery
    edukid practice         - Answer adaptive questions in the terminal
    edukid mastery          - Show a learner's mastery per topic
    edukid info             - Show configuration summary

Usage:
    edukid --help
    edukid db init && edukid db seed
    edukid topics --user 2 --stage KS2
    edukid practice --user 2 --topic 4 --rounds 5
"""

from __future__ import annotations

import random
from time import monotonic
from typing import NoReturn

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from config import get_settings
from src.adaptive.practice_engine import PracticeEngine
from src.core.errors import EngineError
from src.core.logging_setup import configure_logging
from src.core.mastery import format_progress_bar
from src.core.models import Stage
from src.db import database
from src.db.seed import seed_database
from src.db.stores import SqlPracticeStore

app = typer.Typer(
    help="EduKid CLI: adaptive practice with mastery tracking",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """EduKid adaptive practice."""
    configure_logging(get_settings(), level="DEBUG" if verbose else "WARNING")


def _build_engine(store: SqlPracticeStore, seed: int | None = None) -> PracticeEngine:
    return PracticeEngine(
        catalog=store,
        mastery_store=store,
        event_log=store,
        users=store,
        unit_of_work=store.transaction,
        rng=random.Random(seed),
    )


def _fail(message: str) -> NoReturn:
    rprint(f"[red]Error:[/red] {message}")
    raise typer.Exit(code=1)


# ========================================
# Database Commands
# ========================================

db_app = typer.Typer(help="Database management (init, seed)")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """
    Initialize database tables from SQLAlchemy models.

    Safe to run multiple times (idempotent).
    """
    logger.info("Initializing database tables...")
    database.init_db()
    rprint("[green]✓[/green] Database initialized!")


@db_app.command("seed")
def db_seed() -> None:
    """Load demo data. Does nothing if it is already present."""
    database.init_db()
    with database.session_scope() as session:
        summary = seed_database(session)

    if summary["skipped"]:
        rprint("[yellow]Demo data already present, nothing to do.[/yellow]")
        return

    table = Table(title="Seed Results", show_header=True)
    table.add_column("Entity", style="cyan")
    table.add_column("Inserted", justify="right")
    for key in ("subjects", "topics", "users", "questions"):
        table.add_row(key.title(), str(summary[key]))
    console.print(table)


# ========================================
# Learner Commands
# ========================================


@app.command("topics")
def list_topics(
    user: int | None = typer.Option(None, "--user", "-u", help="Learner id for mastery column"),
    stage: Stage | None = typer.Option(None, "--stage", "-s", help="Curriculum stage filter"),
) -> None:
    """List curriculum topics, optionally with a learner's mastery."""
    with database.session_scope() as session:
        store = SqlPracticeStore(session)
        if user is None:
            rows = [(topic, None) for topic in store.get_topics(stage)]
        else:
            try:
                store.get_user(user)
            except EngineError as e:
                _fail(str(e))
            overview = _build_engine(store).topic_overview(user, stage=stage)
            rows = [(p.topic, p.mastery) for p in overview]

    if not rows:
        rprint("[yellow]No topics found.[/yellow] Run: edukid db seed")
        return

    table = Table(title="Topics", show_header=True)
    table.add_column("ID", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Stage")
    table.add_column("Subject", justify="right")
    if user is not None:
        table.add_column("Mastery")
    for topic, mastery in rows:
        cells = [str(topic.id), topic.name, topic.stage.value, str(topic.subject_id)]
        if mastery is not None:
            cells.append(f"{format_progress_bar(mastery)} {mastery * 100:.0f}%")
        table.add_row(*cells)
    console.print(table)


@app.command("practice")
def practice(
    user: int = typer.Option(..., "--user", "-u", help="Learner id"),
    topic: int = typer.Option(..., "--topic", "-t", help="Topic id"),
    rounds: int = typer.Option(5, "--rounds", "-n", min=1, help="Questions to answer"),
    seed: int | None = typer.Option(None, "--seed", hidden=True),
) -> None:
    """
    Answer adaptive questions for one topic.

    Questions seen in this session are passed back on every selection so
    they are not repeated until the suitable pool runs out.
    """
    shuffle = random.Random(seed)
    history: list[int] = []
    total_coins = 0

    with database.session_scope() as session:
        store = SqlPracticeStore(session)
        engine = _build_engine(store, seed)

        for round_number in range(1, rounds + 1):
            try:
                selection = engine.select_next_question(user, topic, history)
            except EngineError as e:
                _fail(str(e))

            question = selection.question
            options = list(question.options)
            shuffle.shuffle(options)

            rprint(f"\n[bold]Question {round_number}/{rounds}[/bold] [dim](difficulty {question.difficulty})[/dim]")
            rprint(question.content)
            for index, option in enumerate(options, start=1):
                rprint(f"  [cyan]{index}[/cyan]. {option}")

            started = monotonic()
            choice = Prompt.ask(
                "[cyan]Your answer[/cyan]",
                choices=[str(i) for i in range(1, len(options) + 1)],
                console=console,
            )
            elapsed = round(monotonic() - started)

            try:
                result = engine.record_answer(user, question.id, options[int(choice) - 1], elapsed)
            except EngineError as e:
                _fail(str(e))

            history.append(question.id)
            total_coins += result.coins_earned
            if result.correct:
                rprint(f"[green]✓ {result.feedback}[/green] +{result.coins_earned} coins")
            else:
                rprint(f"[red]✗ The answer was {result.correct_answer}.[/red] {result.feedback}")
            rprint(f"[dim]Mastery: {format_progress_bar(result.new_mastery)} {result.new_mastery * 100:.0f}%[/dim]")

    rprint(f"\n[bold]Session complete.[/bold] Coins earned: [yellow]{total_coins}[/yellow]")


@app.command("mastery")
def show_mastery(
    user: int = typer.Option(..., "--user", "-u", help="Learner id"),
) -> None:
    """Show a learner's mastery for every topic they have practiced."""
    with database.session_scope() as session:
        store = SqlPracticeStore(session)
        try:
            learner = store.get_user(user)
        except EngineError as e:
            _fail(str(e))
        topics = {t.id: t for t in store.get_topics()}
        records = store.list_mastery(user)

    if not records:
        rprint(f"[yellow]{learner.username} has not practiced any topics yet.[/yellow]")
        return

    table = Table(title=f"Mastery for {learner.username} ({learner.coins} coins)", show_header=True)
    table.add_column("Topic", style="cyan")
    table.add_column("Progress")
    table.add_column("Level")
    table.add_column("Answered", justify="right")
    for record in records:
        level = record.level
        name = topics[record.topic_id].name if record.topic_id in topics else str(record.topic_id)
        table.add_row(
            name,
            f"{format_progress_bar(record.score)} {record.mastery_percentage:.0f}%",
            f"[{level.color}]{level.display_name}[/{level.color}]",
            str(record.questions_answered),
        )
    console.print(table)


@app.command("info")
def info() -> None:
    """Show configuration summary and table sizes."""
    settings = get_settings()
    db_label = settings.database_url.split("@")[-1] if "@" in settings.database_url else settings.database_url

    table = Table(title="EduKid Configuration", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Database", db_label)
    table.add_row("Coin reward", str(settings.coin_reward))
    table.add_row("Mastery EMA weight", str(settings.mastery_ema_weight))
    table.add_row("Default year group", str(settings.default_year_group))
    table.add_row("User header", settings.user_header)
    table.add_row("API", f"{settings.api_host}:{settings.api_port}")
    console.print(table)

    database.init_db()
    with database.session_scope() as session:
        counts = database.table_counts(session)
    rprint("[dim]" + ", ".join(f"{name}: {count}" for name, count in counts.items()) + "[/dim]")


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
