"""prepigo CLI — study queue, counts, reviews, exams and the HTTP server."""

import json
import logging
import random
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Literal, NoReturn

import typer

from prepigo.application.config import AppConfig, resolve_config
from prepigo.application.due_counts import get_due_counts
from prepigo.application.exams import exam_progress, exam_scope, plan_exam_schedule
from prepigo.application.factory import get_collection_repository
from prepigo.application.queue_builder import build_session_queue
from prepigo.application.scheduling.reviewer import review_item
from prepigo.application.settings_resolver import resolve_settings, resolve_settings_with_source
from prepigo.application.status import get_item_status
from prepigo.application.tree import find_container, find_item
from prepigo.domain.errors import ConfigError, ContainerNotFound
from prepigo.domain.models import Container, DueCounts, Rating
from prepigo.domain.ports import CollectionRepository

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="prepigo: spaced-repetition scheduler for flashcards and question banks.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Register subgroups
# ---------------------------------------------------------------------------

config_app = typer.Typer(help="Manage prepigo configuration.")
app.add_typer(config_app, name="config")

exam_app = typer.Typer(help="Exam progress and study plans.", no_args_is_help=True)
app.add_typer(exam_app, name="exam")

Kind = Literal["deck", "bank"]
LOG_FILE_NAME = "prepigo.log"


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for prepigo."""
    config = resolve_config({"verbose": 1 + verbose if verbose else None})
    _configure_logging(config)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_file_handler: logging.FileHandler | None = None


def _configure_logging(config: AppConfig) -> None:
    """Set the prepigo log level from `verbose` and mirror records to `log_dir`."""
    global _file_handler

    if config.verbose <= 0:
        level = logging.WARNING
    elif config.verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    pkg_logger = logging.getLogger("prepigo")
    pkg_logger.setLevel(level)

    if _file_handler is not None:
        pkg_logger.removeHandler(_file_handler)
        _file_handler.close()
    config.log_dir.mkdir(parents=True, exist_ok=True)
    _file_handler = logging.FileHandler(config.log_dir / LOG_FILE_NAME, encoding="utf-8", delay=True)
    _file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s:%(name)s:%(message)s"))
    pkg_logger.addHandler(_file_handler)


def _open(collection: Path | None, seed: int | None = None) -> tuple[AppConfig, CollectionRepository]:
    """Resolve config and the repository, or exit with a red error."""
    try:
        config = resolve_config({"collection_path": collection, "seed": seed})
        return config, get_collection_repository(config)
    except ConfigError as e:
        _fail(str(e))


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg="red", err=True)
    raise typer.Exit(1)


def _now() -> datetime:
    return datetime.now(timezone.utc)


CollectionOption = Annotated[
    Path | None, typer.Option("--collection", "-c", help="Collection file (YAML or JSON).")
]
KindOption = Annotated[str, typer.Option("--kind", "-k", help="deck or bank.")]
JsonOption = Annotated[bool, typer.Option("--json", help="Output results as JSON.")]


def _check_kind(kind: str) -> Kind:
    if kind not in ("deck", "bank"):
        _fail(f"Unknown container kind: {kind} (expected deck or bank)")
    return kind  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def queue(
    container_ids: Annotated[
        list[str] | None,
        typer.Argument(help="Containers to study. Defaults to every root container."),
    ] = None,
    kind: KindOption = "deck",
    seed: Annotated[int | None, typer.Option(help="Shuffle seed for a reproducible order.")] = None,
    no_exams: Annotated[bool, typer.Option("--no-exams", help="Ignore exam priority.")] = False,
    collection: CollectionOption = None,
    json_output: JsonOption = False,
):
    """[bold green]Build[/bold green] today's study queue."""
    kind = _check_kind(kind)
    config, repo = _open(collection, seed)
    now = _now()

    try:
        forest = repo.load_forest(kind)
        settings = repo.load_settings()
        exams = [] if no_exams else repo.load_exams()
        introduced = repo.load_introduced_today(now.date())
        selected = (
            [find_container(forest, cid) for cid in container_ids] if container_ids else forest
        )
    except (ConfigError, ContainerNotFound) as e:
        _fail(str(e))

    rng = random.Random(config.seed) if config.seed is not None else None
    result = build_session_queue(selected, forest, settings, introduced, exams, now=now, rng=rng)

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "items": [
                        {
                            "id": item.id,
                            "exam": result.exam_attribution[item.id].name
                            if item.id in result.exam_attribution
                            else None,
                        }
                        for item in result.items
                    ],
                    "new": result.new_count,
                    "review": result.review_count,
                    "learning": result.learning_count,
                },
                indent=2,
            )
        )
        return

    if not result.items:
        typer.secho("Nothing to study right now.", fg="yellow")
        return

    typer.secho(
        f"Queue: {len(result)} items "
        f"({result.new_count} new, {result.learning_count} learning, {result.review_count} review)",
        fg="green",
    )
    for pos, item in enumerate(result.items, 1):
        exam = result.exam_attribution.get(item.id)
        suffix = f"  [exam: {exam.name}]" if exam else ""
        typer.echo(f"{pos:4d}. {item.id}{suffix}")


@app.command()
def counts(
    kind: KindOption = "deck",
    collection: CollectionOption = None,
    json_output: JsonOption = False,
):
    """Show new / learning / due counts per container."""
    kind = _check_kind(kind)
    _, repo = _open(collection)
    now = _now()

    try:
        forest = repo.load_forest(kind)
        settings = repo.load_settings()
    except ConfigError as e:
        _fail(str(e))

    rows: list[tuple[int, Container, DueCounts]] = []

    def walk(nodes, depth: int) -> None:
        for node in nodes:
            rows.append((depth, node, get_due_counts(node, forest, settings, now)))
            walk(node.children, depth + 1)

    walk(forest, 0)

    if json_output:
        typer.echo(
            json.dumps(
                [
                    {
                        "id": node.id,
                        "name": node.name,
                        "new": c.new_count,
                        "learn": c.learn_count,
                        "due": c.due_count,
                    }
                    for _, node, c in rows
                ],
                indent=2,
            )
        )
        return

    if not rows:
        typer.secho(f"No {kind}s found.", fg="yellow")
        return

    for depth, node, c in rows:
        typer.echo(
            f"{'  ' * depth}{node.name}: "
            f"new {c.new_count}, learn {c.learn_count}, due {c.due_count}"
        )


@app.command()
def status(
    item_id: Annotated[str, typer.Argument(help="Item id.")],
    kind: KindOption = "deck",
    collection: CollectionOption = None,
):
    """Show an item's status and where its settings come from."""
    kind = _check_kind(kind)
    _, repo = _open(collection)

    try:
        forest = repo.load_forest(kind)
        global_settings = repo.load_settings()
    except ConfigError as e:
        _fail(str(e))

    found = find_item(forest, item_id)
    if found is None:
        _fail(f"Item not found: {item_id}")

    item, owner = found
    settings, source = resolve_settings_with_source(forest, owner.id, global_settings)
    item_status = get_item_status(item, settings.scheduler, settings.maturity_threshold_days)
    state = item.memory(settings.scheduler)

    typer.echo(f"Item:      {item.id} ({owner.name})")
    typer.echo(f"Status:    {item_status.value}")
    typer.echo(f"Scheduler: {settings.scheduler} (settings from {source})")
    if state is not None:
        typer.echo(f"Due:       {state.due.isoformat()}")


@app.command()
def review(
    item_id: Annotated[str, typer.Argument(help="Item id.")],
    rating: Annotated[int, typer.Argument(help="1=Again, 2=Hard, 3=Good, 4=Easy.")],
    kind: KindOption = "deck",
    duration_ms: Annotated[int | None, typer.Option(help="Answer time in milliseconds.")] = None,
    collection: CollectionOption = None,
):
    """[bold]Record[/bold] a review and schedule the item's next due date."""
    kind = _check_kind(kind)
    if rating not in (1, 2, 3, 4):
        _fail(f"Rating must be 1-4, got {rating}")
    _, repo = _open(collection)
    now = _now()

    try:
        forest = repo.load_forest(kind)
        global_settings = repo.load_settings()
        found = find_item(forest, item_id)
        if found is None:
            _fail(f"Item not found: {item_id}")
        item, owner = found
        settings = resolve_settings(forest, owner.id, global_settings)
        result = review_item(item, Rating(rating), settings, now, duration_ms=duration_ms)
        repo.save_review(result.item, result.log, now.date())
    except ConfigError as e:
        _fail(str(e))

    state = result.item.memory(settings.scheduler)
    typer.secho(
        f"{item_id}: {Rating(rating).name.title()} -> next due {state.due.isoformat()}",
        fg="green",
    )


@app.command()
def serve(
    host: Annotated[str, typer.Option(help="Bind address.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port.")] = 8777,
    reload: Annotated[bool, typer.Option(help="Auto-reload on code changes.")] = False,
):
    """Run the HTTP server."""
    import uvicorn

    uvicorn.run("prepigo.server:app", host=host, port=port, reload=reload)


@app.command()
def logs():
    """Print the log file location."""
    config = resolve_config()
    config.log_dir.mkdir(parents=True, exist_ok=True)
    typer.echo(str(config.log_dir / LOG_FILE_NAME))


# ---------------------------------------------------------------------------
# Exam subgroup
# ---------------------------------------------------------------------------


@exam_app.command("progress")
def exam_progress_cmd(
    kind: KindOption = "deck",
    collection: CollectionOption = None,
):
    """Show how much of each exam's scope is safe until the exam day."""
    kind = _check_kind(kind)
    _, repo = _open(collection)

    try:
        forest = repo.load_forest(kind)
        settings = repo.load_settings()
        exams = repo.load_exams()
    except ConfigError as e:
        _fail(str(e))

    if not exams:
        typer.secho("No exams found.", fg="yellow")
        return

    for exam in sorted(exams, key=lambda e: e.date):
        progress = exam_progress(exam, forest, settings)
        typer.echo(
            f"{exam.date.isoformat()}  {exam.name}: "
            f"{progress.mastered}/{progress.total} ({progress.percentage}%)"
        )


@exam_app.command("plan")
def exam_plan_cmd(
    exam_id: Annotated[str, typer.Argument(help="Exam id.")],
    kind: KindOption = "deck",
    collection: CollectionOption = None,
):
    """Spread an exam's scope evenly over the days left."""
    kind = _check_kind(kind)
    _, repo = _open(collection)

    try:
        forest = repo.load_forest(kind)
        settings = repo.load_settings()
        exams = repo.load_exams()
    except ConfigError as e:
        _fail(str(e))

    exam = next((e for e in exams if e.id == exam_id), None)
    if exam is None:
        _fail(f"Exam not found: {exam_id}")

    ids = [entry.item.id for entry in exam_scope(exam, forest, settings)]
    plan = plan_exam_schedule(ids, exam.date, _now().date())
    if not plan:
        typer.secho("Nothing to plan (exam passed or empty scope).", fg="yellow")
        return

    for day in plan:
        if not day.item_ids:
            continue
        typer.echo(f"{day.day.isoformat()}: {len(day.item_ids)} items")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))
