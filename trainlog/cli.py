"""Developer CLI for the workout logger.

Runs one extraction against the configured model provider and database,
the same code path the backend uses for an inbound message.
"""

import asyncio
import json
from datetime import datetime, timezone

import redis
import typer
from loguru import logger
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.text import Text
from sqlalchemy import text

from trainlog.config.settings import settings
from trainlog.core.background import drain_background_tasks
from trainlog.core.logger import setup_logger
from trainlog.db.session import get_session, init_db
from trainlog.persistence.exercise_queue import dequeue_exercise_extraction
from trainlog.persistence.types import TemplateContext
from trainlog.services.workout_logging import log_workout
from trainlog.workouts.discipline_detector import detect_discipline

console = Console()

app = typer.Typer(
    name="trainlog",
    help="Trainlog CLI - run workout extraction locally",
    add_completion=False,
)

DEFAULT_USER_ID = "cli-user"
DEFAULT_COACH_ID = "cli-coach"


async def _log_and_drain(message: str, **kwargs) -> dict:
    result = await log_workout(message, **kwargs)
    # Side channels are detached; wait so the process does not exit under them
    await drain_background_tasks()
    return result.model_dump(mode="json", exclude_none=True)


@app.command()
def log(
    message: str = typer.Argument(..., help="Workout message, e.g. '/log-workout Fran in 8:57'"),
    user_id: str = typer.Option(DEFAULT_USER_ID, "--user-id", "-u", help="Owning user id"),
    coach_id: str = typer.Option(DEFAULT_COACH_ID, "--coach-id", "-c", help="Coach id"),
    user_timezone: str | None = typer.Option(None, "--timezone", "-t", help="IANA timezone"),
    template_id: str | None = typer.Option(None, "--template-id", help="Program template to link against"),
    images: list[str] | None = typer.Option(None, "--image", "-i", help="Image URL or file path (repeatable)"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Extract, validate and save a workout from MESSAGE."""
    setup_logger(level="DEBUG" if debug else None)
    init_db()

    template_context = TemplateContext(template_id=template_id) if template_id else None
    result = asyncio.run(
        _log_and_drain(
            message,
            user_id=user_id,
            coach_id=coach_id,
            user_timezone=user_timezone,
            message_timestamp=datetime.now(timezone.utc),
            template_context=template_context,
            image_refs=images or None,
        )
    )

    success = bool(result.get("success"))
    console.print(
        Panel(
            Text("Workout logged" if success else "Workout not logged", style="bold green" if success else "bold yellow"),
            subtitle=result.get("workout_id") or result.get("reason"),
            border_style="green" if success else "yellow",
        )
    )
    console.print(JSON(json.dumps(result, ensure_ascii=False)))
    if not success:
        raise typer.Exit(1)


@app.command()
def detect(message: str = typer.Argument(..., help="Message to classify")) -> None:
    """Run discipline detection only."""
    setup_logger()
    detection = asyncio.run(detect_discipline(message))
    console.print(JSON(detection.model_dump_json()))


@app.command()
def next_job() -> None:
    """Pop the next exercise extraction job from the queue."""
    setup_logger()
    job = dequeue_exercise_extraction()
    if job is None:
        console.print("[yellow]No exercise extraction jobs queued[/yellow]")
        return
    console.print(JSON(json.dumps(job.__dict__, default=str)))


@app.command()
def check_db() -> None:
    """Verify Redis and database connections are working."""
    results: list[tuple[str, bool, str]] = []

    try:
        redis_client = redis.from_url(settings.redis_url, decode_responses=True)
        redis_client.ping()
        results.append(("Redis", True, f"Connected to {settings.redis_url}"))
    except Exception as e:
        results.append(("Redis", False, f"Connection failed: {e!s}"))

    try:
        with get_session() as db:
            db.execute(text("SELECT 1"))
        results.append(("Database", True, "Connected to database"))
    except Exception as e:
        logger.debug(f"Database check failed: {e}")
        results.append(("Database", False, f"Connection failed: {e!s}"))

    all_ok = all(status for _, status, _ in results)
    details = "\n".join([f"  {'✓' if status else '✗'} {name}: {detail}" for name, status, detail in results])
    console.print(
        Panel(
            Text(
                "All connections OK" if all_ok else "Some connections failed",
                style="bold green" if all_ok else "bold red",
            ),
            subtitle=details,
            border_style="green" if all_ok else "red",
        )
    )
    if not all_ok:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
