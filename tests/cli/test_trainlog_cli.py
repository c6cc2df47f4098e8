"""Tests for the trainlog developer CLI."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from trainlog.agents.workout_logger.results import WorkoutLogResult
from trainlog.cli import app
from trainlog.persistence.types import ExerciseExtractionJob

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_setup():
    with patch("trainlog.cli.setup_logger"), patch("trainlog.cli.init_db"):
        yield


def test_log_prints_saved_workout():
    saved = WorkoutLogResult(success=True, workout_id="workout_cli-user_1_abc", discipline="running")
    with patch("trainlog.cli.log_workout", new=AsyncMock(return_value=saved)) as mock_log:
        result = runner.invoke(app, ["log", "/log ran an easy 5k", "--timezone", "Europe/London"])

    assert result.exit_code == 0
    assert "Workout logged" in result.output
    assert "workout_cli-user_1_abc" in result.output
    assert mock_log.call_args.args == ("/log ran an easy 5k",)
    assert mock_log.call_args.kwargs["user_id"] == "cli-user"
    assert mock_log.call_args.kwargs["user_timezone"] == "Europe/London"
    assert mock_log.call_args.kwargs["template_context"] is None
    assert mock_log.call_args.kwargs["image_refs"] is None


def test_log_exits_nonzero_when_skipped():
    skipped = WorkoutLogResult(success=False, skipped=True, reason="Not a workout log")
    with patch("trainlog.cli.log_workout", new=AsyncMock(return_value=skipped)) as mock_log:
        result = runner.invoke(app, ["log", "what should I do tomorrow?", "--template-id", "tmpl_1"])

    assert result.exit_code == 1
    assert "Workout not logged" in result.output
    assert mock_log.call_args.kwargs["template_context"].template_id == "tmpl_1"


def test_log_passes_repeated_images():
    saved = WorkoutLogResult(success=True, workout_id="workout_cli-user_1_abc")
    with patch("trainlog.cli.log_workout", new=AsyncMock(return_value=saved)) as mock_log:
        result = runner.invoke(
            app,
            ["log", "/log", "--image", "whiteboard.jpg", "-i", "https://cdn.example.com/watch.png"],
        )

    assert result.exit_code == 0
    assert mock_log.call_args.kwargs["image_refs"] == ["whiteboard.jpg", "https://cdn.example.com/watch.png"]


def test_next_job_with_empty_queue():
    with patch("trainlog.cli.dequeue_exercise_extraction", return_value=None):
        result = runner.invoke(app, ["next-job"])

    assert result.exit_code == 0
    assert "No exercise extraction jobs queued" in result.output


def test_next_job_prints_job():
    job = ExerciseExtractionJob(
        user_id="user123",
        coach_id="coach456",
        workout_id="workout_user123_1_abc",
        workout_data={"discipline": "running"},
        completed_at="2026-10-15T17:30:00+00:00",
        created_at=1760549400.0,
    )
    with patch("trainlog.cli.dequeue_exercise_extraction", return_value=job):
        result = runner.invoke(app, ["next-job"])

    assert result.exit_code == 0
    assert "workout_user123_1_abc" in result.output


def test_check_db_reports_redis_failure():
    with (
        patch("trainlog.cli.redis.from_url", side_effect=ConnectionError("refused")),
        patch("trainlog.cli.get_session") as mock_session,
    ):
        mock_session.return_value.__enter__.return_value = MagicMock()
        result = runner.invoke(app, ["check-db"])

    assert result.exit_code == 1
    assert "Some connections failed" in result.output
