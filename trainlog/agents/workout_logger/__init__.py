"""Workout logger agent - turns one message into zero or more saved workouts."""

from trainlog.agents.workout_logger.agent import WorkoutLoggerAgent
from trainlog.agents.workout_logger.blocking import check_blocking
from trainlog.agents.workout_logger.context import WorkoutLoggerContext
from trainlog.agents.workout_logger.result_store import ResultStore
from trainlog.agents.workout_logger.results import WorkoutLogResult
from trainlog.agents.workout_logger.retry import RegexResponseClassifier, decide_retry

__all__ = [
    "RegexResponseClassifier",
    "ResultStore",
    "WorkoutLogResult",
    "WorkoutLoggerAgent",
    "WorkoutLoggerContext",
    "check_blocking",
    "decide_retry",
]
