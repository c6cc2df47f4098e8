"""Redis-backed queue that triggers exercise-record extraction for saved workouts."""

import json
from dataclasses import asdict

import redis
from loguru import logger

from trainlog.config.settings import settings
from trainlog.persistence.types import ExerciseExtractionJob

QUEUE_KEY = "exercise_extraction_jobs"


def _get_redis_client() -> redis.Redis | None:
    """Get Redis client instance.

    Returns:
        Redis client if available, None otherwise (best-effort)
    """
    try:
        return redis.from_url(settings.redis_url, decode_responses=True)
    except Exception as e:
        logger.bind(error=str(e)).warning("Failed to connect to Redis for exercise queue")
        return None


def enqueue_exercise_extraction(job: ExerciseExtractionJob) -> bool:
    """Enqueue an exercise extraction job.

    This function NEVER raises exceptions. If Redis is unavailable the job is
    dropped and False is returned.
    """
    redis_client = _get_redis_client()
    if not redis_client:
        logger.bind(workout_id=job.workout_id).warning("Redis unavailable, skipping exercise extraction enqueue")
        return False

    try:
        redis_client.rpush(QUEUE_KEY, json.dumps(asdict(job), default=str))
        logger.bind(workout_id=job.workout_id).debug("Enqueued exercise extraction job")
        return True
    except Exception as e:
        logger.bind(workout_id=job.workout_id, error=str(e)).warning("Failed to enqueue exercise extraction")
        return False


def dequeue_exercise_extraction() -> ExerciseExtractionJob | None:
    """Dequeue the next exercise extraction job.

    Returns:
        Job if available, None if the queue is empty or Redis is unavailable
    """
    redis_client = _get_redis_client()
    if not redis_client:
        return None

    try:
        raw = redis_client.lpop(QUEUE_KEY)
        if not raw:
            return None
        if not isinstance(raw, str):
            logger.bind(raw_type=type(raw).__name__).warning("Unexpected type from Redis lpop")
            return None
        return ExerciseExtractionJob(**json.loads(raw))
    except Exception as e:
        logger.bind(error=str(e)).warning("Failed to dequeue exercise extraction job")
        return None
