"""Error types for the workout logger.

Distinct error types separate pipeline-ordering mistakes (the model called a
tool too early), untrusted model output, recoverable classifier failures,
and storage failures.
"""


class WorkoutLoggerError(Exception):
    """Base class for workout logger errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class PreconditionError(WorkoutLoggerError):
    """Raised when a tool runs before the stage it depends on produced a result.

    Always fatal to that tool call. The agent loop surfaces it to the model as
    a tool error so the model can call the missing tool first.
    """

    def __init__(self, tool_name: str, missing: str, message: str | None = None):
        self.tool_name = tool_name
        self.missing = missing
        super().__init__(message or f"{missing} not completed - call {tool_name} first")


class MalformedResponseError(WorkoutLoggerError):
    """Raised when every response repair stage failed to yield parseable JSON."""

    def __init__(self, raw_response: str, message: str | None = None):
        self.raw_preview = raw_response[:200]
        super().__init__(message or f"Unable to parse model response as JSON: {self.raw_preview}")


class ClassificationFailure(WorkoutLoggerError):
    """Raised by a classifier whose model call errored.

    Call sites recover with a conservative default; this never ends a run.
    """

    def __init__(self, classifier: str, message: str | None = None):
        self.classifier = classifier
        super().__init__(message or f"Classification failed: {classifier}")


class ToolInputError(WorkoutLoggerError):
    """Raised when a model-supplied tool input fails schema validation."""

    def __init__(self, tool_name: str, message: str | None = None):
        self.tool_name = tool_name
        super().__init__(message or f"Invalid input for tool {tool_name}")


class PersistenceError(RuntimeError):
    """Raised when the workout store fails to persist a record."""

    def __init__(self, message: str, workout_id: str | None = None):
        self.message = message
        self.workout_id = workout_id
        super().__init__(self.message)
