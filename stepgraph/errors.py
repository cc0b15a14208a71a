"""Exception types for stepgraph."""


class StepgraphError(Exception):
    """Base class for stepgraph errors."""


class DataLoadError(StepgraphError):
    """A data source could not be read after all attempts."""

    def __init__(self, source: str, attempts: int, cause: Exception | None = None):
        self.source = source
        self.attempts = attempts
        self.cause = cause
        message = f"Failed to load {source} after {attempts} attempt(s)"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class RecordError(StepgraphError):
    """A JSON record does not have the shape its entity needs."""

    def __init__(self, kind: str, message: str, record: object = None):
        self.kind = kind
        self.record = record
        super().__init__(f"Invalid {kind} record: {message}")
