"""Exceptions raised by the adjudication pipeline."""


class CouncilError(Exception):
    """Base class for pipeline failures."""


class InvalidInput(CouncilError):
    """Raised when a judgment request is missing its topic or its content."""


class RetryExhausted(CouncilError):
    """Raised when an operation still fails after its last allowed attempt."""

    def __init__(self, attempts: int, last_error: Exception) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Failed after {attempts} attempts: {last_error}")


class ModerationRejected(CouncilError):
    """Raised by the pipeline when moderation flags the transcript."""

    def __init__(self, reason: str | None, flags: list[str] | None = None) -> None:
        self.reason = reason or "Inappropriate content"
        self.flags = list(flags or [])
        detail = f" ({', '.join(self.flags)})" if self.flags else ""
        super().__init__(f"Content rejected: {self.reason}{detail}")


class InsufficientQuorum(CouncilError):
    """Raised when too few judges return a usable evaluation."""

    def __init__(self, succeeded: int, total: int, required: int = 2) -> None:
        self.succeeded = succeeded
        self.total = total
        self.required = required
        super().__init__(
            f"Not enough judges succeeded. Only {succeeded} of {total} completed. "
            f"Need at least {required}."
        )


class ChunkTranscriptionFailed(CouncilError):
    """Raised when one audio chunk cannot be transcribed; the whole run fails."""

    def __init__(self, chunk_index: int, last_error: Exception) -> None:
        self.chunk_index = chunk_index
        self.last_error = last_error
        super().__init__(f"Chunk {chunk_index + 1} failed to transcribe: {last_error}")
