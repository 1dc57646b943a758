# domain errors shared across memory, RAG and agent layers

class OnDeviceAIError(Exception):
    """Base class for every error raised by the agent core."""

class EmptyInputError(OnDeviceAIError, ValueError):
    """Caller passed empty or whitespace-only text. Never retried."""

class DimensionMismatchError(OnDeviceAIError, ValueError):
    """Embedding length differs from the store's fixed dimensionality."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Embedding dimension mismatch: expected {expected}, got {actual}")

class EmbeddingError(OnDeviceAIError):
    """The embedding provider failed to return vectors."""

class CompletionError(OnDeviceAIError):
    """
    The chat completion provider failed (network, auth, rate limit, bad payload).
    Treated uniformly regardless of provider.
    """

class TransientCompletionError(CompletionError):
    """A completion failure worth retrying (rate limit, timeout, connection, 5xx)."""

class TransientEmbeddingError(EmbeddingError):
    """An embedding failure worth retrying (rate limit, timeout, connection, 5xx)."""

class GenerationError(OnDeviceAIError):
    """RAG answer generation failed because the completion step failed."""

class ToolError(OnDeviceAIError):
    """A tool invocation failed. Always converted into an observation by the agent."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

class ParseError(OnDeviceAIError):
    """LLM output did not match the Thought / Action / Final Answer format."""
