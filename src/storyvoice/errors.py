"""Custom storyvoice exceptions."""


class StoryVoiceError(Exception):
    """Base exception for storyvoice errors."""

    def __init__(
        self, message: str, original_error: Exception | None = None
    ) -> None:
        super().__init__(message)
        self.original_error = original_error


class CacheError(StoryVoiceError):
    """Base exception for generation cache errors."""

    pass


class InvalidInputError(CacheError, ValueError):
    """Exception raised when a cache key cannot be derived from the input.

    This typically occurs when:
    - Voice sample bytes are empty
    - Story or narrator identifier is missing or blank
    - Page index is negative or not an integer
    """

    pass


class PersistenceError(CacheError):
    """Exception raised when the cache document cannot be written to disk.

    The in-memory store is still valid after this error, but the update
    will not survive a restart.
    """

    pass


class CorruptStoreError(CacheError):
    """Exception raised when the cache document on disk cannot be parsed."""

    pass


class ProducerError(StoryVoiceError):
    """Exception raised when an external generation call fails."""

    pass


class TTSAuthError(ProducerError):
    """Exception raised for authentication failures.

    This typically occurs when:
    - API key is missing or invalid
    - Account has insufficient credits
    - API key permissions are insufficient
    """

    pass


class TTSAPIError(ProducerError):
    """Exception raised for API communication errors.

    This typically occurs when:
    - API server is unavailable (5xx errors)
    - Rate limits are exceeded (429 error)
    - Voice cloning quota is exhausted
    - Network connectivity issues
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.status_code = status_code
