"""Custom TTS exceptions."""


class TTSError(Exception):
    """Base exception for TTS-related errors."""

    def __init__(
        self, message: str, original_error: Exception | None = None
    ) -> None:
        super().__init__(message)
        self.original_error = original_error


class TTSAPIError(TTSError):
    """Exception raised for API communication errors.

    This typically occurs when:
    - API server is unavailable (5xx errors)
    - Rate limits are exceeded (429 error)
    - Request format is invalid (4xx errors)
    - Network connectivity issues

    No retries are attempted; the status code and response body are kept
    so callers can report them.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.status_code = status_code
        self.body = body


class TTSAuthError(TTSAPIError):
    """Exception raised for authentication failures.

    This typically occurs when:
    - API key is missing or was never stored
    - API key is rejected by the service (401)
    """

    pass
