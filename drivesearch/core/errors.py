"""
Application errors for clean API error handling.

Use ServiceUnavailableError when a dependency (Drive, LLM) is misconfigured or
unreachable so the API can return 503 with a user-facing message.
RetrievalError marks a failed Drive call; the request fails as a whole.
"""


class ServiceUnavailableError(Exception):
    """Raised when a required service (e.g. Drive, LLM provider) is unavailable or misconfigured."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(ServiceUnavailableError):
    """Raised when required configuration (root folder, credentials) is missing."""


class RetrievalError(Exception):
    """Raised when a Drive listing or query fails; no partial results are returned."""

    def __init__(self, message: str, folder_id: str | None = None, status_code: int | None = None) -> None:
        self.message = message
        self.folder_id = folder_id
        self.status_code = status_code
        super().__init__(message)
