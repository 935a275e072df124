"""Exception classes for the locale sync pipeline."""


class LocaleSyncError(Exception):
    """
    Base exception for every fatal error raised by the pipeline.

    Attributes:
        message: Human-readable error message.
        details: Optional additional details (dict, string, etc.).
    """

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(LocaleSyncError):
    """Raised for missing, conflicting or invalid run inputs."""
    pass


class SourceFileError(LocaleSyncError):
    """Raised when a source locale file cannot be read or parsed."""
    pass


class UnsupportedKeyError(SourceFileError):
    """Raised when a locale key contains the path separator itself."""

    def __init__(self, key: str, parent_path: str = ''):
        location = f"under '{parent_path}'" if parent_path else "at the root"
        super().__init__(
            f"Key '{key}' {location} contains a literal '.', which cannot be addressed as a dot-path",
            details={'key': key, 'parent_path': parent_path}
        )
        self.key = key
        self.parent_path = parent_path


class TranslationAPIError(LocaleSyncError):
    """Raised when the remote translation call fails or returns an invalid payload."""

    def __init__(self, message: str, status_code: int = None, details=None):
        super().__init__(message, details=details)
        self.status_code = status_code


class VersionControlError(LocaleSyncError):
    """Raised when committing, pushing or opening a pull request fails."""
    pass


class OutputFileError(LocaleSyncError):
    """Raised when a translated file, the run report or the step outputs cannot be written."""
    pass
