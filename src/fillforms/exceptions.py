"""Package exceptions."""

from __future__ import annotations

from dataclasses import dataclass


class PackageError(Exception):
    """Root exception for the package."""


@dataclass(frozen=True)
class SettingsError(PackageError):
    """Raised when settings cannot be loaded or validated."""

    message: str = "Failed to load settings"
    exc: BaseException | None = None

    def __str__(self) -> str:
        """Return error message payload."""
        return f"{self.message}: {self.exc}" if self.exc else self.message


@dataclass(frozen=True)
class AsyncExecutionError(PackageError):
    """Raised when an async operation fails in compatibility runner."""

    result: BaseException
    message: str = "Async operation failed"

    def __str__(self) -> str:
        """Return error message payload."""
        return f"{self.message}: {self.result}"


@dataclass(frozen=True)
class BackendError(PackageError):
    """Raised when a call to an external collaborator fails."""

    message: str
    status_code: int | None = None

    def __str__(self) -> str:
        """Return error message payload."""
        return self.message


@dataclass(frozen=True)
class DependencyError(PackageError):
    """Raised when optional runtime dependencies are missing."""

    missing_package: list[str]
    message: str

    def __str__(self) -> str:
        """Return error message payload."""
        return f"Missing runtime dependencies for '{self.message}': {', '.join(self.missing_package)}"


@dataclass(frozen=True)
class UnprocessableDocumentError(PackageError):
    """Raised when a document exposes no interactive fields to work with."""

    message: str = "Document has no interactive fields"

    def __str__(self) -> str:
        """Return error message payload."""
        return self.message


@dataclass(frozen=True)
class ValidationServiceUnavailableError(PackageError):
    """Raised when the vision validation service cannot produce a result."""

    message: str = "Vision validation is unavailable"

    def __str__(self) -> str:
        """Return error message payload."""
        return self.message


@dataclass(frozen=True)
class DraftSaveFailedError(PackageError):
    """Raised when a draft snapshot could not be written to the draft store."""

    message: str = "Draft save failed"

    def __str__(self) -> str:
        """Return error message payload."""
        return self.message


@dataclass(frozen=True)
class VersionRestoreFailedError(PackageError):
    """Raised when a draft version could not be restored."""

    form_id: str
    version_id: str
    message: str = "Version restore failed"

    def __str__(self) -> str:
        """Return error message payload."""
        return f"{self.message}: {self.form_id}@{self.version_id}"


@dataclass(frozen=True)
class DraftNotFoundError(PackageError):
    """Raised when a draft id is unknown to the draft store."""

    form_id: str

    def __str__(self) -> str:
        """Return error message payload."""
        return f"Draft not found: {self.form_id}"


@dataclass(frozen=True)
class DraftConflictError(PackageError):
    """Raised when starting a new document would replace existing drafts without confirmation."""

    existing_drafts: int

    def __str__(self) -> str:
        """Return error message payload."""
        return (
            f"{self.existing_drafts} draft(s) already exist; "
            "confirmation is required to start a new document"
        )
