"""FillForms package."""

from fillforms.async_runner import run_async
from fillforms.exceptions import (
    AsyncExecutionError,
    BackendError,
    DependencyError,
    DraftConflictError,
    DraftNotFoundError,
    DraftSaveFailedError,
    PackageError,
    SettingsError,
    UnprocessableDocumentError,
    ValidationServiceUnavailableError,
    VersionRestoreFailedError,
)
from fillforms.logging import configure_logging, get_logger
from fillforms.settings import Settings, get_settings

__version__ = "0.1.0"

# Initialize package logger at import time via `get_logger`.
logger = get_logger("fillforms")

__all__ = [
    "AsyncExecutionError",
    "BackendError",
    "DependencyError",
    "DraftConflictError",
    "DraftNotFoundError",
    "DraftSaveFailedError",
    "PackageError",
    "Settings",
    "SettingsError",
    "UnprocessableDocumentError",
    "ValidationServiceUnavailableError",
    "VersionRestoreFailedError",
    "__version__",
    "configure_logging",
    "get_logger",
    "get_settings",
    "logger",
    "run_async",
]
