"""Exception hierarchy for the visibility checker.

Network failures and timeouts are not exceptions here: they are returned as
``ProbeOutcome(status=None)`` values so that no single probe can affect the
others. The exceptions below cover the remaining seams where Python code
genuinely needs to unwind: client startup, payload decoding, logging setup and
programming errors in the checklist itself.
"""

from datetime import UTC, datetime
from typing import Any


class VisibilityError(Exception):
    """Root of the checker's exception hierarchy.

    Attributes:
        message: Human-readable description, as logged.
        context: Structured values behind the message (url, reason, label).
        raised_at: UTC instant the error was created.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = dict(context or {})
        self.raised_at = datetime.now(UTC)
        super().__init__(self.describe())

    def describe(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class ProbeClientError(VisibilityError):
    """Raised when the HTTP probe client cannot be started.

    Common causes are a missing Playwright driver or a broken installation.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(
            message=f"Failed to start probe client: {reason}",
            context={"reason": reason},
        )


class PayloadFormatError(VisibilityError):
    """Raised when a fetched body cannot be decoded as JSON."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(
            message=f"Response from '{url}' is not valid JSON: {reason}",
            context={"url": url, "reason": reason},
        )
        self.url = url


class DuplicateCheckLabelError(VisibilityError):
    """Raised when two checks in the same run share a label."""

    def __init__(self, label: str) -> None:
        super().__init__(
            message=f"Check label '{label}' was recorded twice",
            context={"label": label},
        )
        self.label = label


class LoggingInitializationError(VisibilityError):
    """Raised when the logging system fails to initialize."""

    def __init__(self, log_dir: str, reason: str) -> None:
        super().__init__(
            message=f"Cannot write log files under '{log_dir}'",
            context={"log_dir": log_dir, "reason": reason},
        )
