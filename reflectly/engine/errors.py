"""Failure taxonomy for model invocation.

The invoker and the retry classifier raise and re-raise these; only the
orchestrators turn them into user-facing content.
"""

from __future__ import annotations

from http import HTTPStatus


class InvocationError(Exception):
    """Base class for every failure raised while calling a model."""


class MissingCredential(InvocationError):
    def __init__(self, message: str = "GEMINI_API_KEY is missing or empty") -> None:
        super().__init__(message)


class ParseNotFound(InvocationError):
    """Model output contained no ``{...}`` span."""

    def __init__(self, raw: str) -> None:
        super().__init__("PARSE_JSON_NOT_FOUND")
        self.raw = raw


class InvalidModelJson(InvocationError):
    """Model output had a ``{...}`` span that is not a valid JSON object."""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class InvocationTimeout(InvocationError):
    def __init__(self, deadline_ms: int) -> None:
        super().__init__(f"AI_TIMEOUT after {deadline_ms}ms")
        self.deadline_ms = deadline_ms


class ProviderRejected(InvocationError):
    """The provider answered with an error status (or never answered at all)."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status

    @property
    def status_text(self) -> str | None:
        if self.status is None:
            return None
        try:
            return HTTPStatus(self.status).phrase
        except ValueError:
            return None


class ExhaustedCandidates(InvocationError):
    """Every candidate failed with a retryable error."""

    def __init__(self, attempted: list[str], last_error: BaseException | None) -> None:
        super().__init__(f"NO_WORKING_GEMINI_MODEL (tried {', '.join(attempted) or 'nothing'})")
        self.attempted = attempted
        self.last_error = last_error


class SummaryError(Exception):
    """Summary generation failed; there is no safe canned summary."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"SUMMARY_ERROR: {cause}")
        self.cause = cause
