"""Error taxonomy shared by the transport, builders, submission and polling."""

from __future__ import annotations


class SpeechClientError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(SpeechClientError):
    """Bad base URL, unusable credential or missing environment setting."""


class TransportError(SpeechClientError):
    """Network or HTTP client failure (DNS, TLS, timeout, connection reset)."""


class HttpStatusError(TransportError):
    """Non-2xx status on an endpoint that treats it as a hard failure."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"HTTP {status_code}: {body[:300]}")
        self.status_code = status_code
        self.body = body


class DeserializationError(SpeechClientError):
    """Malformed JSON, schema mismatch or a bad tri-state boolean literal."""


class UnexpectedResponseShapeError(SpeechClientError):
    """Response JSON lacks the `resp` envelope."""


class RequestBuildError(SpeechClientError):
    """A builder was finalized with missing or invalid fields."""

    def __init__(self, kind: str, missing: list[str], invalid: str | None = None) -> None:
        reason = f"invalid fields: {invalid}" if invalid else f"missing: {', '.join(missing)}"
        super().__init__(f"failed to build {kind} request; {reason}")
        self.kind = kind
        self.missing = missing
        self.invalid = invalid


class NoExtensionError(SpeechClientError):
    """Local file path has no extension to derive a media type from."""


class IoError(SpeechClientError):
    """Local file could not be read."""


class PollAttemptsExceededError(SpeechClientError):
    """A poll loop with a `max_attempts` cap ran out of attempts."""

    def __init__(self, job_id: str, attempts: int, last_code: int | None) -> None:
        super().__init__(
            f"job {job_id} not ready after {attempts} attempts (last code {last_code})"
        )
        self.job_id = job_id
        self.attempts = attempts
        self.last_code = last_code
