"""Exception hierarchy for report preparation and upload."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from dap_client.transport.upload import Rejected, TransientFailure


class DapClientError(Exception):
    """Base class for every error raised by this package."""


class CodecError(DapClientError):
    """Raised when a protocol message cannot be encoded or decoded."""


class ValidationError(DapClientError):
    """Caller misuse or stale configuration. Never retried."""


class InvalidMeasurement(ValidationError):
    """The measurement is outside the value domain of the task's VDAF."""


class UnsupportedVersion(ValidationError):
    """The task pins a protocol version this client cannot encode."""


class CryptoError(DapClientError):
    """Local environment or key-material problem. Fatal for the submission."""


class EncryptionFailed(CryptoError):
    """An input share could not be sealed to its aggregator."""


class IdGenerationFailed(CryptoError):
    """The secure random source could not produce report randomness."""


class SubmissionError(DapClientError):
    """Terminal non-accepted outcome of a submission."""

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


class ReportRejected(SubmissionError):
    """The leader refused the report; carries the server's reason verbatim."""

    def __init__(self, rejection: "Rejected", attempts: int) -> None:
        super().__init__(f"report rejected by leader: {rejection.reason}", attempts)
        self.rejection = rejection
        self.reason = rejection.reason


class RetriesExhausted(SubmissionError):
    """Delivery kept failing transiently until the attempt cap was reached."""

    def __init__(self, last_failure: Optional["TransientFailure"], attempts: int) -> None:
        kind = last_failure.kind.value if last_failure else "unknown"
        super().__init__(f"upload failed after {attempts} attempts: {kind}", attempts)
        self.last_failure = last_failure
