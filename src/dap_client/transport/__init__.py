from .upload import (
    Accepted,
    FailureKind,
    ProblemDocument,
    Rejected,
    SubmissionOutcome,
    TransientFailure,
    Transport,
    upload_url,
)

__all__ = [
    "Accepted",
    "FailureKind",
    "ProblemDocument",
    "Rejected",
    "SubmissionOutcome",
    "TransientFailure",
    "Transport",
    "upload_url",
]
