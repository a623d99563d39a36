from typing import Any, NamedTuple

from pydantic import ValidationError

from app.models.models import (
    RatingKind,
    RatingSubmission,
    SentimentSubmission,
    StarSubmission,
)

_SUBMISSION_MODELS: dict[RatingKind, type[RatingSubmission]] = {
    RatingKind.SENTIMENT: SentimentSubmission,
    RatingKind.STAR: StarSubmission,
}

REJECTION_REASONS = {
    RatingKind.SENTIMENT: "Song ID, user ID, and rating (1 or -1) are required",
    RatingKind.STAR: "Song ID, user ID, and rating (1-5) are required",
}


class ValidationResult(NamedTuple):
    ok: bool
    reason: str | None = None
    submission: RatingSubmission | None = None


def validate_submission(kind: RatingKind, payload: Any) -> ValidationResult:
    """
    Checks an inbound rating body before it goes anywhere near storage.

    Ids must be non-empty strings. Sentiment ratings must be exactly 1 or -1,
    star ratings an integer from 1 to 5. Booleans, floats (3.0 included) and
    numeric strings are refused. Either the whole body passes or the kind's
    single reason string is returned.
    """
    if not isinstance(payload, dict):
        return ValidationResult(ok=False, reason=REJECTION_REASONS[kind])

    try:
        submission = _SUBMISSION_MODELS[kind].model_validate(payload)
    except ValidationError:
        return ValidationResult(ok=False, reason=REJECTION_REASONS[kind])

    return ValidationResult(ok=True, submission=submission)
