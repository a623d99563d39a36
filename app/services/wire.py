from fastapi import status
from fastapi.responses import JSONResponse

from app.models.models import (
    FailureResponse,
    RatingKind,
    RatingSubmission,
    SentimentRatingData,
    SentimentRatingResponse,
    SentimentStats,
    StarRatingData,
    StarRatingResponse,
    StarStats,
    SubmitResponse,
)

_SUBMIT_MESSAGES = {
    RatingKind.SENTIMENT: (
        "Rating submitted successfully",
        "Rating submission failed",
    ),
    RatingKind.STAR: (
        "Star rating submitted successfully",
        "Star rating submission failed",
    ),
}


def submission_args(submission: RatingSubmission) -> tuple[str, str, int]:
    """(song_id, user_id, value) for RatingRepository.submit."""
    return submission.songId, submission.userId, submission.rating


def submitted(kind: RatingKind, success: bool) -> SubmitResponse:
    succeeded, failed = _SUBMIT_MESSAGES[kind]
    return SubmitResponse(success=success, message=succeeded if success else failed)


def rating_summary(
    stats: SentimentStats | StarStats, user_rating: int | None
) -> SentimentRatingResponse | StarRatingResponse:
    if isinstance(stats, SentimentStats):
        return SentimentRatingResponse(
            data=SentimentRatingData(
                thumbs_up=stats.up_count,
                thumbs_down=stats.down_count,
                userRating=user_rating,
            )
        )
    return StarRatingResponse(
        data=StarRatingData(
            average_rating=stats.average_value,
            total_ratings=stats.total_count,
            userRating=user_rating,
        )
    )


def failure(
    error: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=FailureResponse(error=error).model_dump(),
    )
