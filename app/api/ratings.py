import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, status

from app.models.models import (
    FailureResponse,
    RatingKind,
    SentimentRatingResponse,
    StarRatingResponse,
    SubmitResponse,
)
from app.services import wire
from app.services.db.deps import get_rating_repository
from app.services.ratings import RatingRepository
from app.services.validation import validate_submission

logger = logging.getLogger(__name__)

_SUMMARY_MODELS = {
    RatingKind.SENTIMENT: SentimentRatingResponse,
    RatingKind.STAR: StarRatingResponse,
}

_FAILURES = {
    status.HTTP_400_BAD_REQUEST: {"model": FailureResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": FailureResponse},
}


def build_rating_router(kind: RatingKind) -> APIRouter:
    router = APIRouter(prefix=f"/{kind.value}", tags=[kind.value])

    @router.post(
        "",
        response_model=SubmitResponse,
        responses=_FAILURES,
        status_code=status.HTTP_200_OK,
        summary="Submit or update a song rating",
    )
    async def submit_rating(
        payload: Any = Body(None),
        repository: RatingRepository = Depends(get_rating_repository),
    ):
        """
        Accepts {"songId": ..., "userId": ..., "rating": ...} and stores the
        rating, replacing the user's previous one for that song.
        """
        checked = validate_submission(kind, payload)
        if not checked.ok:
            return wire.failure(checked.reason, status.HTTP_400_BAD_REQUEST)

        try:
            success = await repository.submit(
                kind, *wire.submission_args(checked.submission)
            )
        except Exception as e:
            logger.error(f"Error saving {kind.value} submission: {e}")
            return wire.failure(str(e))

        return wire.submitted(kind, success)

    @router.get(
        "/{song_id:path}",
        response_model=_SUMMARY_MODELS[kind],
        responses={status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": FailureResponse}},
        status_code=status.HTTP_200_OK,
        summary="Get rating totals for a song",
    )
    async def get_rating_summary(
        song_id: str,
        userId: str | None = None,
        repository: RatingRepository = Depends(get_rating_repository),
    ):
        """
        Returns the song's totals. `userRating` is the caller's own rating
        when `userId` is given and they rated the song, otherwise null.
        """
        try:
            stats = await repository.aggregate(kind, song_id)
            user_rating = (
                await repository.get_user_value(kind, song_id, userId)
                if userId
                else None
            )
        except Exception as e:
            logger.error(f"Error reading {kind.value} for {song_id!r}: {e}")
            return wire.failure(str(e))

        return wire.rating_summary(stats, user_rating)

    return router


sentiment_ratings_router = build_rating_router(RatingKind.SENTIMENT)
star_ratings_router = build_rating_router(RatingKind.STAR)
