from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator


class RatingKind(str, Enum):
    # values double as the URL segment under /api
    SENTIMENT = "ratings"
    STAR = "star-ratings"


class RatingSubmission(BaseModel):
    model_config = ConfigDict(strict=True)

    songId: Annotated[StrictStr, Field(min_length=1)]
    userId: Annotated[StrictStr, Field(min_length=1)]


class SentimentSubmission(RatingSubmission):
    rating: StrictInt

    @field_validator("rating")
    @classmethod
    def thumbs_only(cls, v: int) -> int:
        if v not in (1, -1):
            raise ValueError("rating must be 1 or -1")
        return v


class StarSubmission(RatingSubmission):
    rating: Annotated[StrictInt, Field(ge=1, le=5)]


class SentimentStats(BaseModel):
    up_count: int = 0
    down_count: int = 0


class StarStats(BaseModel):
    average_value: float = 0.0
    total_count: int = 0


class SentimentRatingData(BaseModel):
    thumbs_up: int
    thumbs_down: int
    userRating: int | None = None


class StarRatingData(BaseModel):
    average_rating: float
    total_ratings: int
    userRating: int | None = None


class SubmitResponse(BaseModel):
    success: bool
    message: str


class FailureResponse(BaseModel):
    success: bool = False
    error: str


class SentimentRatingResponse(BaseModel):
    success: bool = True
    data: SentimentRatingData


class StarRatingResponse(BaseModel):
    success: bool = True
    data: StarRatingData
