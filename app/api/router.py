from fastapi import APIRouter

from .ratings import sentiment_ratings_router, star_ratings_router


api_router = APIRouter(prefix="/api")
api_router.include_router(sentiment_ratings_router)
api_router.include_router(star_ratings_router)
