from fastapi import Depends, Request

from app.services.db.engine import StorageDriver
from app.services.ratings import RatingRepository


def get_storage(request: Request) -> StorageDriver:
    """The driver built at startup and kept on the application state."""
    return request.app.state.storage


def get_rating_repository(
    storage: StorageDriver = Depends(get_storage),
) -> RatingRepository:
    return RatingRepository(storage)
