import logging

from .engine import StorageDriver
from .errors import SchemaInitFailure
from .schemas import Base

logger = logging.getLogger("database")


async def init_schema(driver: StorageDriver) -> None:
    """
    Creates the rating tables, their unique/check constraints and the song_id
    indexes when they are missing. Safe to call on every process start.
    Any failure is fatal: the caller must not start serving requests.
    """
    logger.info(f"Ensuring schema on {driver.location}")
    try:
        await driver.create_all(Base.metadata)
    except Exception as e:
        logger.error(f"Schema initialisation failed: {e}")
        raise SchemaInitFailure(str(e)) from e
    logger.info(f"Schema ready: {', '.join(sorted(Base.metadata.tables))}")
