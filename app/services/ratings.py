import logging
from decimal import ROUND_HALF_UP, Decimal

from app.models.models import RatingKind, SentimentStats, StarStats
from app.services.db.engine import StorageDriver
from app.services.db.schemas import SentimentRatingRecords, StarRatingRecords

logger = logging.getLogger(__name__)

_TABLES = {
    RatingKind.SENTIMENT: SentimentRatingRecords.__tablename__,
    RatingKind.STAR: StarRatingRecords.__tablename__,
}

# One statement: concurrent submissions for the same (song_id, user_id) can
# never produce two rows.
_UPSERT_SQL = """
    INSERT INTO {table} (song_id, user_id, value)
    VALUES (?, ?, ?)
    ON CONFLICT (song_id, user_id) DO UPDATE
    SET value = excluded.value, created_at = CURRENT_TIMESTAMP
"""

_SENTIMENT_STATS_SQL = """
    SELECT
        COALESCE(SUM(CASE WHEN value = 1 THEN 1 ELSE 0 END), 0) AS up_count,
        COALESCE(SUM(CASE WHEN value = -1 THEN 1 ELSE 0 END), 0) AS down_count
    FROM {table}
    WHERE song_id = ?
"""

_STAR_STATS_SQL = """
    SELECT COUNT(*) AS total_count, COALESCE(SUM(value), 0) AS value_sum
    FROM {table}
    WHERE song_id = ?
"""

_USER_VALUE_SQL = "SELECT value FROM {table} WHERE song_id = ? AND user_id = ?"

_ONE_DECIMAL = Decimal("0.1")


def round_average(value_sum: int, total_count: int) -> float:
    """
    Mean of `total_count` ratings summing to `value_sum`, rounded half-up to
    one decimal. The division is exact, so 17 / 4 = 4.25 becomes 4.3.
    No ratings gives 0.0.
    """
    if not total_count:
        return 0.0
    mean = Decimal(value_sum) / Decimal(total_count)
    return float(mean.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


class RatingRepository:
    """
    Upserts and aggregates per-user song ratings for both rating kinds.

    Each operation is exactly one statement. Values are expected to be
    validated already; anything that slips through is rejected by the table
    CHECK constraints and surfaces as ConstraintViolation.
    """

    def __init__(self, storage: StorageDriver):
        self.storage = storage

    async def submit(
        self, kind: RatingKind, song_id: str, user_id: str, value: int
    ) -> bool:
        result = await self.storage.execute(
            _UPSERT_SQL.format(table=_TABLES[kind]), (song_id, user_id, value)
        )
        logger.debug(
            f"{kind.value}: {user_id} rated {song_id!r} {value} "
            f"({result.affected_count} row(s))"
        )
        return result.affected_count > 0

    async def aggregate(
        self, kind: RatingKind, song_id: str
    ) -> SentimentStats | StarStats:
        if kind is RatingKind.SENTIMENT:
            return await self._sentiment_stats(song_id)
        return await self._star_stats(song_id)

    async def _sentiment_stats(self, song_id: str) -> SentimentStats:
        row = await self.storage.query_one(
            _SENTIMENT_STATS_SQL.format(table=_TABLES[RatingKind.SENTIMENT]),
            (song_id,),
        )
        if row is None:
            return SentimentStats()
        return SentimentStats(
            up_count=int(row["up_count"] or 0),
            down_count=int(row["down_count"] or 0),
        )

    async def _star_stats(self, song_id: str) -> StarStats:
        row = await self.storage.query_one(
            _STAR_STATS_SQL.format(table=_TABLES[RatingKind.STAR]), (song_id,)
        )
        if row is None:
            return StarStats()
        total_count = int(row["total_count"] or 0)
        return StarStats(
            average_value=round_average(int(row["value_sum"] or 0), total_count),
            total_count=total_count,
        )

    async def get_user_value(
        self, kind: RatingKind, song_id: str, user_id: str
    ) -> int | None:
        """The caller's own rating, or None when they never rated the song."""
        row = await self.storage.query_one(
            _USER_VALUE_SQL.format(table=_TABLES[kind]), (song_id, user_id)
        )
        return None if row is None else int(row["value"])
