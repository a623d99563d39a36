
from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import declarative_base


Base = declarative_base()


class SentimentRatingRecords(Base):
    __tablename__ = "song_ratings"
    __table_args__ = (
        UniqueConstraint("song_id", "user_id", name="uq_song_ratings_song_user"),
        CheckConstraint("value IN (1, -1)", name="ck_song_ratings_value"),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    song_id = Column(Text, nullable=False, index=True)
    user_id = Column(Text, nullable=False)
    value = Column(Integer, nullable=False)
    created_at = Column(
        DateTime, nullable=False, server_default=func.current_timestamp()
    )


class StarRatingRecords(Base):
    __tablename__ = "song_star_ratings"
    __table_args__ = (
        UniqueConstraint(
            "song_id", "user_id", name="uq_song_star_ratings_song_user"
        ),
        CheckConstraint(
            "value >= 1 AND value <= 5", name="ck_song_star_ratings_value"
        ),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    song_id = Column(Text, nullable=False, index=True)
    user_id = Column(Text, nullable=False)
    value = Column(Integer, nullable=False)
    created_at = Column(
        DateTime, nullable=False, server_default=func.current_timestamp()
    )
