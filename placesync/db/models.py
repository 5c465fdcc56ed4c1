"""SQLAlchemy ORM models backing :class:`placesync.feeds.sql.SqlRemoteStore`.

The tables mirror the documents the sync engine reads and writes: one JSON
profile document per account, the follow graph, and the per-place counters and
per-account save records that the backend maintains.  Counters are written by
the backend, never by the engine.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow():
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class ProfileDocumentRow(Base):
    """One account's profile: display fields plus the saved-lists document."""

    __tablename__ = "profile_documents"

    account_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    username: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    document: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        doc=(
            "Remote-shaped document (``lists``, ``entries``, ``likedLists``,"
            " ``likedListsVisible``).  Writes merge top-level keys so fields"
            " owned by other writers survive."
        ),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )


class FollowRow(Base):
    __tablename__ = "user_follows"
    __table_args__ = (
        UniqueConstraint("follower_id", "followee_id", name="uq_user_follows_pair"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    follower_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    followee_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class PlaceStatsRow(Base):
    """Backend-maintained save counters keyed by place key."""

    __tablename__ = "place_stats"

    place_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    wishlist_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    favourite_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )


class PlaceUserSaveRow(Base):
    __tablename__ = "place_user_saves"

    place_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    account_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    bucket: Mapped[str] = mapped_column(String(16), nullable=False)
    saved_at: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0, doc="Epoch milliseconds."
    )


__all__ = [
    "Base",
    "FollowRow",
    "PlaceStatsRow",
    "PlaceUserSaveRow",
    "ProfileDocumentRow",
]
