"""
SQLAlchemy ORM models for persistent storage.

Models mirror the dataclass models but add database persistence. A whole
collection is loaded into a CollectionStore at the start of a request and
flushed back after the engine commits.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class UserCollectionDB(Base):
    """
    A user's ranked collection.

    `revision` mirrors CollectionStore.revision so suspended sessions can
    detect that the order changed while they waited.
    """

    __tablename__ = "user_collections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    revision: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    items: Mapped[list["RankedItemDB"]] = relationship(
        back_populates="collection", cascade="all, delete-orphan"
    )
    outcomes: Mapped[list["ComparisonOutcomeDB"]] = relationship(
        back_populates="collection", cascade="all, delete-orphan"
    )
    sessions: Mapped[list["InsertionSessionDB"]] = relationship(
        back_populates="collection", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<UserCollectionDB(id={self.id}, user_id={self.user_id})>"


class RankedItemDB(Base):
    """One ranked item. Ranks are not unique-constrained: renumbering rewrites many rows."""

    __tablename__ = "ranked_items"
    __table_args__ = (
        UniqueConstraint(
            "collection_id", "external_key", "media_type", name="uq_collection_external_key"
        ),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    collection_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_collections.id", ondelete="CASCADE"), index=True
    )
    external_key: Mapped[str] = mapped_column(String(255))
    media_type: Mapped[str] = mapped_column(String(16))
    tier: Mapped[str] = mapped_column(String(16), index=True)
    rank: Mapped[int] = mapped_column(Integer)
    comparison_count: Mapped[int] = mapped_column(Integer, default=0)

    # Opaque catalog payload
    title: Mapped[str] = mapped_column(String(512), default="")
    poster_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    release_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    overview: Mapped[str] = mapped_column(Text, default="")

    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    collection: Mapped["UserCollectionDB"] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return f"<RankedItemDB(id={self.id}, tier={self.tier}, rank={self.rank})>"


class ComparisonOutcomeDB(Base):
    """Latest resolved winner for a compared pair (ids stored in sorted order)."""

    __tablename__ = "comparison_outcomes"
    __table_args__ = (
        UniqueConstraint("collection_id", "first_id", "second_id", name="uq_collection_pair"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collection_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_collections.id", ondelete="CASCADE"), index=True
    )
    first_id: Mapped[str] = mapped_column(String(32))
    second_id: Mapped[str] = mapped_column(String(32))
    winner_id: Mapped[str] = mapped_column(String(32))

    collection: Mapped["UserCollectionDB"] = relationship(back_populates="outcomes")


class InsertionSessionDB(Base):
    """
    A suspended binary-search placement.

    The provisional item of a NEW session is stored as JSON since it has no
    row in ranked_items until the session converges.
    """

    __tablename__ = "insertion_sessions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    collection_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_collections.id", ondelete="CASCADE"), index=True
    )
    item_id: Mapped[str] = mapped_column(String(32), index=True)
    tier: Mapped[str] = mapped_column(String(16))
    media_type: Mapped[str] = mapped_column(String(16))
    purpose: Mapped[str] = mapped_column(String(16))
    status: Mapped[str] = mapped_column(String(16))
    pending: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    low: Mapped[int] = mapped_column(Integer, default=0)
    high: Mapped[int] = mapped_column(Integer, default=0)
    opponent_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    lost_to: Mapped[list[str]] = mapped_column(JSON, default=list)
    beats: Mapped[list[str]] = mapped_column(JSON, default=list)
    comparisons: Mapped[int] = mapped_column(Integer, default=0)
    revision: Mapped[int] = mapped_column(Integer, default=0)
    final_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)

    collection: Mapped["UserCollectionDB"] = relationship(back_populates="sessions")

    def __repr__(self) -> str:
        return f"<InsertionSessionDB(id={self.id}, status={self.status})>"
