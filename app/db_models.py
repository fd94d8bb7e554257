"""SQLAlchemy ORM models backing the shared catalogue and per-user overlay."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


class Show(Base):
    """A show mirrored from the external catalogue, keyed by its external id."""

    __tablename__ = "shows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(255))
    image: Mapped[str | None] = mapped_column(String(512), nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    episodes: Mapped[list["Episode"]] = relationship(back_populates="show")


class Episode(Base):
    """An episode row shared by every user that tracks the owning show."""

    __tablename__ = "episodes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    show_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("shows.id"), index=True
    )
    season: Mapped[int | None] = mapped_column(Integer, nullable=True)
    number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    title: Mapped[str] = mapped_column(String(255), default="")
    airdate: Mapped[str | None] = mapped_column(String(10), nullable=True)
    runtime: Mapped[int | None] = mapped_column(Integer, nullable=True)

    show: Mapped[Show] = relationship(back_populates="episodes")


class User(Base):
    """Account row; credentials are produced and checked outside this service."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(120), unique=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class UserShowLink(Base):
    """Library membership: the user has added the show."""

    __tablename__ = "user_shows"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    show_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("shows.id"), primary_key=True, index=True
    )
    added_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class WatchMark(Base):
    """Per-user watched state; a null timestamp reads as unwatched."""

    __tablename__ = "watch_marks"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    episode_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("episodes.id"), primary_key=True, index=True
    )
    watched_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
