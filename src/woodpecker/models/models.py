"""Database models for puzzle training."""
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from woodpecker.models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """User model with training counters."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    external_id = Column(String, unique=True, nullable=False)  # id from the identity provider
    name = Column(String, nullable=True)
    show_on_leaderboard = Column(Boolean, default=True, nullable=False)

    total_correct_attempts = Column(Integer, default=0, nullable=False)
    weekly_correct_attempts = Column(Integer, default=0, nullable=False)
    weekly_correct_start_date = Column(DateTime(timezone=True), nullable=True)

    total_xp = Column(Integer, default=0, nullable=False)
    current_level = Column(Integer, default=1, nullable=False)
    weekly_xp = Column(Integer, default=0, nullable=False)
    weekly_xp_start_date = Column(DateTime(timezone=True), nullable=True)

    current_streak = Column(Integer, default=0, nullable=False)
    longest_streak = Column(Integer, default=0, nullable=False)
    last_trained_date = Column(DateTime(timezone=True), nullable=True)  # midnight UTC
    streak_updated_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    puzzle_sets = relationship("PuzzleSet", back_populates="user")
    achievements = relationship("UserAchievement", back_populates="user")


class Puzzle(Base):
    """A chess puzzle from the puzzle database."""

    __tablename__ = "puzzles"

    id = Column(String, primary_key=True)
    fen = Column(String, nullable=False)
    moves = Column(String, nullable=False)  # space separated UCI moves
    rating = Column(Integer, nullable=False, index=True)

    # Relationships
    themes = relationship("PuzzleTheme", back_populates="puzzle", cascade="all, delete-orphan")

    @property
    def theme_names(self) -> list[str]:
        return [theme.theme for theme in self.themes]


class PuzzleTheme(Base):
    """Tactical theme tag on a puzzle, e.g. "fork"."""

    __tablename__ = "puzzle_themes"

    puzzle_id = Column(String, ForeignKey("puzzles.id", ondelete="CASCADE"), primary_key=True)
    theme = Column(String, primary_key=True, index=True)

    # Relationships
    puzzle = relationship("Puzzle", back_populates="themes")


class PuzzleSet(Base, TimestampMixin):
    """A user-owned collection of puzzles trained in cycles."""

    __tablename__ = "puzzle_sets"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    target_rating = Column(Integer, nullable=False)
    min_rating = Column(Integer, nullable=False)
    max_rating = Column(Integer, nullable=False)
    size = Column(Integer, nullable=False)
    target_cycles = Column(Integer, default=7, nullable=False)

    # Relationships
    user = relationship("User", back_populates="puzzle_sets")
    puzzles = relationship(
        "PuzzleInSet",
        back_populates="puzzle_set",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PuzzleInSet.position",
    )
    cycles = relationship(
        "Cycle",
        back_populates="puzzle_set",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Cycle.cycle_number",
    )


class PuzzleInSet(Base):
    """A puzzle pinned at a fixed position inside a set, with rolling statistics."""

    __tablename__ = "puzzles_in_set"
    __table_args__ = (
        UniqueConstraint("puzzle_set_id", "position", name="uq_puzzle_in_set_position"),
    )

    id = Column(Integer, primary_key=True)
    puzzle_set_id = Column(Integer, ForeignKey("puzzle_sets.id", ondelete="CASCADE"), nullable=False, index=True)
    puzzle_id = Column(String, ForeignKey("puzzles.id"), nullable=False)
    position = Column(Integer, nullable=False)
    total_attempts = Column(Integer, default=0, nullable=False)
    correct_attempts = Column(Integer, default=0, nullable=False)
    average_time = Column(Float, nullable=True)  # in milliseconds

    # Relationships
    puzzle_set = relationship("PuzzleSet", back_populates="puzzles")
    puzzle = relationship("Puzzle")
    attempts = relationship("Attempt", back_populates="puzzle_in_set", passive_deletes=True)


class Cycle(Base):
    """One full pass over a puzzle set."""

    __tablename__ = "cycles"
    __table_args__ = (
        UniqueConstraint("puzzle_set_id", "cycle_number", name="uq_cycle_number"),
    )

    id = Column(Integer, primary_key=True)
    puzzle_set_id = Column(Integer, ForeignKey("puzzle_sets.id", ondelete="CASCADE"), nullable=False, index=True)
    cycle_number = Column(Integer, nullable=False)
    total_puzzles = Column(Integer, nullable=False)
    solved_correct = Column(Integer, default=0, nullable=False)
    solved_incorrect = Column(Integer, default=0, nullable=False)
    skipped = Column(Integer, default=0, nullable=False)
    total_time = Column(Integer, default=0, nullable=False)  # in milliseconds
    started_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    puzzle_set = relationship("PuzzleSet", back_populates="cycles")
    attempts = relationship("Attempt", back_populates="cycle", passive_deletes=True)

    @property
    def attempted_count(self) -> int:
        return self.solved_correct + self.solved_incorrect + self.skipped

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None


class Attempt(Base):
    """An immutable record of one puzzle attempt within a cycle."""

    __tablename__ = "attempts"
    __table_args__ = (
        UniqueConstraint("cycle_id", "puzzle_in_set_id", name="uq_attempt_cycle_puzzle"),
    )

    id = Column(Integer, primary_key=True)
    cycle_id = Column(Integer, ForeignKey("cycles.id", ondelete="CASCADE"), nullable=False, index=True)
    puzzle_in_set_id = Column(Integer, ForeignKey("puzzles_in_set.id", ondelete="CASCADE"), nullable=False, index=True)
    time_spent = Column(Integer, nullable=False)  # in milliseconds
    is_correct = Column(Boolean, nullable=False)
    was_skipped = Column(Boolean, default=False, nullable=False)
    moves_played = Column(JSON, default=list, nullable=False)
    attempted_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False, index=True)

    # Relationships
    cycle = relationship("Cycle", back_populates="attempts")
    puzzle_in_set = relationship("PuzzleInSet", back_populates="attempts")


class Achievement(Base):
    """Static achievement catalog entry."""

    __tablename__ = "achievements"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=False)
    category = Column(String, nullable=False)
    icon = Column(String, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)


class UserAchievement(Base):
    """Write-once record of an unlocked achievement."""

    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    achievement_id = Column(String, ForeignKey("achievements.id"), nullable=False)
    unlocked_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    user = relationship("User", back_populates="achievements")
    achievement = relationship("Achievement")
