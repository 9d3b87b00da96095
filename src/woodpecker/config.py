"""Configuration settings for the training service."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


def get_cors_origins() -> list[str]:
    """Get allowed CORS origins from environment variable."""
    return [origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin.strip()]


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = field(default_factory=lambda: os.getenv("DATABASE_URL", "sqlite:///woodpecker.db"))
    echo: bool = field(default_factory=lambda: os.getenv("DATABASE_ECHO", "false").lower() == "true")


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = field(default_factory=lambda: os.getenv("LOG_DIR", None))
    rotation: str = field(default_factory=lambda: os.getenv("LOG_ROTATION", "midnight"))
    interval: int = field(default_factory=lambda: int(os.getenv("LOG_INTERVAL", "1")))
    backup_count: int = field(default_factory=lambda: int(os.getenv("LOG_BACKUP_COUNT", "7")))


@dataclass
class ApiSettings:
    """HTTP API settings."""
    host: str = field(default_factory=lambda: os.getenv("API_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("API_PORT", "8000")))
    cors_origins: list[str] = field(default_factory=get_cors_origins)
    # Header set by the upstream identity layer with the caller's stable id
    identity_header: str = field(default_factory=lambda: os.getenv("IDENTITY_HEADER", "X-User-Id"))


@dataclass
class MonitoringSettings:
    """Prometheus metrics settings."""
    enabled: bool = field(default_factory=lambda: os.getenv("METRICS_ENABLED", "false").lower() == "true")
    port: int = field(default_factory=lambda: int(os.getenv("METRICS_PORT", "9090")))


@dataclass
class XpSettings:
    """XP award values and level curve."""
    puzzle_correct: int = field(default_factory=lambda: int(os.getenv("XP_PUZZLE_CORRECT", "10")))
    speed_bonus: int = field(default_factory=lambda: int(os.getenv("XP_SPEED_BONUS", "5")))
    speed_bonus_threshold_ms: int = field(default_factory=lambda: int(os.getenv("XP_SPEED_BONUS_THRESHOLD_MS", "10000")))
    first_attempt_bonus: int = field(default_factory=lambda: int(os.getenv("XP_FIRST_ATTEMPT_BONUS", "5")))
    improvement_bonus: int = field(default_factory=lambda: int(os.getenv("XP_IMPROVEMENT_BONUS", "10")))
    cycle_complete: int = field(default_factory=lambda: int(os.getenv("XP_CYCLE_COMPLETE", "50")))
    streak_bonus_per_day: int = field(default_factory=lambda: int(os.getenv("XP_STREAK_BONUS_PER_DAY", "2")))
    max_streak_bonus_days: int = field(default_factory=lambda: int(os.getenv("XP_MAX_STREAK_BONUS_DAYS", "10")))
    rating_bonus_base: int = field(default_factory=lambda: int(os.getenv("XP_RATING_BONUS_BASE", "1000")))
    rating_bonus_divisor: int = field(default_factory=lambda: int(os.getenv("XP_RATING_BONUS_DIVISOR", "100")))
    level_base_xp: int = field(default_factory=lambda: int(os.getenv("XP_LEVEL_BASE", "100")))
    level_exponent: float = field(default_factory=lambda: float(os.getenv("XP_LEVEL_EXPONENT", "1.5")))


@dataclass
class AchievementSettings:
    """Achievement evaluation settings."""
    leaderboard_rank_limit: int = field(default_factory=lambda: int(os.getenv("LEADERBOARD_RANK_LIMIT", "100")))


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_api_settings() -> ApiSettings:
    """Get API settings."""
    return ApiSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


def get_xp_settings() -> XpSettings:
    """Get XP settings."""
    return XpSettings()


def get_achievement_settings() -> AchievementSettings:
    """Get achievement settings."""
    return AchievementSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    api: ApiSettings = field(default_factory=get_api_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)
    xp: XpSettings = field(default_factory=get_xp_settings)
    achievements: AchievementSettings = field(default_factory=get_achievement_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if not self.database.url:
            raise ValueError("DATABASE_URL is required")

        if not 0 < self.api.port < 65536:
            raise ValueError("API_PORT must be between 1 and 65535")

        xp_values = [
            self.xp.puzzle_correct,
            self.xp.speed_bonus,
            self.xp.speed_bonus_threshold_ms,
            self.xp.first_attempt_bonus,
            self.xp.improvement_bonus,
            self.xp.cycle_complete,
            self.xp.streak_bonus_per_day,
            self.xp.max_streak_bonus_days,
            self.xp.rating_bonus_base,
        ]
        if any(value < 0 for value in xp_values):
            raise ValueError("XP values cannot be negative")

        if self.xp.rating_bonus_divisor <= 0:
            raise ValueError("XP_RATING_BONUS_DIVISOR must be positive")

        if self.xp.level_base_xp <= 0 or self.xp.level_exponent <= 0:
            raise ValueError("XP_LEVEL_BASE and XP_LEVEL_EXPONENT must be positive")

        if self.achievements.leaderboard_rank_limit < 1:
            raise ValueError("LEADERBOARD_RANK_LIMIT must be positive")


# Create global settings instance
settings = Settings()
settings.validate()
