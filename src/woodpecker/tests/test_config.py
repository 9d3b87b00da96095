"""Tests for configuration."""
import pytest

from woodpecker.config import Settings, XpSettings, settings


def test_test_environment_uses_memory_database() -> None:
    assert settings.database.url == "sqlite://"
    assert settings.api.identity_header == "X-User-Id"


def test_xp_defaults() -> None:
    xp = XpSettings()

    assert xp.puzzle_correct == 10
    assert xp.speed_bonus == 5
    assert xp.speed_bonus_threshold_ms == 10000
    assert xp.cycle_complete == 50
    assert xp.level_base_xp == 100
    assert xp.level_exponent == 1.5


def test_xp_settings_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("XP_PUZZLE_CORRECT", "25")
    monkeypatch.setenv("XP_LEVEL_EXPONENT", "2")

    xp = XpSettings()

    assert xp.puzzle_correct == 25
    assert xp.level_exponent == 2.0


def test_cors_origins_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost:3000, https://example.com,")

    assert Settings().api.cors_origins == ["http://localhost:3000", "https://example.com"]


def test_validate_accepts_defaults() -> None:
    Settings().validate()


@pytest.mark.parametrize(
    "name, value",
    [
        ("XP_SPEED_BONUS", "-1"),
        ("XP_LEVEL_EXPONENT", "0"),
        ("XP_LEVEL_BASE", "0"),
        ("XP_RATING_BONUS_DIVISOR", "0"),
        ("API_PORT", "70000"),
        ("LEADERBOARD_RANK_LIMIT", "0"),
    ],
)
def test_validate_rejects_bad_values(monkeypatch, name, value) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError):
        Settings().validate()
