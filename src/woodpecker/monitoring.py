"""Monitoring configuration for the training service."""
from prometheus_client import Counter, Histogram, start_http_server

# Training metrics
attempts_recorded = Counter(
    "woodpecker_attempts_recorded_total",
    "Total number of puzzle attempts recorded",
    ["outcome"],  # correct, incorrect, skipped
)

duplicate_attempts = Counter(
    "woodpecker_duplicate_attempts_total",
    "Total number of attempt submissions rejected as duplicates",
)

cycles_completed = Counter(
    "woodpecker_cycles_completed_total",
    "Total number of training cycles completed",
)

# Progress metrics
level_ups = Counter(
    "woodpecker_level_ups_total",
    "Total number of level transitions",
)

xp_awarded = Counter(
    "woodpecker_xp_awarded_total",
    "Total XP awarded to users",
)

achievements_unlocked = Counter(
    "woodpecker_achievements_unlocked_total",
    "Total number of achievements unlocked",
    ["achievement_id"],
)

achievement_evaluation_failures = Counter(
    "woodpecker_achievement_evaluation_failures_total",
    "Achievement evaluations that failed after the attempt was committed",
)

# Performance metrics
request_duration = Histogram(
    "woodpecker_request_duration_seconds",
    "Duration of API requests in seconds",
    ["route"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0],
)

# Database metrics
db_errors = Counter(
    "woodpecker_db_errors_total",
    "Total number of database errors",
    ["error_type"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
