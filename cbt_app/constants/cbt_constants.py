"""Test-taking constants shared across the core and server layers."""

DEFAULT_TIME_LIMIT_MINUTES: int = 15
MIN_OPTIONS_PER_QUESTION: int = 2
MAX_OPTIONS_PER_QUESTION: int = 6
EXCELLENT_THRESHOLD_PERCENT: int = 80
PASSING_THRESHOLD_PERCENT: int = 50
