"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class HallSeed:
    name: str
    capacity: int
    location: str
    description: str


DEFAULT_HALLS: tuple[HallSeed, ...] = (
    HallSeed(
        name="Dr Abdul Kalam",
        capacity=200,
        location="Main Building, Ground Floor",
        description="Main auditorium named after Dr APJ Abdul Kalam",
    ),
    HallSeed(
        name="CV Raman",
        capacity=400,
        location="Science Block, First Floor",
        description="Large hall named after Nobel laureate CV Raman",
    ),
    HallSeed(
        name="Chaguveera",
        capacity=80,
        location="Student Center, Ground Floor",
        description="Intimate hall for smaller events and discussions",
    ),
    HallSeed(
        name="Newton Hall",
        capacity=200,
        location="Science Block, Second Floor",
        description="Medium-sized hall named after Sir Isaac Newton",
    ),
    HallSeed(
        name="R & D",
        capacity=150,
        location="R&D Block, Third Floor",
        description="Research and development hall with specialized equipment",
    ),
)


@dataclass(frozen=True)
class Settings:
    app_name: str = "Hall Reservation Engine"
    app_version: str = "1.0.0"
    log_level: str = "INFO"

    database_path: Path = Path("data/halls.db")
    database_timeout_seconds: float = 10.0

    seed_default_halls: bool = True
    default_halls: tuple[HallSeed, ...] = field(default=DEFAULT_HALLS)

    availability_max_range_days: int = 366
    notifications_default_limit: int = 50
    notifications_max_limit: int = 200
    time_format: str = "%H:%M"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process from environment variables."""
    return Settings(
        log_level=os.getenv("HALLS_LOG_LEVEL", "INFO"),
        database_path=Path(os.getenv("HALLS_DATABASE_PATH", "data/halls.db")),
        database_timeout_seconds=float(os.getenv("HALLS_DB_TIMEOUT_SECONDS", "10")),
        seed_default_halls=_env_bool("HALLS_SEED_DEFAULT_HALLS", True),
        availability_max_range_days=int(os.getenv("HALLS_MAX_RANGE_DAYS", "366")),
        notifications_default_limit=int(os.getenv("HALLS_NOTIFICATION_LIMIT", "50")),
    )
