"""Standalone schema bootstrap: create tables and seed the hall catalog."""

from __future__ import annotations

from backend.repository.data_repository import DataRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


def startup(settings: Settings | None = None) -> int:
    """Initialize schema and seed default halls once; return halls seeded."""
    settings = settings or get_settings()
    repository = DataRepository(settings)
    repository.initialize_database()
    seeded = repository.seed_default_halls() if settings.seed_default_halls else 0
    logger.info("System startup completed | halls_seeded=%s", seeded)
    return seeded


if __name__ == "__main__":
    startup()
