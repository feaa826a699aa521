from __future__ import annotations

from services.api.app.config import Settings
from services.api.app.errors import ConfigError
from services.api.app.services.availability_base import AvailabilitySource
from services.api.app.services.availability_mock import MockAvailabilitySource


def get_availability_source(settings: Settings) -> AvailabilitySource:
    source = settings.availability_source

    if source == "mock":
        return MockAvailabilitySource()

    if source == "database":
        from services.api.app.services.availability_db import DatabaseAvailabilitySource

        return DatabaseAvailabilitySource()

    raise ConfigError(f"Unknown SHALEAN_AVAILABILITY_SOURCE={source!r}. Expected mock or database.")
