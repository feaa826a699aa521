from __future__ import annotations

import logging

from services.api.app.config import env_flag
from services.api.app.db.database import get_engine
from services.api.app.db.models import Base

logger = logging.getLogger(__name__)


def init_db() -> None:
    if not env_flag("SHALEAN_DB_AUTO_CREATE", "true"):
        logger.info("SHALEAN_DB_AUTO_CREATE disabled; expecting an up-to-date schema")
        return

    engine = get_engine()
    Base.metadata.create_all(bind=engine)
