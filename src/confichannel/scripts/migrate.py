"""Apply schema and data migrations, then purge expired records."""
from __future__ import annotations

import logging

from confichannel.core.settings import settings
from confichannel.db.session import SessionLocal
from confichannel.services.bootstrap import purge_expired, run_data_migrations, run_upgrade_head

logger = logging.getLogger(__name__)


def main() -> None:
    logging.basicConfig(level=settings.log_level.upper())
    run_upgrade_head()
    with SessionLocal() as db:
        previous = run_data_migrations(db)
        result = purge_expired(db)
    logger.info(
        "Migrated from %s; purged %d channels and %d invites",
        ".".join(map(str, previous)),
        result.channels,
        result.invites,
    )


if __name__ == "__main__":
    main()
