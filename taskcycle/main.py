"""Single materialization pass, meant to be started by an external scheduler (cron)."""
from __future__ import annotations

import logging
import sys

from taskcycle.config import SETTINGS
from taskcycle.infra.db import init_db
from taskcycle.infra.logging import setup_logging
from taskcycle.infra.notifier import LoggingNotifier
from taskcycle.infra.repository import SqlDefinitionStore, SqlInstanceStore
from taskcycle.services.lifecycle import utcnow
from taskcycle.services.materializer import BatchMaterializer

logger = logging.getLogger(__name__)


def main() -> int:
    log_file = setup_logging(SETTINGS)
    logger.debug("Logging to %s", log_file)
    try:
        init_db()
    except Exception as exc:  # noqa: BLE001
        logger.error("Database is not reachable: %s", exc)
        return 1

    definitions = SqlDefinitionStore()
    materializer = BatchMaterializer(definitions, SqlInstanceStore(), LoggingNotifier())

    now = utcnow()
    result = materializer.process_due(now)

    for item in materializer.upcoming(definitions.list_active(), now, SETTINGS.upcoming_days):
        logger.debug("Upcoming %s: %s", item.occurs_on, item.definition.title)

    return 0 if result.errors == 0 else 2


if __name__ == "__main__":
    sys.exit(main())
