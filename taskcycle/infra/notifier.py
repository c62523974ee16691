from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Records materialization notices; delivery to users happens elsewhere."""

    def notify(self, owner_id: str, instance_ref: str, definition_id: str | None) -> None:
        logger.info(
            "Recurring task %s created task %s for user %s",
            definition_id,
            instance_ref,
            owner_id,
        )
