# src/core/audit.py
import json
import logging

logger = logging.getLogger("audit")


def audit_log(
    action: str,
    entity: str,
    entity_id: int,
    actor_id: int | None,
    metadata: dict | None = None,
):
    """One line per committed business event. Decimals and enums are rendered as strings."""
    logger.info(
        "AUDIT | %s | %s:%s | actor=%s | %s",
        action,
        entity,
        entity_id,
        actor_id,
        json.dumps(metadata or {}, default=str, sort_keys=True),
    )
