"""
Journal d'audit des écritures sensibles (transactions wallet livreur).
Une écriture d'audit ratée est journalisée mais ne fait jamais échouer
l'opération auditée : elle a déjà eu lieu chez Tookan.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from database import db

logger = logging.getLogger(__name__)


async def record(
    action: str,
    entity_type: str,
    entity_id: str,
    user_id: Optional[str] = None,
    old_value: Optional[dict] = None,
    new_value: Optional[dict] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Optional[dict]:
    doc = {
        "user_id":     user_id,
        "action":      action,
        "entity_type": entity_type,
        "entity_id":   str(entity_id),
        "old_value":   old_value,
        "new_value":   new_value,
        "ip_address":  ip_address,
        "user_agent":  user_agent,
        "created_at":  datetime.now(timezone.utc),
    }
    try:
        await db.audit_logs.insert_one(dict(doc))
    except Exception as exc:
        logger.warning(f"Audit non enregistré ({action} {entity_type}:{entity_id}) : {exc}")
        return None
    return doc
