from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional


def success(data: Any = None, message: Optional[str] = None) -> dict:
    """Enveloppe de réponse commune : {status: "success", data, message?}."""
    body = {"status": "success"}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def parse_id_list(raw: Optional[str]) -> List[str]:
    """
    "12, 7,12" -> ["12", "7", "12"]
    Les doublons et l'ordre sont laissés tels quels, la clé de cache s'en charge.
    """
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def to_decimal(value: Any) -> Optional[Decimal]:
    """Copie un montant Tookan sans passer par float (None si absent ou illisible)."""
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
