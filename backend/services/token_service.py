"""
Registre des tokens API partenaires (EDI), stockés hashés dans MongoDB.
"""
import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from core.exceptions import NotFound
from core.security import API_TOKEN_PREFIX, generate_api_token, hash_api_token
from database import db

logger = logging.getLogger(__name__)

PUBLIC_FIELDS = {"_id": 0, "token_id": 1, "name": 1, "prefix": 1, "created_at": 1, "last_used_at": 1, "is_active": 1}

# références fortes vers les mises à jour last_used_at en arrière-plan
_background: set = set()


def _token_id() -> str:
    return f"tok_{uuid.uuid4().hex[:12]}"


def _public(doc: dict) -> dict:
    return {
        "id":           doc["token_id"],
        "name":         doc["name"],
        "prefix":       doc["prefix"],
        "created_at":   doc["created_at"],
        "last_used_at": doc.get("last_used_at"),
        "is_active":    doc.get("is_active", False),
    }


async def create_token(merchant_id: str, name: str, created_by: Optional[str] = None) -> dict:
    """Crée un token. Le token brut n'est renvoyé qu'ici, jamais relisible ensuite."""
    raw, token_hash, prefix = generate_api_token()
    now = datetime.now(timezone.utc)
    doc = {
        "token_id":     _token_id(),
        "merchant_id":  str(merchant_id),
        "name":         name,
        "token_hash":   token_hash,
        "prefix":       prefix,
        "is_active":    True,
        "created_by":   created_by,
        "created_at":   now,
        "revoked_at":   None,
        "last_used_at": None,
    }
    await db.api_tokens.insert_one(doc)
    logger.info(f"Token EDI créé : {doc['token_id']} ({prefix}…) pour marchand={merchant_id}")
    return {
        "id":         doc["token_id"],
        "name":       name,
        "token":      raw,
        "prefix":     prefix,
        "created_at": now,
    }


async def revoke_token(token_id: str) -> dict:
    """Idempotent : révoquer un token déjà révoqué ne change rien."""
    doc = await db.api_tokens.find_one({"token_id": token_id}, PUBLIC_FIELDS)
    if not doc:
        raise NotFound("Token")
    if doc.get("is_active"):
        await db.api_tokens.update_one(
            {"token_id": token_id, "is_active": True},
            {"$set": {"is_active": False, "revoked_at": datetime.now(timezone.utc)}},
        )
        logger.info(f"Token EDI révoqué : {token_id}")
        doc["is_active"] = False
    return _public(doc)


async def list_tokens(merchant_id: str) -> List[dict]:
    cursor = db.api_tokens.find({"merchant_id": str(merchant_id)}, PUBLIC_FIELDS).sort("created_at", -1)
    return [_public(doc) async for doc in cursor]


async def validate_token(raw: str) -> Optional[dict]:
    """Retourne {merchant_id, name, token_id} pour un token actif, None sinon."""
    if not raw or not raw.startswith(API_TOKEN_PREFIX):
        return None
    doc = await db.api_tokens.find_one(
        {"token_hash": hash_api_token(raw), "is_active": True},
        {"_id": 0, "token_id": 1, "merchant_id": 1, "name": 1},
    )
    if not doc:
        return None

    task = asyncio.create_task(_touch(doc["token_id"]))
    _background.add(task)
    task.add_done_callback(_background.discard)
    return doc


async def _touch(token_id: str) -> None:
    try:
        await db.api_tokens.update_one(
            {"token_id": token_id},
            {"$set": {"last_used_at": datetime.now(timezone.utc)}},
        )
    except Exception as exc:
        logger.warning(f"Mise à jour last_used_at impossible pour {token_id} : {exc}")
