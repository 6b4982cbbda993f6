import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import IndexModel
from config import settings

logger = logging.getLogger(__name__)

# Collections locales : registre des tokens EDI et journal d'audit.
# Commandes et soldes restent chez Tookan, rien n'est recopié ici.
INDEXES = {
    "api_tokens": [
        IndexModel([("token_id", 1)], unique=True),
        IndexModel([("token_hash", 1)], unique=True),
        IndexModel([("merchant_id", 1)]),
        IndexModel([("created_at", -1)]),
    ],
    "audit_logs": [
        IndexModel([("entity_type", 1), ("entity_id", 1)]),
        IndexModel([("created_at", -1)]),
    ],
}

_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


class _LazyDatabase:
    """
    `from database import db` fonctionne dès l'import des services ;
    la résolution vers la base Motor se fait au premier accès, après connect_db().
    """
    def _resolve(self) -> AsyncIOMotorDatabase:
        if _database is None:
            raise RuntimeError("MongoDB non connecté : appeler connect_db() au démarrage")
        return _database

    def __getattr__(self, name):
        return getattr(self._resolve(), name)

    def __getitem__(self, name):
        return self._resolve()[name]


db = _LazyDatabase()


async def connect_db() -> None:
    global _client, _database
    _client = AsyncIOMotorClient(
        settings.MONGO_URL,
        serverSelectionTimeoutMS=5000,
        connectTimeoutMS=10000,
    )
    _database = _client[settings.DB_NAME]
    logger.info(f"MongoDB connecté : {settings.DB_NAME}")
    for name, indexes in INDEXES.items():
        try:
            await _database[name].create_indexes(indexes)
            logger.info(f"Index {name} en place")
        except Exception as e:
            # l'API démarre quand même, les accès Mongo échoueront si la base reste absente
            logger.warning(f"Index {name} non créés : {e}")


async def close_db() -> None:
    global _client, _database
    if _client:
        _client.close()
        _client = None
        _database = None
        logger.info("Connexion MongoDB fermée")
