"""
Service wallets : lectures via le cache, écriture livreur via Tookan puis invalidation.
Aucun solde n'est calculé ni stocké ici, Tookan reste la source de vérité.
"""
import logging
from typing import List, Optional

from config import settings
from core.exceptions import ProviderAuthError
from models.common import WalletEntityType
from models.wallet import DriverWalletTransaction, TransactionType
from services import audit_service
from services.tookan_client import TookanClient
from services.wallet_cache import CachedResult, WalletCache, driver_key, vendor_batch_key

logger = logging.getLogger(__name__)

# Instances partagées par toutes les requêtes du process
tookan_client = TookanClient.from_settings()
wallet_cache = WalletCache(ttl_seconds=settings.WALLET_CACHE_TTL_SECONDS)


def _present(result: CachedResult) -> dict:
    data = result.value.model_dump(mode="json")
    data["_metadata"] = result.metadata().model_dump(mode="json")
    return data


async def get_driver_wallet(
    client: TookanClient,
    cache: WalletCache,
    driver_id: str,
    fresh: bool = False,
) -> dict:
    key = driver_key(driver_id)

    async def fetch():
        return await client.fetch_driver_wallet(driver_id)

    result = await (cache.bypass(key, fetch) if fresh else cache.get(key, fetch))
    return _present(result)


async def get_vendor_wallets(
    client: TookanClient,
    cache: WalletCache,
    entity_type: WalletEntityType,
    vendor_ids: List[str],
    offset: int = 0,
    limit: int = 50,
    fresh: bool = False,
) -> dict:
    key = vendor_batch_key(entity_type, vendor_ids, offset, limit)
    ids = sorted(set(vendor_ids))

    async def fetch():
        return await client.fetch_vendor_wallets(entity_type, ids, offset, limit)

    result = await (cache.bypass(key, fetch) if fresh else cache.get(key, fetch))
    return _present(result)


async def adjust_driver_wallet(
    client: TookanClient,
    cache: WalletCache,
    driver_id: str,
    body: DriverWalletTransaction,
    performed_by: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> dict:
    try:
        result = await client.adjust_driver_wallet(
            driver_id=driver_id,
            amount=body.amount,
            transaction_type=body.transaction_type,
            description=body.description,
        )
    except ProviderAuthError:
        # clé refusée : plus aucune entrée ne peut être servie
        cache.clear()
        raise
    finally:
        # y compris sur timeout : l'écriture a pu passer côté Tookan
        cache.invalidate(driver_key(driver_id))

    signed = -body.amount if body.transaction_type == TransactionType.DEBIT else body.amount
    await audit_service.record(
        action=f"driver_wallet_{body.transaction_type.value}",
        entity_type="driver_wallet",
        entity_id=driver_id,
        user_id=performed_by,
        new_value={
            "fleet_id":         driver_id,
            "amount":           str(signed),
            "description":      body.description,
            "transaction_type": body.transaction_type.value,
        },
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return result
