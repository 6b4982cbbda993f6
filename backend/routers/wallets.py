"""
Router wallets : soldes livreurs / clients / marchands lus chez Tookan (via cache),
transactions sur le wallet livreur uniquement.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from core.dependencies import get_current_user, get_tookan_client, get_wallet_cache, require_admin
from core.exceptions import ValidationError
from core.utils import parse_id_list, success
from models.common import WalletEntityType
from models.wallet import DriverWalletTransaction
from services import wallet_service
from services.tookan_client import TookanClient
from services.wallet_cache import WalletCache

router = APIRouter()


@router.get("/drivers/{driver_id}", summary="Solde wallet livreur")
async def driver_wallet(
    driver_id: str,
    fresh: bool = False,
    _user: dict = Depends(get_current_user),
    client: TookanClient = Depends(get_tookan_client),
    cache: WalletCache = Depends(get_wallet_cache),
):
    data = await wallet_service.get_driver_wallet(client, cache, driver_id, fresh=fresh)
    return success(data)


@router.post("/drivers/{driver_id}/transactions", summary="Créditer / débiter un wallet livreur")
async def driver_wallet_transaction(
    request: Request,
    driver_id: str,
    body: DriverWalletTransaction,
    admin: dict = Depends(require_admin),
    client: TookanClient = Depends(get_tookan_client),
    cache: WalletCache = Depends(get_wallet_cache),
):
    result = await wallet_service.adjust_driver_wallet(
        client, cache, driver_id, body,
        performed_by=admin["user_id"],
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return success(result, message=f"Wallet livreur {driver_id} : {body.transaction_type.value} enregistré")


async def _vendor_wallets(
    entity_type: WalletEntityType,
    vendor_ids: Optional[str],
    offset: int,
    limit: int,
    fresh: bool,
    client: TookanClient,
    cache: WalletCache,
) -> dict:
    ids = parse_id_list(vendor_ids)
    if not ids:
        raise ValidationError("Paramètre vendor_ids requis")
    data = await wallet_service.get_vendor_wallets(
        client, cache, entity_type, ids, offset=offset, limit=limit, fresh=fresh,
    )
    return success(data)


@router.get("/customers", summary="Wallets clients (lecture seule)")
async def customer_wallets(
    vendor_ids: Optional[str] = None,
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=1000),
    fresh: bool = False,
    _user: dict = Depends(get_current_user),
    client: TookanClient = Depends(get_tookan_client),
    cache: WalletCache = Depends(get_wallet_cache),
):
    return await _vendor_wallets(WalletEntityType.CUSTOMER, vendor_ids, offset, limit, fresh, client, cache)


@router.get("/merchants", summary="Wallets marchands (lecture seule)")
async def merchant_wallets(
    vendor_ids: Optional[str] = None,
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=1000),
    fresh: bool = False,
    _user: dict = Depends(get_current_user),
    client: TookanClient = Depends(get_tookan_client),
    cache: WalletCache = Depends(get_wallet_cache),
):
    return await _vendor_wallets(WalletEntityType.MERCHANT, vendor_ids, offset, limit, fresh, client, cache)
