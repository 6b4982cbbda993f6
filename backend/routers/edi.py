"""
Router EDI : création de commandes et suivi de statut pour les partenaires.
Toutes les routes exigent un token partenaire ; le marchand vient du token, jamais du corps.

  v1 : ramassage seul (livraison optionnelle), statut orienté lien de suivi
  v2 : ramassage + livraison obligatoires, statut orienté livreur / job
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request

from config import settings
from core.dependencies import get_current_merchant, get_tookan_client
from core.rate_limit import limiter
from core.utils import success
from models.common import OrderVariant, StatusShape
from models.order import EdiOrderCreate
from services import order_service
from services.tookan_client import TookanClient

router = APIRouter(dependencies=[Depends(get_current_merchant)])


def _by_job_id(lookup_type: Optional[str]) -> bool:
    return lookup_type == "job_id"


@router.post("/orders/create", summary="Créer une commande (ramassage seul)")
@limiter.limit(settings.EDI_RATE_LIMIT)
async def create_order(
    request: Request,
    body: EdiOrderCreate,
    merchant: dict = Depends(get_current_merchant),
    client: TookanClient = Depends(get_tookan_client),
):
    created = await order_service.submit_order(client, body, merchant["id"], OrderVariant.SINGLE_LEG)
    return success(created.model_dump())


@router.post("/v2/orders/create", summary="Créer une commande (ramassage + livraison)")
@limiter.limit(settings.EDI_RATE_LIMIT)
async def create_order_v2(
    request: Request,
    body: EdiOrderCreate,
    merchant: dict = Depends(get_current_merchant),
    client: TookanClient = Depends(get_tookan_client),
):
    created = await order_service.submit_order(client, body, merchant["id"], OrderVariant.TWO_SIDED)
    return success(created.model_dump())


@router.get("/orders/status/{reference}", summary="Statut d'une commande (lien de suivi)")
@limiter.limit(settings.EDI_RATE_LIMIT)
async def order_status(
    request: Request,
    reference: str,
    type: Optional[str] = None,
    merchant: dict = Depends(get_current_merchant),
    client: TookanClient = Depends(get_tookan_client),
):
    status = await order_service.get_order_status(
        client, reference, _by_job_id(type), StatusShape.TRACKING, merchant_id=merchant["id"],
    )
    return success(status.model_dump())


@router.get("/v2/orders/status/{reference}", summary="Statut d'une commande (détail livreur)")
@limiter.limit(settings.EDI_RATE_LIMIT)
async def order_status_v2(
    request: Request,
    reference: str,
    type: Optional[str] = None,
    merchant: dict = Depends(get_current_merchant),
    client: TookanClient = Depends(get_tookan_client),
):
    status = await order_service.get_order_status(
        client, reference, _by_job_id(type), StatusShape.FLEET, merchant_id=merchant["id"],
    )
    return success(status.model_dump())
