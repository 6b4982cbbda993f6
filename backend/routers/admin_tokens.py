"""
Router admin tokens : émission, révocation et liste des tokens API partenaires.
"""
from typing import Optional

from fastapi import APIRouter, Depends

from core.dependencies import require_admin
from core.exceptions import ValidationError
from core.utils import success
from models.token import ApiTokenCreated, ApiTokenInfo, TokenCreate, TokenRevoke
from services import token_service

router = APIRouter()


@router.post("/create", summary="Générer un token API")
async def create_token(body: TokenCreate, admin: dict = Depends(require_admin)):
    created = await token_service.create_token(body.merchant_id, body.name, created_by=admin["user_id"])
    # token brut : renvoyé cette seule fois
    return success(ApiTokenCreated(**created).model_dump(mode="json"))


@router.post("/revoke", summary="Révoquer un token API")
async def revoke_token(body: TokenRevoke, _admin: dict = Depends(require_admin)):
    await token_service.revoke_token(body.token_id)
    return success(message="Token révoqué")


@router.get("/list", summary="Tokens d'un marchand")
async def list_tokens(merchant_id: Optional[str] = None, _admin: dict = Depends(require_admin)):
    if not merchant_id:
        raise ValidationError("Paramètre merchant_id requis")
    tokens = await token_service.list_tokens(merchant_id)
    return success([ApiTokenInfo(**t).model_dump(mode="json") for t in tokens])
