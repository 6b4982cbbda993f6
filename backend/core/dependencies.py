from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from core.exceptions import AuthorizationError
from core.security import verify_access_token
from models.common import UserRole
from services import token_service, wallet_service
from services.tookan_client import TookanClient
from services.wallet_cache import WalletCache

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    """Utilisateur interne du dashboard, porté par un JWT (sub + role)."""
    if not credentials:
        raise AuthorizationError("Identifiants invalides ou token expiré")
    payload = verify_access_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise AuthorizationError("Identifiants invalides ou token expiré")
    return {"user_id": payload["sub"], "role": payload.get("role", UserRole.USER.value)}


def require_role(*roles: UserRole):
    """
    Dépendance qui vérifie que l'utilisateur connecté possède l'un des rôles donnés.
    Usage : Depends(require_role(UserRole.ADMIN, UserRole.SUPERADMIN))
    """
    async def _check(current_user: dict = Depends(get_current_user)) -> dict:
        if current_user.get("role") not in [r.value for r in roles]:
            raise AuthorizationError("Accès administrateur requis")
        return current_user
    return _check


require_admin = require_role(UserRole.ADMIN, UserRole.SUPERADMIN)


async def get_current_merchant(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    """
    Valide le token EDI (Bearer edi_...) et attache le marchand à la requête.
    Même réponse pour token absent, inconnu ou révoqué.
    """
    if not credentials:
        raise AuthorizationError("Token API invalide ou révoqué")
    token = await token_service.validate_token(credentials.credentials)
    if not token:
        raise AuthorizationError("Token API invalide ou révoqué")
    merchant = {"id": token["merchant_id"], "token_name": token.get("name")}
    request.state.merchant = merchant
    return merchant


def get_tookan_client() -> TookanClient:
    return wallet_service.tookan_client


def get_wallet_cache() -> WalletCache:
    return wallet_service.wallet_cache
