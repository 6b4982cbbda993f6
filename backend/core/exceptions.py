"""
Taxonomie des erreurs métier et traduction vers l'enveloppe HTTP
{status: "error", message}.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Erreur interne"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    """Entrée appelant invalide ou incomplète. Jamais transmise à Tookan."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Requête invalide"


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Accès refusé"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str = "Ressource"):
        super().__init__(f"{resource} introuvable")


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflit"


class ProviderRejected(AppError):
    """Réponse métier négative de Tookan : le message est renvoyé tel quel."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Requête refusée par Tookan"

    def __init__(self, message: str = None, details: dict = None):
        super().__init__(message)
        self.details = details or {}


class ProviderUnavailable(AppError):
    """
    Échec transport ou réponse inattendue de Tookan.
    `detail` reste côté serveur (logs), l'appelant ne voit que le message générique.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Service logistique indisponible, réessayez plus tard"

    def __init__(self, detail: str = ""):
        super().__init__()
        self.detail = detail


class ProviderAuthError(ProviderUnavailable):
    """Clé API Tookan refusée (code 101)."""


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "message": message})


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, ProviderUnavailable):
        logger.error(f"Tookan indisponible sur {request.method} {request.url.path} : {exc.detail}")
    elif isinstance(exc, ProviderRejected) and exc.details:
        logger.warning(f"Refus Tookan sur {request.method} {request.url.path} : {exc.details}")
    return _error(exc.status_code, exc.message)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({".".join(str(p) for p in err["loc"][1:]) for err in exc.errors() if len(err["loc"]) > 1})
    message = "Champs invalides : " + ", ".join(fields) if fields else "Corps de requête invalide"
    return _error(status.HTTP_400_BAD_REQUEST, message)


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Erreur non gérée sur {request.method} {request.url.path}")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Erreur interne")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
