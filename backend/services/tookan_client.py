"""
Client Tookan v2 : seul point de contact avec l'API du prestataire logistique.
Aucune logique métier ici, uniquement la mise en forme des requêtes et la
normalisation des réponses.

Politique d'erreurs :
  - réseau, timeout, HTTP non-2xx, corps non JSON → ProviderUnavailable
  - code 101 (clé API invalide)                   → ProviderAuthError
  - refus métier bien formé                        → ProviderRejected
    (sauf create_order qui renvoie success=False)
Docs : https://tookanapi.docs.apiary.io
"""
import logging
from decimal import Decimal
from typing import List, Optional

import httpx

from config import settings
from core.exceptions import NotFound, ProviderAuthError, ProviderRejected, ProviderUnavailable
from core.utils import to_decimal
from models.common import WalletEntityType
from models.order import EdiOrderCreate, OrderCreateResult
from models.wallet import TOOKAN_TRANSACTION_TYPE, TransactionType, WalletBatch, WalletEntity

logger = logging.getLogger(__name__)

TOOKAN_OK            = 200
TOOKAN_INVALID_KEY   = 101
TOOKAN_NOT_FOUND     = 404
WALLET_TYPE_WALLET   = 1     # 1 = wallet, 2 = crédits


def _code(data: dict) -> Optional[int]:
    try:
        return int(data.get("status"))
    except (TypeError, ValueError):
        return None


def _as_id(value: str):
    """Tookan attend des ids numériques quand c'est possible."""
    return int(value) if str(value).isdigit() else value


class TookanClient:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.tookanapp.com/v2",
        timeout: float = 15.0,
        timezone_offset: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.timezone_offset = timezone_offset
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "TookanClient":
        return cls(
            api_key=settings.TOOKAN_API_KEY,
            base_url=settings.TOOKAN_BASE_URL,
            timeout=settings.TOOKAN_TIMEOUT_SECONDS,
            timezone_offset=settings.TOOKAN_TIMEZONE,
        )

    async def _post(self, path: str, payload: dict) -> dict:
        if not self.api_key:
            raise ProviderUnavailable("TOOKAN_API_KEY non configurée")

        logger.debug(f"Tookan POST {path} : {payload}")
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                resp = await client.post(path, json={"api_key": self.api_key, **payload})
        except httpx.HTTPError as exc:
            raise ProviderUnavailable(f"{path} : erreur réseau {exc!r}") from exc

        if resp.is_error:
            raise ProviderUnavailable(f"{path} : HTTP {resp.status_code} {resp.text[:200]}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderUnavailable(f"{path} : réponse non JSON {resp.text[:200]}") from exc
        if not isinstance(data, dict):
            raise ProviderUnavailable(f"{path} : réponse inattendue {data!r}")

        if _code(data) == TOOKAN_INVALID_KEY:
            raise ProviderAuthError(f"{path} : clé API refusée ({data.get('message')})")
        return data

    # ── Commandes ─────────────────────────────────────────────────────────────

    async def create_order(self, order: EdiOrderCreate, merchant_id: str) -> OrderCreateResult:
        has_delivery = bool(order.delivery_address)
        payload = {
            "order_id":              order.order_reference,
            "job_description":       order.delivery_instructions,
            "job_pickup_address":    order.pickup_address,
            "job_pickup_name":       order.pickup_name,
            "job_pickup_phone":      order.pickup_phone,
            "job_pickup_datetime":   order.pickup_datetime,
            "has_pickup":            1,
            "has_delivery":          1 if has_delivery else 0,
            "layout_type":           0,
            "auto_assignment":       0,
            "meta_data": [
                {"label": "Merchant_ID", "data": merchant_id},
                {"label": "Source",      "data": "EDI"},
            ],
        }
        if has_delivery:
            payload.update({
                "customer_address":      order.delivery_address,
                "customer_username":     order.contact_name,
                "customer_phone":        order.contact_phone,
                "customer_email":        order.contact_email,
                "job_delivery_datetime": order.delivery_datetime,
            })
        if order.cod_amount:
            payload["cod"] = 1
            payload["cod_amount"] = float(order.cod_amount)
        if self.timezone_offset is not None:
            payload["timezone"] = self.timezone_offset

        data = await self._post("create_task", payload)
        if _code(data) != TOOKAN_OK:
            logger.warning(f"create_task refusé pour {order.order_reference} : {data.get('message')}")
            return OrderCreateResult(
                success=False,
                message=data.get("message") or "Création de la commande refusée par Tookan",
            )

        job = data.get("data") or {}
        return OrderCreateResult(
            success=True,
            job_id=str(job.get("job_id")) if job.get("job_id") is not None else None,
            tracking_link=job.get("tracking_link"),
            pickup_tracking_link=job.get("pickup_tracking_link"),
            message="Order created successfully",
        )

    async def get_order_status(self, reference: str, by_job_id: bool = False) -> Optional[dict]:
        """Retourne le job Tookan brut, ou None s'il n'existe pas."""
        if by_job_id:
            path = "get_job_details"
            payload = {"job_ids": [_as_id(reference)], "include_task_history": 0}
        else:
            path = "get_job_details_by_order_id"
            payload = {"order_ids": [reference], "include_task_history": 0}

        data = await self._post(path, payload)
        jobs = data.get("data")
        if _code(data) != TOOKAN_OK or not isinstance(jobs, list) or not jobs:
            logger.info(f"Job introuvable chez Tookan : {reference} (status={data.get('status')})")
            return None
        return jobs[0]

    # ── Wallets (lecture) ─────────────────────────────────────────────────────

    async def fetch_driver_wallet(self, driver_id: str) -> WalletEntity:
        data = await self._post("get_fleet_wallet", {"fleet_id": _as_id(driver_id)})
        code = _code(data)
        if code == TOOKAN_NOT_FOUND:
            raise NotFound("Wallet livreur")
        if code != TOOKAN_OK:
            raise ProviderRejected(data.get("message") or "Lecture du wallet livreur refusée", details=data)

        record = data.get("data")
        if isinstance(record, list):
            record = record[0] if record else None
        if not isinstance(record, dict):
            raise ProviderUnavailable(f"get_fleet_wallet : données absentes pour {driver_id}")
        return self._to_entity(WalletEntityType.DRIVER, driver_id, record)

    async def fetch_vendor_wallets(
        self,
        entity_type: WalletEntityType,
        vendor_ids: List[str],
        offset: int = 0,
        limit: int = 50,
    ) -> WalletBatch:
        if entity_type == WalletEntityType.DRIVER:
            raise ValueError("fetch_vendor_wallets ne concerne que les clients/marchands")

        payload = {"is_pagination": 1, "off_set": offset, "limit": limit}
        if vendor_ids:
            payload["vendor_ids"] = [_as_id(v) for v in vendor_ids]
        data = await self._post("fetch_customers_wallet", payload)
        if _code(data) != TOOKAN_OK:
            raise ProviderRejected(data.get("message") or "Lecture des wallets refusée", details=data)

        records = data.get("data") or []
        if not isinstance(records, list):
            raise ProviderUnavailable(f"fetch_customers_wallet : liste attendue, reçu {type(records).__name__}")

        wanted = set(vendor_ids)
        wallets = []
        for record in records:
            vendor_id = str(record.get("vendor_id", ""))
            if wanted and vendor_id not in wanted:
                continue
            wallets.append(self._to_entity(entity_type, vendor_id, record))
        return WalletBatch(
            entity_type=entity_type,
            vendor_ids=sorted(wanted),
            offset=offset,
            limit=limit,
            wallets=wallets,
        )

    @staticmethod
    def _to_entity(entity_type: WalletEntityType, entity_id: str, record: dict) -> WalletEntity:
        balance = to_decimal(record.get("wallet_balance", record.get("balance")))
        if balance is None:
            raise ProviderUnavailable(f"wallet {entity_type.value}:{entity_id} sans solde : {record!r}")
        return WalletEntity(
            entity_type=entity_type,
            entity_id=str(entity_id),
            balance=balance,
            pending=to_decimal(record.get("pending_balance", record.get("pending"))),
            name=record.get("customer_name") or record.get("fleet_name") or record.get("name"),
            currency=record.get("currency"),
        )

    # ── Wallet livreur (écriture) ─────────────────────────────────────────────
    # Pas d'équivalent client/marchand : ces wallets sont en lecture seule ici.

    async def adjust_driver_wallet(
        self,
        driver_id: str,
        amount: Decimal,
        transaction_type: TransactionType,
        description: str,
    ) -> dict:
        signed = -abs(amount) if transaction_type == TransactionType.DEBIT else abs(amount)
        data = await self._post("fleet/wallet/create_transaction", {
            "fleet_id":         _as_id(driver_id),
            "amount":           float(signed),
            "description":      description,
            "transaction_type": TOOKAN_TRANSACTION_TYPE[transaction_type],
            "wallet_type":      WALLET_TYPE_WALLET,
        })
        if _code(data) != TOOKAN_OK:
            raise ProviderRejected(data.get("message") or "Transaction wallet refusée", details=data)
        logger.info(f"Wallet livreur {driver_id} : {transaction_type.value} {abs(amount)}")
        return data.get("data") or {}
