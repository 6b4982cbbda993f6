"""
Service commandes EDI : création de job Tookan et suivi de statut.

Création : validation locale → marchand pris du token → garde anti-doublon en vol
→ create_task → réponse externe stable. Aucune copie locale référence → job_id,
Tookan reste la seule source (recherche par order_id ou job_id).
Statut : toujours lu en direct, jamais mis en cache.
"""
import logging
from typing import Callable, Dict, Optional, Set, Tuple, Union

from core.exceptions import ConflictError, NotFound, ProviderRejected, ProviderUnavailable, ValidationError
from models.common import OrderVariant, StatusShape, job_status_label
from models.order import EdiOrderCreate, FleetOrderStatus, OrderCreated, TrackingOrderStatus
from services.tookan_client import TookanClient

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: Dict[OrderVariant, Tuple[str, ...]] = {
    OrderVariant.SINGLE_LEG: ("pickup_address", "order_reference"),
    OrderVariant.TWO_SIDED:  ("pickup_address", "delivery_address", "order_reference"),
}

# (merchant_id, order_reference) en attente de réponse Tookan
_pending_submissions: Set[Tuple[str, str]] = set()


def validate_order(order: EdiOrderCreate, variant: OrderVariant) -> None:
    missing = [
        field for field in REQUIRED_FIELDS[variant]
        if not (getattr(order, field) or "").strip()
    ]
    if missing:
        raise ValidationError(f"Champs requis manquants : {', '.join(missing)}")


async def submit_order(
    client: TookanClient,
    order: EdiOrderCreate,
    merchant_id: str,
    variant: OrderVariant = OrderVariant.SINGLE_LEG,
) -> OrderCreated:
    validate_order(order, variant)

    pending_key = (str(merchant_id), order.order_reference.strip())
    if pending_key in _pending_submissions:
        raise ConflictError(f"La commande {order.order_reference} est déjà en cours de création")

    _pending_submissions.add(pending_key)
    try:
        result = await client.create_order(order, str(merchant_id))
    finally:
        _pending_submissions.discard(pending_key)

    if not result.success:
        raise ProviderRejected(result.message)
    if not result.job_id:
        raise ProviderUnavailable(f"create_task sans job_id pour {order.order_reference}")

    logger.info(
        f"Commande EDI créée : marchand={merchant_id} ref={order.order_reference} "
        f"job={result.job_id} variante={variant.value}"
    )
    return OrderCreated(
        job_id=result.job_id,
        tracking_link=result.tracking_link,
        pickup_tracking_link=result.pickup_tracking_link,
        message=result.message,
    )


# ── Statut ────────────────────────────────────────────────────────────────────

def _int_or_none(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _str_or_none(value) -> Optional[str]:
    return None if value in (None, "") else str(value)


def to_tracking_status(job: dict, reference: str) -> TrackingOrderStatus:
    return TrackingOrderStatus(
        status=job_status_label(job.get("job_status")),
        status_code=_int_or_none(job.get("job_status")),
        job_id=str(job.get("job_id") or reference),
        tracking_link=job.get("job_pickup_tracking_link") or job.get("tracking_link"),
    )


def to_fleet_status(job: dict, reference: str) -> FleetOrderStatus:
    return FleetOrderStatus(
        status=job_status_label(job.get("job_status")),
        fleet_id=_str_or_none(job.get("fleet_id")),
        fleet_name=job.get("fleet_name") or None,
        job_status=_int_or_none(job.get("job_status")),
        job_id=str(job.get("job_id") or reference),
        job_delivery_datetime=job.get("job_delivery_datetime") or None,
        job_type=_int_or_none(job.get("job_type")),
    )


def job_merchant(job: dict) -> Optional[str]:
    """
    Marchand d'un job créé via EDI (champs Source / Merchant_ID posés à la création),
    None pour un job créé hors EDI.
    """
    labels = {}
    for key in ("custom_field", "meta_data"):
        fields = job.get(key)
        if isinstance(fields, list):
            labels.update({f.get("label"): f.get("data") for f in fields if isinstance(f, dict)})
    if labels.get("Source") != "EDI" or labels.get("Merchant_ID") in (None, ""):
        return None
    return str(labels["Merchant_ID"])


STATUS_SHAPES: Dict[StatusShape, Callable[[dict, str], Union[TrackingOrderStatus, FleetOrderStatus]]] = {
    StatusShape.TRACKING: to_tracking_status,
    StatusShape.FLEET:    to_fleet_status,
}


async def get_order_status(
    client: TookanClient,
    reference: str,
    by_job_id: bool = False,
    shape: StatusShape = StatusShape.TRACKING,
    merchant_id: Optional[str] = None,
) -> Union[TrackingOrderStatus, FleetOrderStatus]:
    reference = (reference or "").strip()
    if not reference:
        raise ValidationError("Référence de commande manquante")
    if by_job_id and not reference.isdigit():
        raise ValidationError("job_id doit être numérique")

    job = await client.get_order_status(reference, by_job_id=by_job_id)
    if job is None:
        raise NotFound("Commande")

    owner = job_merchant(job)
    if merchant_id is not None and owner is not None and owner != str(merchant_id):
        # même réponse qu'une référence inconnue
        logger.info(f"Statut refusé : job {job.get('job_id')} du marchand {owner} demandé par {merchant_id}")
        raise NotFound("Commande")
    return STATUS_SHAPES[shape](job, reference)
