from decimal import Decimal
from typing import Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class EdiOrderCreate(BaseModel):
    """
    Commande EDI entrante. Les champs obligatoires sont vérifiés par le flux
    (ils dépendent de la variante), pas ici.
    Un éventuel `merchant_id` dans le corps est ignoré : le marchand vient du token.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    order_reference:       Optional[str] = None
    pickup_address:        Optional[str] = None
    delivery_address:      Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("delivery_address", "dropoff_address"),
    )
    pickup_name:           Optional[str] = None
    pickup_phone:          Optional[str] = None
    contact_name:          Optional[str] = None
    contact_phone:         Optional[str] = None
    contact_email:         Optional[str] = None
    delivery_instructions: Optional[str] = None
    pickup_datetime:       Optional[str] = None   # "YYYY-MM-DD HH:mm:ss" (format compte Tookan)
    delivery_datetime:     Optional[str] = None
    cod_amount:            Optional[Decimal] = Field(default=None, ge=0)


class OrderCreateResult(BaseModel):
    """Résultat normalisé de create_task : succès ou refus métier (pas une exception)."""
    success:              bool
    job_id:               Optional[str] = None
    tracking_link:        Optional[str] = None
    pickup_tracking_link: Optional[str] = None
    message:              str


class OrderCreated(BaseModel):
    job_id:               str
    tracking_link:        Optional[str] = None
    pickup_tracking_link: Optional[str] = None
    message:              str


class TrackingOrderStatus(BaseModel):
    status:        str
    status_code:   Optional[int] = None
    job_id:        str
    tracking_link: Optional[str] = None


class FleetOrderStatus(BaseModel):
    status:                str
    fleet_id:              Optional[str] = None
    fleet_name:            Optional[str] = None
    job_status:            Optional[int] = None
    job_id:                str
    job_delivery_datetime: Optional[str] = None
    job_type:              Optional[int] = None
