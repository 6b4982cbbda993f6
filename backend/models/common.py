from enum import Enum


class UserRole(str, Enum):
    USER       = "user"
    ADMIN      = "admin"
    SUPERADMIN = "superadmin"


class WalletEntityType(str, Enum):
    DRIVER   = "driver"     # fleet Tookan
    CUSTOMER = "customer"   # vendor Tookan
    MERCHANT = "merchant"   # vendor Tookan côté marchand


class OrderVariant(str, Enum):
    SINGLE_LEG = "single_leg"   # v1 : ramassage seul, livraison optionnelle
    TWO_SIDED  = "two_sided"    # v2 : ramassage + livraison obligatoires


class StatusShape(str, Enum):
    TRACKING = "tracking"   # v1 : status, status_code, job_id, tracking_link
    FLEET    = "fleet"      # v2 : détail livreur / job


# Codes job_status Tookan → vocabulaire externe stable
TOOKAN_JOB_STATUS = {
    0:  "Assigned",
    1:  "Started",
    2:  "Successful",
    3:  "Failed",
    4:  "InProgress/Arrived",
    6:  "Unassigned",
    7:  "Accepted/Acknowledged",
    8:  "Decline",
    9:  "Cancel",
    10: "Deleted",
}


def job_status_label(code) -> str:
    try:
        return TOOKAN_JOB_STATUS.get(int(code), "Unknown")
    except (TypeError, ValueError):
        return "Unknown"
