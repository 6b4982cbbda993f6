from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

from models.common import WalletEntityType


class TransactionType(str, Enum):
    CREDIT = "credit"
    DEBIT  = "debit"


# Codes transaction_type attendus par fleet/wallet/create_transaction
TOOKAN_TRANSACTION_TYPE = {
    TransactionType.DEBIT:  1,
    TransactionType.CREDIT: 2,
}


class WalletEntity(BaseModel):
    """Solde tel que renvoyé par Tookan. Jamais calculé ni modifié localement."""
    entity_type: WalletEntityType
    entity_id:   str
    balance:     Decimal
    pending:     Optional[Decimal] = None   # None si Tookan ne le fournit pas
    name:        Optional[str] = None
    currency:    Optional[str] = None


class WalletBatch(BaseModel):
    entity_type: WalletEntityType
    vendor_ids:  List[str]
    offset:      int
    limit:       int
    wallets:     List[WalletEntity]


class WalletMetadata(BaseModel):
    source:     str = "provider"
    cached:     bool
    fetched_at: datetime


class DriverWalletTransaction(BaseModel):
    amount:           Decimal = Field(gt=0)
    transaction_type: TransactionType = TransactionType.CREDIT
    description:      str = Field(min_length=1, max_length=255)
