from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class TokenCreate(BaseModel):
    merchant_id: str = Field(min_length=1)
    name:        str = Field(min_length=1, max_length=100)


class TokenRevoke(BaseModel):
    token_id: str = Field(min_length=1)


class ApiTokenCreated(BaseModel):
    id:         str
    name:       str
    token:      str        # token brut, renvoyé une seule fois
    prefix:     str
    created_at: datetime


class ApiTokenInfo(BaseModel):
    id:           str
    name:         str
    prefix:       str
    created_at:   datetime
    last_used_at: Optional[datetime] = None
    is_active:    bool
