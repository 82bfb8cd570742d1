from datetime import datetime
from typing import Optional

from uuid import UUID

from pydantic import BaseModel


class SpinResultOut(BaseModel):
    id: UUID
    campaign_id: UUID
    slot_id: Optional[UUID] = None
    winner: str
    amount: Optional[int] = None
    substituted: bool
    round: int
    timestamp: Optional[datetime] = None

    class Config:
        from_attributes = True
