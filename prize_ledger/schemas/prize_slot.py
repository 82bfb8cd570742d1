from datetime import datetime
from typing import Optional

from uuid import UUID

from pydantic import BaseModel, Field


class PrizeSlotFields(BaseModel):
    text: str
    color: str
    text_color: str = "#000000"
    amount: Optional[int] = Field(default=None, ge=0)
    # None = unlimited, 0 = no-prize slot
    max_wins: Optional[int] = 0
    position: int = 0


class PrizeSlotCreate(PrizeSlotFields):
    campaign_id: UUID


class PrizeSlotUpdate(BaseModel):
    text: Optional[str] = None
    color: Optional[str] = None
    text_color: Optional[str] = None
    amount: Optional[int] = Field(default=None, ge=0)
    max_wins: Optional[int] = None
    position: Optional[int] = None


class PrizeSlotOut(BaseModel):
    id: UUID
    campaign_id: UUID
    text: str
    color: str
    text_color: str
    amount: Optional[int] = None
    max_wins: Optional[int] = None
    current_wins: int
    position: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
