from datetime import datetime
from typing import List, Literal, Optional

from uuid import UUID

from pydantic import BaseModel, Field

from prize_ledger.schemas.prize_slot import PrizeSlotFields


GameType = Literal["wheel", "dice", "slot_machine"]


class CampaignCreate(BaseModel):
    name: str
    game: GameType = "wheel"

    total_amount: Optional[int] = Field(default=None, ge=0)
    total_winners: int = Field(ge=0)
    threshold: Optional[int] = Field(default=None, ge=0)

    slots: List[PrizeSlotFields] = []

    # keep a single live campaign per game
    deactivate_others: bool = False


class CampaignUpdate(BaseModel):
    name: Optional[str] = None

    total_amount: Optional[int] = Field(default=None, ge=0)
    total_winners: Optional[int] = Field(default=None, ge=0)
    threshold: Optional[int] = Field(default=None, ge=0)

    is_active: Optional[bool] = None


class CampaignOut(BaseModel):
    id: UUID
    name: str
    game: str

    total_amount: Optional[int] = None
    total_winners: int
    threshold: Optional[int] = None

    current_spent: int
    current_winners: int

    current_sequence_index: int
    round: int

    is_active: bool

    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
