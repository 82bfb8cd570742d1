from typing import Optional

from uuid import UUID

from pydantic import BaseModel

from prize_ledger.schemas.campaign import CampaignOut
from prize_ledger.schemas.prize_slot import PrizeSlotOut
from prize_ledger.schemas.spin_result import SpinResultOut


class SpinRequest(BaseModel):
    # omitted = draw from the campaign's rotation sequence
    slot_id: Optional[UUID] = None


class AwardResult(BaseModel):
    awarded: bool
    slot: Optional[UUID] = None
    substituted: bool = False

    # terminal reason when nothing was awarded
    reason: Optional[str] = None

    result: Optional[SpinResultOut] = None
    campaign: Optional[CampaignOut] = None


class QuotaSummary(BaseModel):
    campaign_id: UUID
    total_quota: int
    used_quota: int
    remaining: int
    unlimited_slots: int = 0


class NextWinnerOut(BaseModel):
    slot: Optional[PrizeSlotOut] = None
    sequence_index: int
    sequence_length: int
