from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from prize_ledger.db import get_db
from prize_ledger.schemas.award import AwardResult, NextWinnerOut, QuotaSummary, SpinRequest
from prize_ledger.schemas.campaign import CampaignCreate, CampaignOut, CampaignUpdate
from prize_ledger.schemas.prize_slot import PrizeSlotOut
from prize_ledger.services import campaign_service, ledger_service, rotation_service


router = APIRouter(prefix="/campaigns", tags=["campaigns"])


@router.get("", response_model=list[CampaignOut])
def list_campaigns(
    game: str | None = None,
    active: bool | None = None,
    db: Session = Depends(get_db),
):
    return campaign_service.list_campaigns(db, game=game, active=active)


@router.post("", response_model=CampaignOut)
def create_campaign(payload: CampaignCreate, db: Session = Depends(get_db)):
    return campaign_service.create_campaign(db, payload)


@router.get("/active", response_model=CampaignOut)
def get_active_campaign(game: str | None = None, db: Session = Depends(get_db)):
    return campaign_service.get_active_campaign(db, game)


@router.get("/{campaign_id}", response_model=CampaignOut)
def get_campaign(campaign_id: UUID, db: Session = Depends(get_db)):
    return campaign_service.get_campaign(db, campaign_id)


@router.patch("/{campaign_id}", response_model=CampaignOut)
@router.put("/{campaign_id}", response_model=CampaignOut)
def update_campaign(
    campaign_id: UUID,
    payload: CampaignUpdate,
    db: Session = Depends(get_db),
):
    data = payload.model_dump(exclude_unset=True)
    return campaign_service.update_campaign(db, campaign_id, data)


@router.delete("/{campaign_id}")
def delete_campaign(campaign_id: UUID, db: Session = Depends(get_db)):
    campaign_service.deactivate_campaign(db, campaign_id)
    return {"deleted": False, "deactivated": True}


@router.post("/{campaign_id}/reset", response_model=CampaignOut)
def reset_campaign(campaign_id: UUID, db: Session = Depends(get_db)):
    return campaign_service.reset_campaign(db, campaign_id)


# ============================================================
# LEDGER
# ============================================================

@router.post("/{campaign_id}/spin", response_model=AwardResult)
def spin(
    campaign_id: UUID,
    payload: SpinRequest | None = None,
    db: Session = Depends(get_db),
):
    sequence_index = None
    slot_id = payload.slot_id if payload else None
    if slot_id is None:
        slot_id, sequence_index = rotation_service.draw_candidate(db, campaign_id)

    return ledger_service.select_and_award(db, campaign_id, slot_id, sequence_index=sequence_index)


@router.get("/{campaign_id}/quota", response_model=QuotaSummary)
def get_quota(campaign_id: UUID, db: Session = Depends(get_db)):
    return ledger_service.get_quota_summary(db, campaign_id)


# ============================================================
# ROTATION SEQUENCE
# ============================================================

@router.get("/{campaign_id}/next-winner", response_model=NextWinnerOut)
def get_next_winner(campaign_id: UUID, db: Session = Depends(get_db)):
    slot, index = rotation_service.next_candidate(db, campaign_id)
    campaign = campaign_service.get_campaign(db, campaign_id)
    return NextWinnerOut(
        slot=PrizeSlotOut.model_validate(slot) if slot else None,
        sequence_index=index,
        sequence_length=len(campaign.rotation_sequence or []),
    )


@router.post("/{campaign_id}/advance-sequence", response_model=CampaignOut)
def advance_sequence(campaign_id: UUID, db: Session = Depends(get_db)):
    return rotation_service.advance_sequence(db, campaign_id)
