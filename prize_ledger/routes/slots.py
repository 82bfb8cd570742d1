from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from prize_ledger.db import get_db
from prize_ledger.schemas.prize_slot import PrizeSlotCreate, PrizeSlotOut, PrizeSlotUpdate
from prize_ledger.services import campaign_service, ledger_service


router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("", response_model=list[PrizeSlotOut])
def list_slots(campaign_id: UUID, db: Session = Depends(get_db)):
    return campaign_service.list_slots(db, campaign_id)


@router.post("", response_model=PrizeSlotOut)
def create_slot(payload: PrizeSlotCreate, db: Session = Depends(get_db)):
    return campaign_service.create_slot(db, payload)


@router.get("/{slot_id}", response_model=PrizeSlotOut)
def get_slot(slot_id: UUID, db: Session = Depends(get_db)):
    return campaign_service.get_slot(db, slot_id)


@router.put("/{slot_id}", response_model=PrizeSlotOut)
@router.patch("/{slot_id}", response_model=PrizeSlotOut)
def update_slot(
    slot_id: UUID,
    payload: PrizeSlotUpdate,
    db: Session = Depends(get_db),
):
    data = payload.model_dump(exclude_unset=True)
    return ledger_service.update_slot(db, slot_id, data)


@router.delete("/{slot_id}")
def delete_slot(slot_id: UUID, db: Session = Depends(get_db)):
    return campaign_service.delete_slot(db, slot_id)
