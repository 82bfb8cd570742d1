from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from prize_ledger.db import get_db
from prize_ledger.schemas.spin_result import SpinResultOut
from prize_ledger.services import campaign_service


router = APIRouter(prefix="/spin-results", tags=["spin-results"])


@router.get("", response_model=list[SpinResultOut])
def list_spin_results(
    campaign_id: UUID,
    round: int | None = None,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    return campaign_service.list_spin_results(db, campaign_id, round=round, limit=limit, offset=offset)
