import logging

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from prize_ledger.models.campaign import Campaign
from prize_ledger.models.prize_slot import PrizeSlot
from prize_ledger.models.spin_result import SpinResult
from prize_ledger.schemas.campaign import CampaignCreate
from prize_ledger.schemas.prize_slot import PrizeSlotCreate
from prize_ledger.services.atomic import lock_campaign, run_atomic
from prize_ledger.services.errors import InvalidArgument, InvalidState, NotFound
from prize_ledger.services.rotation_service import regenerate_sequence


logger = logging.getLogger(__name__)


CAMPAIGN_PATCH_FIELDS = ("name", "total_amount", "total_winners", "threshold", "is_active")


def get_campaign(db: Session, campaign_id) -> Campaign:
    campaign = db.query(Campaign).filter(Campaign.id == campaign_id).first()
    if not campaign:
        raise NotFound("Campaign not found")
    return campaign


def list_campaigns(db: Session, *, game: str | None = None, active: bool | None = None):
    q = db.query(Campaign)
    if game:
        q = q.filter(Campaign.game == game)
    if active is not None:
        q = q.filter(Campaign.is_active.is_(active))
    return q.order_by(Campaign.created_at.desc()).all()


def get_active_campaign(db: Session, game: str | None = None) -> Campaign:
    q = db.query(Campaign).filter(Campaign.is_active.is_(True))
    if game:
        q = q.filter(Campaign.game == game)
    campaign = q.order_by(Campaign.created_at.desc()).first()
    if not campaign:
        raise NotFound("No active campaign found")
    return campaign


# ============================================================
# CREATE
# ============================================================

def _slot_from_fields(campaign_id, fields) -> PrizeSlot:
    if fields.max_wins is not None and fields.max_wins < 0:
        raise InvalidArgument("max_wins cannot be negative")
    return PrizeSlot(
        campaign_id=campaign_id,
        text=fields.text,
        color=fields.color,
        text_color=fields.text_color,
        amount=fields.amount,
        max_wins=fields.max_wins,
        current_wins=0,
        position=fields.position,
    )


def _create_campaign_once(db: Session, payload: CampaignCreate) -> Campaign:
    if payload.deactivate_others:
        other_ids = (
            db.query(Campaign.id)
            .filter(Campaign.game == payload.game)
            .filter(Campaign.is_active.is_(True))
            .all()
        )
        for (other_id,) in other_ids:
            other = lock_campaign(db, other_id)
            if other.is_active:
                other.is_active = False
                logger.info("campaign deactivated", extra={"campaign_id": str(other.id), "reason": "REPLACED"})

    campaign = Campaign(
        name=payload.name,
        game=payload.game,
        total_amount=payload.total_amount,
        total_winners=payload.total_winners,
        threshold=payload.threshold,
        current_spent=0,
        current_winners=0,
        rotation_sequence=[],
        current_sequence_index=0,
        round=1,
        is_active=True,
    )
    db.add(campaign)
    db.flush()

    for fields in payload.slots:
        db.add(_slot_from_fields(campaign.id, fields))
    db.flush()

    regenerate_sequence(db, campaign)
    db.flush()
    return campaign


def create_campaign(db: Session, payload: CampaignCreate) -> Campaign:
    for fields in payload.slots:
        if fields.max_wins is not None and fields.max_wins < 0:
            raise InvalidArgument("max_wins cannot be negative")

    campaign = run_atomic(db, lambda session: _create_campaign_once(session, payload), op="create_campaign")
    db.refresh(campaign)

    logger.info(
        "campaign created",
        extra={"campaign_id": str(campaign.id), "game": campaign.game, "slots": len(payload.slots)},
    )
    return campaign


# ============================================================
# UPDATE / DEACTIVATE
# ============================================================

def _update_campaign_once(db: Session, campaign_id, data: dict) -> Campaign:
    campaign = lock_campaign(db, campaign_id)

    unknown = set(data) - set(CAMPAIGN_PATCH_FIELDS)
    if unknown:
        raise InvalidArgument(f"Unknown campaign fields: {', '.join(sorted(unknown))}")

    for k in ("name", "total_winners", "is_active"):
        if k in data and data[k] is None:
            raise InvalidArgument(f"{k} cannot be null")

    if "total_winners" in data and data["total_winners"] < (campaign.current_winners or 0):
        raise InvalidArgument(
            f"total_winners ({data['total_winners']}) cannot be lower than current_winners ({campaign.current_winners})"
        )

    target_changed = "total_winners" in data and data["total_winners"] != campaign.total_winners
    for k, v in data.items():
        setattr(campaign, k, v)

    if target_changed:
        regenerate_sequence(db, campaign)

    db.flush()
    return campaign


def update_campaign(db: Session, campaign_id, patch: dict) -> Campaign:
    campaign = run_atomic(
        db,
        lambda session: _update_campaign_once(session, campaign_id, patch),
        op="update_campaign",
    )
    db.refresh(campaign)
    return campaign


def deactivate_campaign(db: Session, campaign_id) -> Campaign:
    """Campaigns are never deleted; they are switched off."""
    campaign = update_campaign(db, campaign_id, {"is_active": False})
    logger.info("campaign deactivated", extra={"campaign_id": str(campaign.id), "reason": "ADMIN"})
    return campaign


# ============================================================
# RESET
# ============================================================

def _reset_once(db: Session, campaign_id) -> Campaign:
    campaign = lock_campaign(db, campaign_id)

    slots = db.query(PrizeSlot).filter(PrizeSlot.campaign_id == campaign.id).all()
    for slot in slots:
        slot.current_wins = 0

    campaign.current_spent = 0
    campaign.current_winners = 0
    campaign.round = (campaign.round or 1) + 1
    campaign.is_active = True

    db.flush()
    regenerate_sequence(db, campaign)
    flag_modified(campaign, "rotation_sequence")

    db.flush()
    return campaign


def reset_campaign(db: Session, campaign_id) -> Campaign:
    """Start a new round: counters back to zero, audit log kept."""
    campaign = run_atomic(db, lambda session: _reset_once(session, campaign_id), op="reset_campaign")
    db.refresh(campaign)
    logger.info("campaign reset", extra={"campaign_id": str(campaign.id), "round": campaign.round})
    return campaign


# ============================================================
# SLOTS
# ============================================================

def list_slots(db: Session, campaign_id):
    get_campaign(db, campaign_id)
    return (
        db.query(PrizeSlot)
        .filter(PrizeSlot.campaign_id == campaign_id)
        .order_by(PrizeSlot.position.asc(), PrizeSlot.id.asc())
        .all()
    )


def get_slot(db: Session, slot_id) -> PrizeSlot:
    slot = db.query(PrizeSlot).filter(PrizeSlot.id == slot_id).first()
    if not slot:
        raise NotFound("Prize slot not found")
    return slot


def _create_slot_once(db: Session, payload: PrizeSlotCreate) -> PrizeSlot:
    campaign = lock_campaign(db, payload.campaign_id)

    slot = _slot_from_fields(campaign.id, payload)
    db.add(slot)
    db.flush()

    regenerate_sequence(db, campaign)
    flag_modified(campaign, "rotation_sequence")

    db.flush()
    return slot


def create_slot(db: Session, payload: PrizeSlotCreate) -> PrizeSlot:
    slot = run_atomic(db, lambda session: _create_slot_once(session, payload), op="create_slot")
    db.refresh(slot)
    return slot


def _delete_slot_once(db: Session, slot_id):
    slot = get_slot(db, slot_id)
    campaign = lock_campaign(db, slot.campaign_id)
    db.refresh(slot)

    if (slot.current_wins or 0) > 0:
        raise InvalidState("Prize slot has already been awarded and cannot be deleted")

    awarded_before = (
        db.query(SpinResult.id)
        .filter(SpinResult.slot_id == slot.id)
        .first()
    )
    if awarded_before:
        raise InvalidState("Prize slot is referenced by spin results and cannot be deleted")

    db.delete(slot)
    db.flush()

    regenerate_sequence(db, campaign)
    flag_modified(campaign, "rotation_sequence")

    db.flush()
    return {"deleted": True}


def delete_slot(db: Session, slot_id):
    return run_atomic(db, lambda session: _delete_slot_once(session, slot_id), op="delete_slot")


# ============================================================
# SPIN RESULTS
# ============================================================

def list_spin_results(
    db: Session,
    campaign_id,
    *,
    round: int | None = None,
    limit: int = 50,
    offset: int = 0,
):
    campaign = get_campaign(db, campaign_id)

    if round is None:
        round = campaign.round

    limit = max(1, min(limit, 200))
    offset = max(0, offset)

    return (
        db.query(SpinResult)
        .filter(SpinResult.campaign_id == campaign.id)
        .filter(SpinResult.round == round)
        .order_by(SpinResult.timestamp.desc(), SpinResult.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
