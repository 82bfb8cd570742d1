import random
from uuid import UUID

from sqlalchemy.orm import Session

from prize_ledger.models.campaign import Campaign
from prize_ledger.models.prize_slot import PrizeSlot
from prize_ledger.services.atomic import lock_campaign, run_atomic
from prize_ledger.services.errors import InvalidState, NotFound


def list_campaign_slots(db: Session, campaign_id):
    return (
        db.query(PrizeSlot)
        .filter(PrizeSlot.campaign_id == campaign_id)
        .order_by(PrizeSlot.position.asc(), PrizeSlot.id.asc())
        .all()
    )


def generate_rotation_sequence(slots, rng: random.Random | None = None) -> list[str]:
    """Pool each finite-quota slot once per remaining win, then shuffle.

    Unlimited and no-prize slots never enter the pool.
    """
    rng = rng or random.Random()

    pool = []
    for slot in sorted(slots, key=lambda s: (s.position, str(s.id))):
        remaining = slot.remaining
        if not remaining:
            continue
        pool.extend([str(slot.id)] * remaining)

    rng.shuffle(pool)
    return pool


def regenerate_sequence(db: Session, campaign: Campaign, rng: random.Random | None = None):
    campaign.rotation_sequence = generate_rotation_sequence(list_campaign_slots(db, campaign.id), rng)
    campaign.current_sequence_index = 0
    return campaign.rotation_sequence


def _get_campaign(db: Session, campaign_id) -> Campaign:
    campaign = db.query(Campaign).filter(Campaign.id == campaign_id).first()
    if not campaign:
        raise NotFound("Campaign not found")
    return campaign


def next_candidate(db: Session, campaign_id):
    """Return (slot, sequence_index) for the next drawable entry, or (None, index).

    Entries whose slot has since been deleted are skipped.
    """
    campaign = _get_campaign(db, campaign_id)
    sequence = campaign.rotation_sequence or []
    index = campaign.current_sequence_index or 0

    while index < len(sequence):
        slot = (
            db.query(PrizeSlot)
            .filter(PrizeSlot.id == UUID(sequence[index]))
            .filter(PrizeSlot.campaign_id == campaign.id)
            .first()
        )
        if slot:
            return slot, index
        index += 1

    return None, index


def _advance_once(db: Session, campaign_id) -> Campaign:
    campaign = lock_campaign(db, campaign_id)
    campaign.current_sequence_index = (campaign.current_sequence_index or 0) + 1
    db.flush()
    return campaign


def advance_sequence(db: Session, campaign_id) -> Campaign:
    campaign = run_atomic(db, lambda session: _advance_once(session, campaign_id), op="advance_sequence")
    db.refresh(campaign)
    return campaign


def draw_candidate(db: Session, campaign_id, rng: random.Random | None = None):
    """Pick the slot a spin lands on when the caller did not draw one.

    Follows the rotation sequence while it lasts, then falls back to a
    uniform draw over all slots. Returns (slot_id, sequence_index) where
    sequence_index is None for uniform draws.
    """
    slot, index = next_candidate(db, campaign_id)
    if slot:
        return slot.id, index

    slots = list_campaign_slots(db, campaign_id)
    if not slots:
        raise InvalidState("Campaign has no prize slots")

    rng = rng or random.Random()
    return rng.choice(slots).id, None
