from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from prize_ledger.models.campaign import Campaign
from prize_ledger.models.prize_slot import PrizeSlot
from prize_ledger.models.spin_result import SpinResult
from prize_ledger.schemas.award import AwardResult, QuotaSummary
from prize_ledger.schemas.campaign import CampaignOut
from prize_ledger.schemas.spin_result import SpinResultOut
from prize_ledger.services.atomic import lock_campaign, run_atomic
from prize_ledger.services.errors import InvalidArgument, InvalidState, NotFound
from prize_ledger.services.rotation_service import list_campaign_slots, regenerate_sequence


logger = logging.getLogger(__name__)


SLOT_PATCH_FIELDS = ("text", "color", "text_color", "amount", "max_wins", "position")
NOT_NULL_SLOT_FIELDS = ("text", "color", "text_color", "position")


# ============================================================
# ELIGIBILITY
# ============================================================

def terminal_reason(campaign: Campaign) -> str | None:
    if (campaign.current_winners or 0) >= campaign.total_winners:
        return "WINNER_QUOTA_REACHED"
    if campaign.threshold is not None and (campaign.current_spent or 0) >= campaign.threshold:
        return "THRESHOLD_REACHED"
    return None


def is_eligible(campaign: Campaign, slot: PrizeSlot) -> bool:
    if slot.is_no_prize:
        return False
    if not slot.is_unlimited and slot.remaining <= 0:
        return False
    if campaign.total_amount is not None and slot.amount:
        if (campaign.current_spent or 0) + slot.amount > campaign.total_amount:
            return False
    return True


def select_fallback(campaign: Campaign, slots) -> PrizeSlot | None:
    """Lowest position (then id) slot that can still be awarded."""
    for slot in sorted(slots, key=lambda s: (s.position, str(s.id))):
        if is_eligible(campaign, slot):
            return slot
    return None


# ============================================================
# SELECT AND AWARD
# ============================================================

@dataclass
class _Outcome:
    campaign: Campaign
    slot: PrizeSlot | None = None
    result: SpinResult | None = None
    substituted: bool = False
    reason: str | None = None


def _deactivate(campaign: Campaign, reason: str) -> _Outcome:
    campaign.is_active = False
    logger.info("campaign deactivated", extra={"campaign_id": str(campaign.id), "reason": reason})
    return _Outcome(campaign=campaign, reason=reason)


def _award_once(db: Session, campaign_id, candidate_slot_id, sequence_index) -> _Outcome:
    campaign = lock_campaign(db, campaign_id)

    candidate = (
        db.query(PrizeSlot)
        .filter(PrizeSlot.id == candidate_slot_id)
        .filter(PrizeSlot.campaign_id == campaign.id)
        .first()
    )
    if not candidate:
        raise NotFound("Prize slot not found in campaign")

    if not campaign.is_active:
        raise InvalidState("Campaign is not active")

    reason = terminal_reason(campaign)
    if reason:
        return _deactivate(campaign, reason)

    slots = list_campaign_slots(db, campaign.id)

    slot = candidate
    substituted = False
    if not is_eligible(campaign, candidate):
        slot = select_fallback(campaign, slots)
        substituted = True
        if slot is None:
            return _deactivate(campaign, "QUOTA_EXHAUSTED")

    slot.current_wins = (slot.current_wins or 0) + 1
    campaign.current_winners = (campaign.current_winners or 0) + 1
    campaign.current_spent = (campaign.current_spent or 0) + (slot.amount or 0)

    if sequence_index is not None:
        campaign.current_sequence_index = max(campaign.current_sequence_index or 0, sequence_index + 1)

    result = SpinResult(
        campaign_id=campaign.id,
        slot_id=slot.id,
        winner=slot.text,
        amount=slot.amount,
        substituted=substituted,
        round=campaign.round,
        timestamp=datetime.now(timezone.utc).replace(tzinfo=None),
    )
    db.add(result)

    # campaign-level quotas close the campaign as soon as they are hit
    closing = terminal_reason(campaign)
    if closing:
        campaign.is_active = False

    db.flush()

    return _Outcome(campaign=campaign, slot=slot, result=result, substituted=substituted, reason=closing)


def select_and_award(
    db: Session,
    campaign_id,
    candidate_slot_id,
    *,
    sequence_index: int | None = None,
    max_attempts: int | None = None,
    backoff_seconds: float | None = None,
) -> AwardResult:
    """Award ``candidate_slot_id`` or, if its quota is spent, a fallback slot.

    The campaign row is the unit of atomicity: every award locks it and bumps
    its version, so sibling slot quotas are read from one consistent snapshot.
    Returns ``awarded=False`` (and deactivates the campaign) when nothing in
    the campaign can be awarded any more.
    """
    outcome = run_atomic(
        db,
        lambda session: _award_once(session, campaign_id, candidate_slot_id, sequence_index),
        op="select_and_award",
        max_attempts=max_attempts,
        backoff_seconds=backoff_seconds,
    )

    campaign_out = CampaignOut.model_validate(outcome.campaign)

    if outcome.result is None:
        return AwardResult(awarded=False, reason=outcome.reason, campaign=campaign_out)

    logger.info(
        "prize awarded",
        extra={
            "campaign_id": str(campaign_out.id),
            "slot_id": str(outcome.slot.id),
            "candidate_slot_id": str(candidate_slot_id),
            "substituted": outcome.substituted,
            "amount": outcome.slot.amount,
        },
    )

    return AwardResult(
        awarded=True,
        slot=outcome.slot.id,
        substituted=outcome.substituted,
        reason=outcome.reason,
        result=SpinResultOut.model_validate(outcome.result),
        campaign=campaign_out,
    )


# ============================================================
# QUOTA SUMMARY
# ============================================================

def get_quota_summary(db: Session, campaign_id) -> QuotaSummary:
    exists = db.query(Campaign.id).filter(Campaign.id == campaign_id).first()
    if not exists:
        raise NotFound("Campaign not found")

    total_quota, used_quota = (
        db.query(
            func.coalesce(func.sum(PrizeSlot.max_wins), 0),
            func.coalesce(func.sum(PrizeSlot.current_wins), 0),
        )
        .filter(PrizeSlot.campaign_id == campaign_id)
        .filter(PrizeSlot.max_wins.isnot(None))
        .one()
    )

    unlimited_slots = (
        db.query(func.count(PrizeSlot.id))
        .filter(PrizeSlot.campaign_id == campaign_id)
        .filter(PrizeSlot.max_wins.is_(None))
        .scalar()
    )

    total_quota = int(total_quota or 0)
    used_quota = int(used_quota or 0)

    return QuotaSummary(
        campaign_id=exists[0],
        total_quota=total_quota,
        used_quota=used_quota,
        remaining=max(0, total_quota - used_quota),
        unlimited_slots=int(unlimited_slots or 0),
    )


# ============================================================
# UPDATE SLOT
# ============================================================

def _validate_slot_patch(slot: PrizeSlot, data: dict):
    unknown = set(data) - set(SLOT_PATCH_FIELDS)
    if unknown:
        raise InvalidArgument(f"Unknown slot fields: {', '.join(sorted(unknown))}")

    for k in NOT_NULL_SLOT_FIELDS:
        if k in data and data[k] is None:
            raise InvalidArgument(f"{k} cannot be null")

    if "amount" in data and data["amount"] is not None and data["amount"] < 0:
        raise InvalidArgument("amount cannot be negative")

    if "max_wins" in data and data["max_wins"] is not None:
        max_wins = data["max_wins"]
        if max_wins < 0:
            raise InvalidArgument("max_wins cannot be negative")
        if max_wins < (slot.current_wins or 0):
            raise InvalidArgument(
                f"max_wins ({max_wins}) cannot be lower than current_wins ({slot.current_wins})"
            )


def _update_slot_once(db: Session, slot_id, data: dict) -> PrizeSlot:
    slot = db.query(PrizeSlot).filter(PrizeSlot.id == slot_id).first()
    if not slot:
        raise NotFound("Prize slot not found")

    # serialise against awards on the same campaign
    campaign = lock_campaign(db, slot.campaign_id)
    db.refresh(slot)

    _validate_slot_patch(slot, data)

    quota_changed = "max_wins" in data and data["max_wins"] != slot.max_wins
    for k, v in data.items():
        setattr(slot, k, v)

    if quota_changed:
        db.flush()
        regenerate_sequence(db, campaign)
    # bump the campaign version even when the sequence comes out identical
    flag_modified(campaign, "rotation_sequence")

    db.flush()
    return slot


def update_slot(db: Session, slot_id, patch: dict, *, max_attempts: int | None = None) -> PrizeSlot:
    slot = run_atomic(
        db,
        lambda session: _update_slot_once(session, slot_id, patch),
        op="update_slot",
        max_attempts=max_attempts,
    )
    db.refresh(slot)
    return slot
