import random
import uuid

import pytest

from prize_ledger.services.campaign_service import create_slot, list_slots
from prize_ledger.services.errors import InvalidState, NotFound
from prize_ledger.services.ledger_service import select_and_award
from prize_ledger.services.rotation_service import (
    advance_sequence,
    draw_candidate,
    generate_rotation_sequence,
    next_candidate,
)
from prize_ledger.schemas.prize_slot import PrizeSlotCreate


def test_sequence_pools_each_quota_slot_by_remaining_wins(db, make_campaign):
    campaign = make_campaign([("A", 3, None), ("B", 1, None), ("Nothing", 0, None), ("Free", None, None)])
    a, b, nothing, free = list_slots(db, campaign.id)

    sequence = generate_rotation_sequence([a, b, nothing, free], random.Random(7))

    assert len(sequence) == 4
    assert sequence.count(str(a.id)) == 3
    assert sequence.count(str(b.id)) == 1
    assert str(nothing.id) not in sequence
    assert str(free.id) not in sequence


def test_sequence_is_reproducible_with_seeded_rng(db, make_campaign):
    campaign = make_campaign([("A", 3, None), ("B", 2, None)])
    slots = list_slots(db, campaign.id)

    assert generate_rotation_sequence(slots, random.Random(42)) == generate_rotation_sequence(
        slots, random.Random(42)
    )


def test_new_campaign_gets_full_sequence(db, make_campaign):
    campaign = make_campaign([("A", 2, None), ("B", 2, None)])

    assert len(campaign.rotation_sequence) == 4
    assert campaign.current_sequence_index == 0


def test_next_candidate_and_advance(db, make_campaign):
    campaign = make_campaign([("A", 1, None), ("B", 1, None)])

    first, index = next_candidate(db, campaign.id)
    assert index == 0
    assert str(first.id) == campaign.rotation_sequence[0]

    advance_sequence(db, campaign.id)
    db.commit()

    second, index = next_candidate(db, campaign.id)
    assert index == 1
    assert str(second.id) == campaign.rotation_sequence[1]

    advance_sequence(db, campaign.id)
    db.commit()

    assert next_candidate(db, campaign.id) == (None, 2)


def test_award_from_sequence_advances_index(db, make_campaign):
    campaign = make_campaign([("A", 1, None), ("B", 1, None)])

    slot_id, index = draw_candidate(db, campaign.id)
    result = select_and_award(db, campaign.id, slot_id, sequence_index=index)

    assert result.awarded is True
    assert result.campaign.current_sequence_index == 1


def test_draw_falls_back_to_uniform_pick_when_sequence_is_spent(db, make_campaign):
    campaign = make_campaign([("Try again", 0, None), ("Free", None, None)])
    slots = {s.id for s in list_slots(db, campaign.id)}

    slot_id, index = draw_candidate(db, campaign.id, random.Random(3))

    assert index is None
    assert slot_id in slots


def test_draw_requires_slots(db, make_campaign):
    campaign = make_campaign([])

    with pytest.raises(InvalidState):
        draw_candidate(db, campaign.id)


def test_adding_slot_regenerates_sequence(db, make_campaign):
    campaign = make_campaign([("A", 1, None)])

    slot = create_slot(
        db,
        PrizeSlotCreate(campaign_id=campaign.id, text="B", color="#3b82f6", max_wins=2, position=1),
    )

    db.refresh(campaign)
    assert len(campaign.rotation_sequence) == 3
    assert campaign.rotation_sequence.count(str(slot.id)) == 2


def test_sequence_operations_unknown_campaign(db):
    with pytest.raises(NotFound):
        next_candidate(db, uuid.uuid4())

    with pytest.raises(NotFound):
        advance_sequence(db, uuid.uuid4())


def test_advance_sequence_after_award_in_another_session(session_factory, db, make_campaign):
    campaign = make_campaign([("A", 2, None), ("B", 1, None)])
    a, _ = list_slots(db, campaign.id)
    # loads version 1 into this session
    assert campaign.current_sequence_index == 0

    other = session_factory()
    try:
        assert select_and_award(other, campaign.id, a.id).awarded is True
    finally:
        other.close()

    advanced = advance_sequence(db, campaign.id)

    assert advanced.current_sequence_index == 1
    assert advanced.current_winners == 1
