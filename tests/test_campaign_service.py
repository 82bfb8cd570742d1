import uuid

import pytest

from prize_ledger.models.spin_result import SpinResult
from prize_ledger.schemas.campaign import CampaignCreate
from prize_ledger.services import campaign_service
from prize_ledger.services.errors import InvalidArgument, InvalidState, NotFound
from prize_ledger.services.ledger_service import get_quota_summary, select_and_award


def test_create_campaign_with_slots(db, make_campaign):
    campaign = make_campaign([("A", 2, 10), ("B", 0, None)], total_amount=100, threshold=80)

    assert campaign.is_active is True
    assert campaign.current_winners == 0
    assert campaign.current_spent == 0
    assert campaign.round == 1

    slots = campaign_service.list_slots(db, campaign.id)
    assert [s.text for s in slots] == ["A", "B"]
    assert all(s.current_wins == 0 for s in slots)


def test_create_campaign_can_retire_other_campaigns_of_same_game(db, make_campaign):
    old_dice = make_campaign([("1", 1, None)], game="dice", name="old dice")
    wheel = make_campaign([("A", 1, None)], game="wheel", name="wheel")

    new_dice = campaign_service.create_campaign(
        db,
        CampaignCreate(name="new dice", game="dice", total_winners=10, deactivate_others=True),
    )

    db.refresh(old_dice)
    db.refresh(wheel)
    assert old_dice.is_active is False
    assert wheel.is_active is True
    assert campaign_service.get_active_campaign(db, "dice").id == new_dice.id


def test_create_campaign_retires_campaign_changed_by_another_session(session_factory, db, make_campaign):
    old_dice = make_campaign([("1", 2, None)], game="dice", name="old dice")
    (face,) = campaign_service.list_slots(db, old_dice.id)
    # loads version 1 into this session
    assert old_dice.is_active is True

    other = session_factory()
    try:
        assert select_and_award(other, old_dice.id, face.id).awarded is True
    finally:
        other.close()

    new_dice = campaign_service.create_campaign(
        db,
        CampaignCreate(name="new dice", game="dice", total_winners=10, deactivate_others=True),
    )

    db.refresh(old_dice)
    assert old_dice.is_active is False
    assert old_dice.current_winners == 1
    assert campaign_service.get_active_campaign(db, "dice").id == new_dice.id


def test_get_active_campaign_missing(db):
    with pytest.raises(NotFound):
        campaign_service.get_active_campaign(db)


def test_update_campaign_rejects_target_below_winners(db, make_campaign):
    campaign = make_campaign([("A", 5, None)], total_winners=10)
    a = campaign_service.list_slots(db, campaign.id)[0]
    select_and_award(db, campaign.id, a.id)
    select_and_award(db, campaign.id, a.id)

    with pytest.raises(InvalidArgument):
        campaign_service.update_campaign(db, campaign.id, {"total_winners": 1})

    updated = campaign_service.update_campaign(db, campaign.id, {"total_winners": 2, "name": "Renamed"})
    assert updated.total_winners == 2
    assert updated.name == "Renamed"


def test_deactivate_is_soft(db, make_campaign):
    campaign = make_campaign([("A", 1, None)])

    campaign_service.deactivate_campaign(db, campaign.id)

    fetched = campaign_service.get_campaign(db, campaign.id)
    assert fetched.is_active is False
    assert len(campaign_service.list_slots(db, campaign.id)) == 1


def test_reset_starts_new_round_and_keeps_audit_log(db, make_campaign):
    campaign = make_campaign([("A", 1, 5), ("B", 1, 5)])
    a, b = campaign_service.list_slots(db, campaign.id)
    select_and_award(db, campaign.id, a.id)
    select_and_award(db, campaign.id, b.id)
    assert select_and_award(db, campaign.id, a.id).awarded is False

    reset = campaign_service.reset_campaign(db, campaign.id)

    assert reset.is_active is True
    assert reset.round == 2
    assert reset.current_winners == 0
    assert reset.current_spent == 0
    assert reset.current_sequence_index == 0
    assert len(reset.rotation_sequence) == 2
    assert get_quota_summary(db, campaign.id).used_quota == 0

    assert db.query(SpinResult).filter(SpinResult.campaign_id == campaign.id).count() == 2
    assert campaign_service.list_spin_results(db, campaign.id) == []
    assert len(campaign_service.list_spin_results(db, campaign.id, round=1)) == 2

    result = select_and_award(db, campaign.id, a.id)
    assert result.awarded is True
    assert result.result.round == 2


def test_delete_slot_only_before_award(db, make_campaign):
    campaign = make_campaign([("A", 1, None), ("B", 2, None)])
    a, b = campaign_service.list_slots(db, campaign.id)
    select_and_award(db, campaign.id, a.id)

    with pytest.raises(InvalidState):
        campaign_service.delete_slot(db, a.id)

    assert campaign_service.delete_slot(db, b.id) == {"deleted": True}

    db.refresh(campaign)
    assert str(b.id) not in campaign.rotation_sequence
    assert [s.id for s in campaign_service.list_slots(db, campaign.id)] == [a.id]


def test_delete_slot_after_reset_keeps_audit_reference(db, make_campaign):
    campaign = make_campaign([("A", 1, None)])
    (a,) = campaign_service.list_slots(db, campaign.id)
    select_and_award(db, campaign.id, a.id)
    campaign_service.reset_campaign(db, campaign.id)

    with pytest.raises(InvalidState):
        campaign_service.delete_slot(db, a.id)


def test_lookups_of_missing_entities(db):
    with pytest.raises(NotFound):
        campaign_service.get_campaign(db, uuid.uuid4())

    with pytest.raises(NotFound):
        campaign_service.get_slot(db, uuid.uuid4())

    with pytest.raises(NotFound):
        campaign_service.reset_campaign(db, uuid.uuid4())

    with pytest.raises(NotFound):
        campaign_service.list_spin_results(db, uuid.uuid4())


def test_spin_results_are_listed_newest_first(db, make_campaign):
    campaign = make_campaign([("A", None, None), ("B", None, None), ("C", None, None)])
    a, b, c = campaign_service.list_slots(db, campaign.id)

    for slot in (a, b, c, a):
        select_and_award(db, campaign.id, slot.id)

    results = campaign_service.list_spin_results(db, campaign.id)
    assert [r.winner for r in results] == ["A", "C", "B", "A"]
    assert results[0].timestamp > results[-1].timestamp

    page = campaign_service.list_spin_results(db, campaign.id, limit=2, offset=1)
    assert [r.winner for r in page] == ["C", "B"]
