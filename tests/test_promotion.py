from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from app.models.itinerary import Category, DragKind
from app.services.sequencer import DragPhase, ItinerarySequencer, PromotionStatus
from conftest import TRIP_ID, InMemoryStore, make_idea, make_item


def build(store: InMemoryStore, tz=None) -> ItinerarySequencer:
    return ItinerarySequencer(
        TRIP_ID, list(store.items.values()), list(store.ideas.values()), store, tz
    )


@pytest.mark.asyncio
async def test_promotion_moves_idea_into_target_day_at_flexible_time(store):
    sequencer = build(store)

    result = await sequencer.promote("sintra", "b")

    assert result.status == PromotionStatus.promoted
    assert "sintra" not in [i.id for i in sequencer.ideas]

    new_items = [i for i in sequencer.items if i.id == result.item_id]
    assert len(new_items) == 1
    item = new_items[0]
    assert item.title == "Sintra day trip"
    assert item.description == "Palaces"
    assert item.location == "Sintra"
    assert item.notes == "Take the early train"
    assert item.category == Category.activity
    assert item.startAt == datetime(2024, 6, 2, 12, 0)
    assert item.endAt is None
    assert store.deleted_ideas == ["sintra"]


@pytest.mark.asyncio
async def test_promoted_item_sorts_between_morning_and_afternoon():
    store = InMemoryStore(
        items=[make_item("am", "2024-06-02T09:00:00"), make_item("pm", "2024-06-02T15:00:00")],
        ideas=[make_idea("museum")],
    )
    sequencer = build(store)

    result = await sequencer.promote("museum", "pm")

    day = sequencer.days()[0]
    assert [i.id for i in day.items] == ["am", result.item_id, "pm"]


@pytest.mark.asyncio
async def test_idea_without_category_becomes_activity(store):
    sequencer = build(store)

    result = await sequencer.promote("pasteis", "a")

    item = next(i for i in sequencer.items if i.id == result.item_id)
    assert item.category == Category.activity
    assert item.startAt == datetime(2024, 6, 1, 12, 0)


@pytest.mark.asyncio
async def test_promotion_onto_unknown_target_is_a_noop(store):
    sequencer = build(store)
    items_before = [i.model_dump() for i in sequencer.items]
    ideas_before = [i.model_dump() for i in sequencer.ideas]

    result = await sequencer.promote("sintra", "missing")

    assert result.status == PromotionStatus.noop
    assert result.item_id is None
    assert [i.model_dump() for i in sequencer.items] == items_before
    assert [i.model_dump() for i in sequencer.ideas] == ideas_before
    assert store.created == []
    assert store.deleted_ideas == []


@pytest.mark.asyncio
async def test_promotion_of_unknown_idea_is_a_noop(store):
    sequencer = build(store)
    result = await sequencer.promote("no_such_idea", "b")
    assert result.status == PromotionStatus.noop
    assert store.created == []


@pytest.mark.asyncio
async def test_failed_creation_keeps_both_lists(store):
    store.fail_create = True
    sequencer = build(store)
    items_before = sequencer.items
    ideas_before = sequencer.ideas

    result = await sequencer.promote("sintra", "b")

    assert result.status == PromotionStatus.failed
    assert result.failures[0].itemId == "sintra"
    assert result.failures[0].cause == "insert rejected"
    assert sequencer.items == items_before
    assert sequencer.ideas == ideas_before


@pytest.mark.asyncio
async def test_failed_idea_delete_does_not_undo_creation(store):
    store.fail_delete_idea = True
    sequencer = build(store)

    result = await sequencer.promote("sintra", "b")

    assert result.status == PromotionStatus.promoted
    assert result.idea_delete_error == "delete rejected"
    assert result.item_id in [i.id for i in sequencer.items]
    assert "sintra" not in [i.id for i in sequencer.ideas]


@pytest.mark.asyncio
async def test_promotion_through_drag_of_an_idea(store):
    sequencer = build(store)

    sequencer.begin_drag("sintra", DragKind.idea)
    result = await sequencer.end_drag("c")

    assert result.status == PromotionStatus.promoted
    assert [i.id for i in sequencer.ideas] == ["pasteis"]


@pytest.mark.asyncio
async def test_promotion_uses_viewer_local_day_for_aware_targets():
    tokyo = ZoneInfo("Asia/Tokyo")
    target = make_item("late_utc", "2024-06-01T23:30:00+00:00")
    store = InMemoryStore(items=[target], ideas=[make_idea("onsen")])
    sequencer = build(store, tokyo)

    result = await sequencer.promote("onsen", "late_utc")

    item = next(i for i in sequencer.items if i.id == result.item_id)
    local = item.startAt.astimezone(tokyo)
    assert local.date() == date(2024, 6, 2)
    assert (local.hour, local.minute) == (12, 0)
    assert item.startAt.tzinfo is not None
    assert item.startAt == datetime(2024, 6, 2, 3, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_promoted_item_records_who_promoted_it():
    store = InMemoryStore(
        items=[make_item("b", "2024-06-02T14:00:00")],
        ideas=[make_idea("sintra", addedBy="alice")],
    )
    sequencer = ItinerarySequencer(
        TRIP_ID, list(store.items.values()), list(store.ideas.values()), store, user_id="bob"
    )

    result = await sequencer.promote("sintra", "b")

    assert store.created[0]["createdBy"] == "bob"
    assert store.items[result.item_id].createdBy == "bob"


@pytest.mark.asyncio
async def test_noop_promotion_through_drag_is_recorded_as_cancelled(store):
    sequencer = build(store)

    sequencer.begin_drag("sintra", DragKind.idea)
    result = await sequencer.end_drag("missing")

    assert result.status == PromotionStatus.noop
    assert sequencer.last_drop.phase == DragPhase.cancelled


@pytest.mark.asyncio
async def test_failed_promotion_through_drag_is_still_resolved(store):
    store.fail_create = True
    sequencer = build(store)

    sequencer.begin_drag("sintra", DragKind.idea)
    result = await sequencer.end_drag("b")

    assert result.status == PromotionStatus.failed
    assert sequencer.last_drop.phase == DragPhase.resolved
