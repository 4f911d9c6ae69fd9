from fastapi import APIRouter, Depends, HTTPException
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo
import logging

from app.dependencies import get_current_user_uid, get_itinerary_store, get_viewer_timezone
from app.models.itinerary import (
    DeleteResponse,
    DragKind,
    ItineraryResponse,
    ReorderRequest,
    ReorderResponse,
    ScheduleItem,
    ScheduleItemCreate,
    ScheduleItemResponse,
    ScheduleItemUpdate,
)
from app.routers.trips import load_owned_trip
from app.services.itinerary_store import FirestoreItineraryStore
from app.services.sequencer import load_sequencer
from app.services.timeline import combine_date_time, group_by_day, is_flexible, local_day, order_items, to_local

logger = logging.getLogger(__name__)
router = APIRouter(tags=["itinerary"])


def _timings_from_form(body, existing: Optional[ScheduleItem] = None, tz: Optional[ZoneInfo] = None) -> Dict[str, Any]:
    """
    Turn the form's date/time fields into startAt/endAt.

    On edits only the fields the client sent are applied, the rest are taken
    from the stored item. A date without a time lands on the flexible sentinel.
    """
    sent = body.model_fields_set
    updates: Dict[str, Any] = {}

    if existing is None:
        updates["startAt"] = combine_date_time(body.startDate, body.startTime)
        updates["endAt"] = None
    elif "startDate" in sent or "startTime" in sent:
        day = body.startDate or local_day(existing.startAt, tz)
        at = body.startTime if "startTime" in sent else to_local(existing.startAt, tz).time()
        updates["startAt"] = combine_date_time(day, at)

    if "endDate" in sent or "endTime" in sent:
        end_day = body.endDate
        if end_day is None and existing is not None and existing.endAt is not None and "endDate" not in sent:
            end_day = local_day(existing.endAt, tz)
        if end_day is None:
            if body.endTime is not None:
                raise HTTPException(status_code=400, detail="endTime requires endDate")
            updates["endAt"] = None
        else:
            at = body.endTime
            if "endTime" not in sent and existing is not None and existing.endAt is not None:
                at = to_local(existing.endAt, tz).time()
            updates["endAt"] = combine_date_time(end_day, at)

    start = updates.get("startAt", existing.startAt if existing else None)
    end = updates.get("endAt", existing.endAt if existing else None)
    if end is not None and to_local(end, tz).replace(tzinfo=None) < to_local(start, tz).replace(tzinfo=None):
        raise HTTPException(status_code=400, detail="endAt must not be before startAt")
    return updates


@router.get("/trips/{tripId}/itinerary", response_model=ItineraryResponse)
async def get_itinerary(
    tripId: str,
    uid: str = Depends(get_current_user_uid),
    tz: ZoneInfo = Depends(get_viewer_timezone),
    store: FirestoreItineraryStore = Depends(get_itinerary_store),
):
    trip = await load_owned_trip(tripId, uid, store)
    items = order_items(await store.list_schedule_items(tripId), tz)
    return ItineraryResponse(tripId=tripId, days=group_by_day(items, tz, trip.startDate, trip.endDate))


@router.post("/trips/{tripId}/itinerary", response_model=ScheduleItemResponse, status_code=201)
async def create_itinerary_item(
    tripId: str,
    body: ScheduleItemCreate,
    uid: str = Depends(get_current_user_uid),
    tz: ZoneInfo = Depends(get_viewer_timezone),
    store: FirestoreItineraryStore = Depends(get_itinerary_store),
):
    await load_owned_trip(tripId, uid, store)
    payload = body.model_dump(exclude={"startDate", "startTime", "endDate", "endTime"})
    payload.update(_timings_from_form(body, tz=tz))
    payload["createdBy"] = uid

    item = await store.create_schedule_item(tripId, payload)
    logger.info(f"Created itinerary item {item.id} in trip {tripId}")
    return ScheduleItemResponse(item=item, isFlexible=is_flexible(item.startAt, tz))


@router.patch("/trips/{tripId}/itinerary/{itemId}", response_model=ScheduleItemResponse)
async def update_itinerary_item(
    tripId: str,
    itemId: str,
    body: ScheduleItemUpdate,
    uid: str = Depends(get_current_user_uid),
    tz: ZoneInfo = Depends(get_viewer_timezone),
    store: FirestoreItineraryStore = Depends(get_itinerary_store),
):
    await load_owned_trip(tripId, uid, store)
    existing = await store.get_schedule_item(tripId, itemId)
    if existing is None:
        raise HTTPException(status_code=404, detail=f"Itinerary item {itemId} not found")

    updates = body.model_dump(
        exclude_unset=True, exclude={"startDate", "startTime", "endDate", "endTime"}
    )
    updates.update(_timings_from_form(body, existing, tz))
    if updates:
        await store.update_schedule_item(tripId, itemId, updates)

    item = existing.model_copy(update=updates)
    return ScheduleItemResponse(item=item, isFlexible=is_flexible(item.startAt, tz))


@router.delete("/trips/{tripId}/itinerary/{itemId}", response_model=DeleteResponse)
async def delete_itinerary_item(
    tripId: str,
    itemId: str,
    uid: str = Depends(get_current_user_uid),
    store: FirestoreItineraryStore = Depends(get_itinerary_store),
):
    await load_owned_trip(tripId, uid, store)
    if await store.get_schedule_item(tripId, itemId) is None:
        raise HTTPException(status_code=404, detail=f"Itinerary item {itemId} not found")
    await store.delete_schedule_item(tripId, itemId)
    return DeleteResponse(deletedId=itemId)


@router.post("/trips/{tripId}/itinerary/reorder", response_model=ReorderResponse)
async def reorder_itinerary(
    tripId: str,
    body: ReorderRequest,
    uid: str = Depends(get_current_user_uid),
    tz: ZoneInfo = Depends(get_viewer_timezone),
    store: FirestoreItineraryStore = Depends(get_itinerary_store),
):
    """
    Apply one drag-and-drop gesture: sourceId was released over targetId.

    Failed writes are reported in `failures`; the returned order is the
    optimistic one either way.
    """
    trip = await load_owned_trip(tripId, uid, store)
    sequencer = await load_sequencer(tripId, store, tz, uid)

    sequencer.begin_drag(body.sourceId, DragKind.item)
    result = await sequencer.end_drag(body.targetId)

    if result.failures:
        logger.warning(f"Reorder in trip {tripId} left {len(result.failures)} item(s) unsaved")
    return ReorderResponse(
        status=result.status.value,
        days=sequencer.days(trip.startDate, trip.endDate),
        writes=result.writes,
        failures=result.failures,
    )
