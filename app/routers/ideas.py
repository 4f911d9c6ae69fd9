from fastapi import APIRouter, Depends, HTTPException
from zoneinfo import ZoneInfo
import logging

from app.dependencies import get_current_user_uid, get_itinerary_store, get_viewer_timezone
from app.models.itinerary import (
    DeleteResponse,
    DragKind,
    IdeaCreate,
    IdeaResponse,
    IdeaUpdate,
    ListIdeasResponse,
    PromoteRequest,
    PromoteResponse,
)
from app.routers.trips import load_owned_trip
from app.services.itinerary_store import FirestoreItineraryStore
from app.services.sequencer import load_sequencer
from app.services.timeline import order_ideas

logger = logging.getLogger(__name__)
router = APIRouter(tags=["ideas"])


@router.get("/trips/{tripId}/ideas", response_model=ListIdeasResponse)
async def list_ideas(
    tripId: str,
    uid: str = Depends(get_current_user_uid),
    store: FirestoreItineraryStore = Depends(get_itinerary_store),
):
    await load_owned_trip(tripId, uid, store)
    return ListIdeasResponse(ideas=order_ideas(await store.list_ideas(tripId)))


@router.post("/trips/{tripId}/ideas", response_model=IdeaResponse, status_code=201)
async def create_idea(
    tripId: str,
    body: IdeaCreate,
    uid: str = Depends(get_current_user_uid),
    store: FirestoreItineraryStore = Depends(get_itinerary_store),
):
    await load_owned_trip(tripId, uid, store)
    idea = await store.create_idea(tripId, {**body.model_dump(), "addedBy": uid})
    logger.info(f"Added idea {idea.id} to trip {tripId}")
    return IdeaResponse(idea=idea)


@router.patch("/trips/{tripId}/ideas/{ideaId}", response_model=IdeaResponse)
async def update_idea(
    tripId: str,
    ideaId: str,
    body: IdeaUpdate,
    uid: str = Depends(get_current_user_uid),
    store: FirestoreItineraryStore = Depends(get_itinerary_store),
):
    await load_owned_trip(tripId, uid, store)
    existing = await store.get_idea(tripId, ideaId)
    if existing is None:
        raise HTTPException(status_code=404, detail=f"Idea {ideaId} not found")

    updates = body.model_dump(exclude_unset=True)
    if updates:
        await store.update_idea(tripId, ideaId, updates)
    return IdeaResponse(idea=existing.model_copy(update=updates))


@router.delete("/trips/{tripId}/ideas/{ideaId}", response_model=DeleteResponse)
async def delete_idea(
    tripId: str,
    ideaId: str,
    uid: str = Depends(get_current_user_uid),
    store: FirestoreItineraryStore = Depends(get_itinerary_store),
):
    await load_owned_trip(tripId, uid, store)
    if await store.get_idea(tripId, ideaId) is None:
        raise HTTPException(status_code=404, detail=f"Idea {ideaId} not found")
    await store.delete_idea(tripId, ideaId)
    return DeleteResponse(deletedId=ideaId)


@router.post("/trips/{tripId}/ideas/{ideaId}/promote", response_model=PromoteResponse)
async def promote_idea(
    tripId: str,
    ideaId: str,
    body: PromoteRequest,
    uid: str = Depends(get_current_user_uid),
    tz: ZoneInfo = Depends(get_viewer_timezone),
    store: FirestoreItineraryStore = Depends(get_itinerary_store),
):
    """
    Drop an idea onto an itinerary item: the idea becomes an item on that
    item's day with no specific time, and leaves the backlog.
    """
    trip = await load_owned_trip(tripId, uid, store)
    sequencer = await load_sequencer(tripId, store, tz, uid)

    sequencer.begin_drag(ideaId, DragKind.idea)
    result = await sequencer.end_drag(body.targetItemId)

    return PromoteResponse(
        status=result.status.value,
        itemId=result.item_id,
        days=sequencer.days(trip.startDate, trip.endDate),
        ideas=sequencer.ideas,
        failures=result.failures,
        ideaDeleteError=result.idea_delete_error,
    )
