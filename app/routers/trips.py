from datetime import date
from fastapi import APIRouter, Depends, HTTPException
import logging

from app.config import settings
from app.dependencies import get_current_user_uid, get_itinerary_store
from app.models.itinerary import DeleteResponse
from app.models.trip import (
    ListTripsResponse,
    Trip,
    TripCreate,
    TripResponse,
    TripStats,
    TripStatsResponse,
    TripUpdate,
)
from app.services.itinerary_store import FirestoreItineraryStore

logger = logging.getLogger(__name__)
router = APIRouter(tags=["trips"])


async def load_owned_trip(trip_id: str, uid: str, store: FirestoreItineraryStore) -> Trip:
    """Fetch a trip, hiding trips of other users behind the same 404."""
    trip = await store.get_trip(trip_id)
    if trip is None or trip.createdBy != uid:
        raise HTTPException(status_code=404, detail=f"Trip {trip_id} not found")
    return trip


def _check_date_range(start: date, end: date):
    if end < start:
        raise HTTPException(status_code=400, detail="endDate must be on or after startDate")
    num_days = (end - start).days + 1
    if num_days > settings.max_trip_days:
        raise HTTPException(
            status_code=400,
            detail=f"Trips are limited to {settings.max_trip_days} days, got {num_days}",
        )


@router.post("/trips", response_model=TripResponse, status_code=201)
async def create_trip(
    body: TripCreate,
    uid: str = Depends(get_current_user_uid),
    store: FirestoreItineraryStore = Depends(get_itinerary_store),
):
    _check_date_range(body.startDate, body.endDate)
    trip = await store.create_trip(uid, body.model_dump())
    logger.info(f"Created trip {trip.id} to {trip.destination} for user {uid}")
    return TripResponse(trip=trip)


@router.get("/trips", response_model=ListTripsResponse)
async def list_trips(
    uid: str = Depends(get_current_user_uid),
    store: FirestoreItineraryStore = Depends(get_itinerary_store),
):
    return ListTripsResponse(trips=await store.list_trips_for_user(uid, settings.list_limit))


@router.get("/trips/{tripId}", response_model=TripResponse)
async def get_trip(
    tripId: str,
    uid: str = Depends(get_current_user_uid),
    store: FirestoreItineraryStore = Depends(get_itinerary_store),
):
    return TripResponse(trip=await load_owned_trip(tripId, uid, store))


@router.patch("/trips/{tripId}", response_model=TripResponse)
async def update_trip(
    tripId: str,
    body: TripUpdate,
    uid: str = Depends(get_current_user_uid),
    store: FirestoreItineraryStore = Depends(get_itinerary_store),
):
    """
    Edit trip details. Changing startDate/endDate changes the day range the
    itinerary is grouped over; items themselves are not re-dated.
    """
    trip = await load_owned_trip(tripId, uid, store)
    updates = {
        key: value for key, value in body.model_dump(exclude_unset=True).items()
        if value is not None or key == "description"
    }
    updated = trip.model_copy(update=updates)
    _check_date_range(updated.startDate, updated.endDate)

    if updates:
        await store.update_trip(tripId, updates)
        logger.info(f"Updated trip {tripId}: {sorted(updates)}")
    return TripResponse(trip=updated)


@router.delete("/trips/{tripId}", response_model=DeleteResponse)
async def delete_trip(
    tripId: str,
    uid: str = Depends(get_current_user_uid),
    store: FirestoreItineraryStore = Depends(get_itinerary_store),
):
    await load_owned_trip(tripId, uid, store)
    deleted = await store.delete_trip(tripId)
    logger.info(f"Deleted trip {tripId} with {deleted}")
    return DeleteResponse(deletedId=tripId, meta={"deleted": deleted})


@router.get("/trips/{tripId}/stats", response_model=TripStatsResponse)
async def get_trip_stats(
    tripId: str,
    uid: str = Depends(get_current_user_uid),
    store: FirestoreItineraryStore = Depends(get_itinerary_store),
):
    await load_owned_trip(tripId, uid, store)
    items = await store.list_schedule_items(tripId)
    stats = TripStats(
        itineraryItems=len(items),
        totalSpent=sum(item.cost or 0 for item in items),
    )
    return TripStatsResponse(tripId=tripId, stats=stats)
