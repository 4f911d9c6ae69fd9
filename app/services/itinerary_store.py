import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol

from google.api_core import exceptions as gapi_exceptions

from app.models.itinerary import Idea, ScheduleItem
from app.models.trip import Trip
from app.services.firestore_service import FirestoreService

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class PersistenceError(RuntimeError):
    """A read or write against the backing store failed."""


class ItineraryStore(Protocol):
    """Async persistence contract the sequencer and the API depend on."""

    async def list_schedule_items(self, trip_id: str) -> List[ScheduleItem]: ...

    async def list_ideas(self, trip_id: str) -> List[Idea]: ...

    async def create_schedule_item(self, trip_id: str, payload: Dict[str, Any]) -> ScheduleItem: ...

    async def update_schedule_item(self, trip_id: str, item_id: str, updates: Dict[str, Any]) -> None: ...

    async def delete_idea(self, trip_id: str, idea_id: str) -> None: ...


class FirestoreItineraryStore:
    """
    ItineraryStore backed by FirestoreService.

    The Firestore admin client is synchronous, so every call is pushed to a
    worker thread; concurrent writes for one gesture then really run in
    parallel. Google API errors surface as PersistenceError.
    """

    def __init__(self, fs: FirestoreService):
        self.fs = fs

    async def _call(self, fn: Callable, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except gapi_exceptions.GoogleAPIError as e:
            logger.error(f"Firestore call {getattr(fn, '__name__', fn)} failed: {e}")
            raise PersistenceError(str(e)) from e

    # Trips
    async def create_trip(self, uid: str, trip: Dict[str, Any]) -> Trip:
        return Trip(**await self._call(self.fs.create_trip, uid, trip))

    async def get_trip(self, trip_id: str) -> Optional[Trip]:
        doc = await self._call(self.fs.get_trip, trip_id)
        return Trip(**doc) if doc else None

    async def list_trips_for_user(self, uid: str, limit: int = 50) -> List[Trip]:
        return [Trip(**d) for d in await self._call(self.fs.list_trips_for_user, uid, limit)]

    async def update_trip(self, trip_id: str, updates: Dict[str, Any]) -> None:
        await self._call(self.fs.update_trip, trip_id, updates)

    async def delete_trip(self, trip_id: str) -> Dict[str, int]:
        return await self._call(self.fs.delete_trip, trip_id)

    # Itinerary items
    async def list_schedule_items(self, trip_id: str) -> List[ScheduleItem]:
        return [ScheduleItem(**d) for d in await self._call(self.fs.list_itinerary_items, trip_id)]

    async def get_schedule_item(self, trip_id: str, item_id: str) -> Optional[ScheduleItem]:
        doc = await self._call(self.fs.get_itinerary_item, trip_id, item_id)
        return ScheduleItem(**doc) if doc else None

    async def create_schedule_item(self, trip_id: str, payload: Dict[str, Any]) -> ScheduleItem:
        return ScheduleItem(**await self._call(self.fs.create_itinerary_item, trip_id, payload))

    async def update_schedule_item(self, trip_id: str, item_id: str, updates: Dict[str, Any]) -> None:
        await self._call(self.fs.update_itinerary_item, trip_id, item_id, updates)

    async def delete_schedule_item(self, trip_id: str, item_id: str) -> None:
        await self._call(self.fs.delete_itinerary_item, trip_id, item_id)

    # Ideas
    async def list_ideas(self, trip_id: str) -> List[Idea]:
        return [Idea(**d) for d in await self._call(self.fs.list_ideas, trip_id)]

    async def get_idea(self, trip_id: str, idea_id: str) -> Optional[Idea]:
        doc = await self._call(self.fs.get_idea, trip_id, idea_id)
        return Idea(**doc) if doc else None

    async def create_idea(self, trip_id: str, payload: Dict[str, Any]) -> Idea:
        return Idea(**await self._call(self.fs.create_idea, trip_id, payload))

    async def update_idea(self, trip_id: str, idea_id: str, updates: Dict[str, Any]) -> None:
        await self._call(self.fs.update_idea, trip_id, idea_id, updates)

    async def delete_idea(self, trip_id: str, idea_id: str) -> None:
        await self._call(self.fs.delete_idea, trip_id, idea_id)
