import os
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytest

# Add the parent directory to the path to import modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.models.itinerary import Idea, ScheduleItem
from app.models.trip import Trip
from app.services.itinerary_store import PersistenceError

TRIP_ID = "trip_test"


class InMemoryStore:
    """ItineraryStore fake that records every write and can be told to fail."""

    def __init__(self, items=None, ideas=None, trips=None):
        self.items: Dict[str, ScheduleItem] = {i.id: i for i in items or []}
        self.ideas: Dict[str, Idea] = {i.id: i for i in ideas or []}
        self.trips: Dict[str, Trip] = {t.id: t for t in trips or []}
        self.updates: List[tuple] = []
        self.created: List[Dict[str, Any]] = []
        self.deleted_ideas: List[str] = []
        self.fail_update_for = set()
        self.fail_create = False
        self.fail_delete_idea = False
        self._counter = 0

    async def get_trip(self, trip_id: str) -> Optional[Trip]:
        return self.trips.get(trip_id)

    async def create_trip(self, uid: str, trip: Dict[str, Any]) -> Trip:
        self._counter += 1
        created = Trip(id=f"trip_{self._counter}", createdBy=uid, **trip)
        self.trips[created.id] = created
        return created

    async def update_trip(self, trip_id: str, updates: Dict[str, Any]) -> None:
        self.trips[trip_id] = self.trips[trip_id].model_copy(update=updates)

    async def delete_trip(self, trip_id: str) -> Dict[str, int]:
        items = [i for i in self.items if self.items[i].tripId == trip_id]
        ideas = [i for i in self.ideas if self.ideas[i].tripId == trip_id]
        for item_id in items:
            del self.items[item_id]
        for idea_id in ideas:
            del self.ideas[idea_id]
        del self.trips[trip_id]
        return {"itinerary_items": len(items), "ideas": len(ideas)}

    async def list_trips_for_user(self, uid: str, limit: int = 50) -> List[Trip]:
        return [t for t in self.trips.values() if t.createdBy == uid][:limit]

    async def list_schedule_items(self, trip_id: str) -> List[ScheduleItem]:
        return [i for i in self.items.values() if i.tripId == trip_id]

    async def get_schedule_item(self, trip_id: str, item_id: str) -> Optional[ScheduleItem]:
        return self.items.get(item_id)

    async def create_schedule_item(self, trip_id: str, payload: Dict[str, Any]) -> ScheduleItem:
        if self.fail_create:
            raise PersistenceError("insert rejected")
        self._counter += 1
        item = ScheduleItem(id=f"item_new_{self._counter}", tripId=trip_id, **payload)
        self.items[item.id] = item
        self.created.append(payload)
        return item

    async def update_schedule_item(self, trip_id: str, item_id: str, updates: Dict[str, Any]) -> None:
        if item_id in self.fail_update_for:
            raise PersistenceError(f"update of {item_id} timed out")
        self.updates.append((item_id, updates))
        self.items[item_id] = self.items[item_id].model_copy(update=updates)

    async def delete_schedule_item(self, trip_id: str, item_id: str) -> None:
        self.items.pop(item_id, None)

    async def list_ideas(self, trip_id: str) -> List[Idea]:
        return [i for i in self.ideas.values() if i.tripId == trip_id]

    async def get_idea(self, trip_id: str, idea_id: str) -> Optional[Idea]:
        return self.ideas.get(idea_id)

    async def create_idea(self, trip_id: str, payload: Dict[str, Any]) -> Idea:
        self._counter += 1
        idea = Idea(id=f"idea_new_{self._counter}", tripId=trip_id, **payload)
        self.ideas[idea.id] = idea
        return idea

    async def update_idea(self, trip_id: str, idea_id: str, updates: Dict[str, Any]) -> None:
        self.ideas[idea_id] = self.ideas[idea_id].model_copy(update=updates)

    async def delete_idea(self, trip_id: str, idea_id: str) -> None:
        if self.fail_delete_idea:
            raise PersistenceError("delete rejected")
        self.deleted_ideas.append(idea_id)
        self.ideas.pop(idea_id, None)


def make_item(item_id: str, start: str, end: Optional[str] = None, **extra) -> ScheduleItem:
    return ScheduleItem(
        id=item_id,
        tripId=TRIP_ID,
        title=extra.pop("title", f"Item {item_id}"),
        startAt=datetime.fromisoformat(start),
        endAt=datetime.fromisoformat(end) if end else None,
        **extra,
    )


def make_idea(idea_id: str, **extra) -> Idea:
    return Idea(id=idea_id, tripId=TRIP_ID, title=extra.pop("title", f"Idea {idea_id}"), **extra)


@pytest.fixture
def sample_items():
    return [
        make_item("a", "2024-06-01T09:00:00"),
        make_item("hotel", "2024-06-01T15:00:00", "2024-06-03T11:00:00", category="accommodation"),
        make_item("b", "2024-06-02T14:00:00"),
        make_item("c", "2024-06-02T20:00:00"),
    ]


@pytest.fixture
def sample_ideas():
    return [
        make_idea("sintra", title="Sintra day trip", category="activity", priority="high",
                  description="Palaces", location="Sintra", notes="Take the early train"),
        make_idea("pasteis", title="Pasteis de Belem", priority="low"),
    ]


@pytest.fixture
def store(sample_items, sample_ideas):
    return InMemoryStore(items=sample_items, ideas=sample_ideas)
