"""
Firestore Service Layer for the trip planner.

This service wraps all read/write operations for:
- Trips
- Itinerary items (trips/{tripId}/itinerary_items)
- Ideas backlog (trips/{tripId}/ideas)

Assumptions:
- A trip and everything under it belongs to the user who created it.
- Item timestamps are stored as ISO-8601 strings. Naive values are local
  wall time of the trip and must never be shifted to UTC on the way in or out.
- Writes are plain document writes; there is no cross-document transaction.
"""

import uuid
from enum import Enum
from typing import Optional, Dict, Any, List
from datetime import date, datetime, timezone
from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

TRIPS = "trips"
ITINERARY_ITEMS = "itinerary_items"
IDEAS = "ideas"


class FirestoreService:
    def __init__(self, db: firestore.Client):
        self.db = db

    # -------------------------
    # Utility
    # -------------------------
    def _new_id(self, prefix: str) -> str:
        return f"{prefix}_{uuid.uuid4().hex[:10]}"

    def _now(self):
        return datetime.now(timezone.utc)

    @staticmethod
    def _encode(data: Dict[str, Any]) -> Dict[str, Any]:
        """Convert dates and datetimes to ISO strings; enums to their values."""
        encoded = {}
        for key, value in data.items():
            if isinstance(value, (datetime, date)):
                encoded[key] = value.isoformat()
            elif isinstance(value, Enum):
                encoded[key] = value.value
            else:
                encoded[key] = value
        return encoded

    def _trip_ref(self, trip_id: str):
        return self.db.collection(TRIPS).document(trip_id)

    def _items(self, trip_id: str):
        return self._trip_ref(trip_id).collection(ITINERARY_ITEMS)

    def _ideas(self, trip_id: str):
        return self._trip_ref(trip_id).collection(IDEAS)

    # -------------------------
    # Trip Helpers
    # -------------------------
    def create_trip(self, uid: str, trip: Dict[str, Any]) -> Dict[str, Any]:
        trip_id = self._new_id("trip")
        now = self._now()
        doc = {
            **self._encode(trip),
            "id": trip_id,
            "createdBy": uid,
            "createdAt": now,
            "updatedAt": now,
        }
        self._trip_ref(trip_id).set(doc)
        return doc

    def get_trip(self, trip_id: str) -> Optional[Dict[str, Any]]:
        snap = self._trip_ref(trip_id).get()
        return snap.to_dict() if snap.exists else None

    def list_trips_for_user(self, uid: str, limit: int = 50) -> List[Dict[str, Any]]:
        query = self.db.collection(TRIPS).where(filter=FieldFilter("createdBy", "==", uid)).limit(limit)
        trips = [s.to_dict() for s in query.stream()]
        return sorted(trips, key=lambda t: t.get("startDate") or "", reverse=True)

    def update_trip(self, trip_id: str, updates: Dict[str, Any]):
        self._trip_ref(trip_id).update({
            **self._encode(updates),
            "updatedAt": firestore.SERVER_TIMESTAMP,
        })

    def delete_trip(self, trip_id: str) -> Dict[str, int]:
        """
        Delete a trip together with its itinerary_items and ideas subcollections.
        Firestore does not cascade, so child documents are removed in batches first.
        """
        deleted = {
            ITINERARY_ITEMS: self._delete_collection(self._items(trip_id)),
            IDEAS: self._delete_collection(self._ideas(trip_id)),
        }
        self._trip_ref(trip_id).delete()
        return deleted

    def _delete_collection(self, col, batch_size: int = 400) -> int:
        count = 0
        batch = self.db.batch()
        pending = 0
        for snap in col.stream():
            batch.delete(snap.reference)
            pending += 1
            count += 1
            if pending == batch_size:
                batch.commit()
                batch = self.db.batch()
                pending = 0
        if pending:
            batch.commit()
        return count

    # -------------------------
    # Itinerary Item Helpers
    # -------------------------
    def list_itinerary_items(self, trip_id: str) -> List[Dict[str, Any]]:
        snaps = self._items(trip_id).order_by("startAt").stream()
        return [s.to_dict() for s in snaps]

    def get_itinerary_item(self, trip_id: str, item_id: str) -> Optional[Dict[str, Any]]:
        snap = self._items(trip_id).document(item_id).get()
        return snap.to_dict() if snap.exists else None

    def create_itinerary_item(self, trip_id: str, item: Dict[str, Any]) -> Dict[str, Any]:
        item_id = self._new_id("item")
        now = self._now()
        doc = {
            **self._encode(item),
            "id": item_id,
            "tripId": trip_id,
            "createdAt": now,
            "updatedAt": now,
        }
        self._items(trip_id).document(item_id).set(doc)
        return doc

    def update_itinerary_item(self, trip_id: str, item_id: str, updates: Dict[str, Any]):
        """Partial update. Raises google.api_core.exceptions.NotFound for a missing item."""
        self._items(trip_id).document(item_id).update({
            **self._encode(updates),
            "updatedAt": firestore.SERVER_TIMESTAMP,
        })

    def delete_itinerary_item(self, trip_id: str, item_id: str):
        self._items(trip_id).document(item_id).delete()

    # -------------------------
    # Idea Helpers
    # -------------------------
    def list_ideas(self, trip_id: str) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in self._ideas(trip_id).stream()]

    def get_idea(self, trip_id: str, idea_id: str) -> Optional[Dict[str, Any]]:
        snap = self._ideas(trip_id).document(idea_id).get()
        return snap.to_dict() if snap.exists else None

    def create_idea(self, trip_id: str, idea: Dict[str, Any]) -> Dict[str, Any]:
        idea_id = self._new_id("idea")
        now = self._now()
        doc = {
            **self._encode(idea),
            "id": idea_id,
            "tripId": trip_id,
            "createdAt": now,
            "updatedAt": now,
        }
        self._ideas(trip_id).document(idea_id).set(doc)
        return doc

    def update_idea(self, trip_id: str, idea_id: str, updates: Dict[str, Any]):
        self._ideas(trip_id).document(idea_id).update({
            **self._encode(updates),
            "updatedAt": firestore.SERVER_TIMESTAMP,
        })

    def delete_idea(self, trip_id: str, idea_id: str):
        self._ideas(trip_id).document(idea_id).delete()
