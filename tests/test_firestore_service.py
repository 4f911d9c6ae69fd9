from datetime import date, datetime
from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as gapi_exceptions

from app.models.itinerary import Category
from app.services.firestore_service import FirestoreService
from app.services.itinerary_store import FirestoreItineraryStore, PersistenceError


@pytest.fixture
def mock_db():
    return MagicMock()


@pytest.fixture
def fs(mock_db):
    return FirestoreService(mock_db)


def item_doc(mock_db):
    return mock_db.collection.return_value.document.return_value.collection.return_value.document.return_value


def test_create_itinerary_item_encodes_timestamps_as_local_iso(fs, mock_db):
    doc = fs.create_itinerary_item("trip_1", {
        "title": "Tram 28",
        "category": Category.activity,
        "startAt": datetime(2024, 6, 2, 12, 0),
        "endAt": None,
    })

    assert doc["id"].startswith("item_")
    assert doc["tripId"] == "trip_1"
    assert doc["startAt"] == "2024-06-02T12:00:00"
    assert doc["category"] == "activity"
    assert doc["endAt"] is None

    mock_db.collection.assert_called_with("trips")
    mock_db.collection.return_value.document.assert_called_with("trip_1")
    mock_db.collection.return_value.document.return_value.collection.assert_called_with("itinerary_items")
    item_doc(mock_db).set.assert_called_once_with(doc)


def test_update_itinerary_item_is_partial(fs, mock_db):
    fs.update_itinerary_item("trip_1", "item_a", {"startAt": datetime(2024, 6, 2, 9, 0), "endAt": None})

    written = item_doc(mock_db).update.call_args[0][0]
    assert written["startAt"] == "2024-06-02T09:00:00"
    assert written["endAt"] is None
    assert "updatedAt" in written


def test_get_trip_missing_returns_none(fs, mock_db):
    mock_db.collection.return_value.document.return_value.get.return_value.exists = False
    assert fs.get_trip("nope") is None


def test_list_ideas_returns_dicts(fs, mock_db):
    snap = MagicMock()
    snap.to_dict.return_value = {"id": "idea_1", "tripId": "trip_1", "title": "Sintra"}
    ideas_col = mock_db.collection.return_value.document.return_value.collection.return_value
    ideas_col.stream.return_value = [snap]

    assert fs.list_ideas("trip_1") == [{"id": "idea_1", "tripId": "trip_1", "title": "Sintra"}]


@pytest.mark.asyncio
async def test_store_parses_documents_into_models():
    fs = MagicMock(spec=FirestoreService)
    fs.list_itinerary_items.return_value = [
        {"id": "item_a", "tripId": "trip_1", "title": "Flight", "category": "flight",
         "startAt": "2024-06-01T09:00:00", "endAt": "2024-06-01T11:30:00"},
    ]
    store = FirestoreItineraryStore(fs)

    items = await store.list_schedule_items("trip_1")

    assert items[0].startAt == datetime(2024, 6, 1, 9, 0)
    assert items[0].startAt.tzinfo is None
    assert items[0].category == Category.flight


@pytest.mark.asyncio
async def test_store_wraps_google_errors():
    fs = MagicMock(spec=FirestoreService)
    fs.update_itinerary_item.side_effect = gapi_exceptions.NotFound("No document to update")
    store = FirestoreItineraryStore(fs)

    with pytest.raises(PersistenceError):
        await store.update_schedule_item("trip_1", "item_gone", {"startAt": datetime(2024, 6, 1, 9, 0)})


@pytest.mark.asyncio
async def test_store_get_trip_missing():
    fs = MagicMock(spec=FirestoreService)
    fs.get_trip.return_value = None
    store = FirestoreItineraryStore(fs)

    assert await store.get_trip("nope") is None


def test_update_trip_encodes_dates(fs, mock_db):
    fs.update_trip("trip_1", {"endDate": date(2024, 6, 4)})

    written = mock_db.collection.return_value.document.return_value.update.call_args[0][0]
    assert written["endDate"] == "2024-06-04"
    assert "updatedAt" in written


def test_delete_trip_removes_subcollections_then_trip(fs, mock_db):
    trip_ref = mock_db.collection.return_value.document.return_value
    children = trip_ref.collection.return_value
    children.stream.side_effect = [[MagicMock(), MagicMock()], [MagicMock()]]
    batch = mock_db.batch.return_value

    deleted = fs.delete_trip("trip_1")

    assert deleted == {"itinerary_items": 2, "ideas": 1}
    assert batch.delete.call_count == 3
    assert batch.commit.call_count == 2
    trip_ref.collection.assert_any_call("itinerary_items")
    trip_ref.collection.assert_any_call("ideas")
    trip_ref.delete.assert_called_once_with()


def test_delete_collection_commits_in_batches(fs, mock_db):
    col = MagicMock()
    col.stream.return_value = [MagicMock() for _ in range(5)]

    assert fs._delete_collection(col, batch_size=2) == 5
    assert mock_db.batch.return_value.commit.call_count == 3
