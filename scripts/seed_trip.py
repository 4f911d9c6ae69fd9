import os, sys
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from app.dependencies import get_firestore_client
from app.services.firestore_service import FirestoreService

fs = FirestoreService(get_firestore_client())

def seed_trip(uid: str):
    trip = fs.create_trip(uid, {
        "name": "Lisbon Long Weekend",
        "destination": "Lisbon",
        "startDate": "2024-06-01",
        "endDate": "2024-06-03",
    })
    trip_id = trip["id"]

    items = [
        {"title": "Flight to LIS", "category": "flight", "startAt": "2024-06-01T09:00:00", "endAt": "2024-06-01T11:30:00"},
        {"title": "Hotel Alfama", "category": "accommodation", "startAt": "2024-06-01T15:00:00", "endAt": "2024-06-03T11:00:00"},
        {"title": "Tram 28", "category": "activity", "startAt": "2024-06-02T12:00:00"},
        {"title": "Dinner at Taberna", "category": "restaurant", "startAt": "2024-06-02T20:00:00"},
    ]
    for item in items:
        fs.create_itinerary_item(trip_id, {**item, "createdBy": uid})

    ideas = [
        {"title": "Sintra day trip", "category": "activity", "priority": "high", "addedBy": uid},
        {"title": "Pasteis de Belem", "category": "restaurant", "priority": "medium", "addedBy": uid},
    ]
    for idea in ideas:
        fs.create_idea(trip_id, idea)

    print(f"Seeded trip {trip_id} with {len(items)} items and {len(ideas)} ideas for user {uid}")

if __name__ == "__main__":
    seed_trip(sys.argv[1] if len(sys.argv) > 1 else "demo_user")
