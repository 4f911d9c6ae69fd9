"""
Calendar rules shared by the itinerary views and the sequencer.

Timestamps come in two flavours:
- naive datetimes are local wall time of the trip and are used as-is,
- aware datetimes are converted to the viewer's timezone before a day is taken.

A start time of 12:00 is the "flexible" sentinel: the item is on that day
but has no specific time. It sorts as noon among the day's items.
"""

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable, List, Optional, Tuple, TypeVar

from app.config import settings
from app.models.itinerary import DayBucket, Idea, Priority, ScheduleItem

FLEXIBLE_TIME = time.fromisoformat(settings.flexible_time)

PRIORITY_RANK = {Priority.high: 0, Priority.medium: 1, Priority.low: 2}

T = TypeVar("T")


def to_local(ts: datetime, tz: Optional[tzinfo] = None) -> datetime:
    if ts.tzinfo is None or tz is None:
        return ts
    return ts.astimezone(tz)


def local_day(ts: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of a timestamp as the viewer sees it."""
    return to_local(ts, tz).date()


def is_flexible(ts: datetime, tz: Optional[tzinfo] = None) -> bool:
    local = to_local(ts, tz)
    return local.time() == FLEXIBLE_TIME


def combine_date_time(day: date, at: Optional[time] = None, tz: Optional[tzinfo] = None) -> datetime:
    """Build a timestamp from form fields; no time means the flexible sentinel."""
    return datetime.combine(day, at if at is not None else FLEXIBLE_TIME, tzinfo=tz)


def move_to_day(
    start: datetime,
    end: Optional[datetime],
    target_day: date,
    tz: Optional[tzinfo] = None,
) -> Tuple[datetime, Optional[datetime]]:
    """
    Re-date an item to target_day keeping its local time-of-day.

    The end timestamp moves by exactly the same delta so the item's
    duration does not change.
    """
    local_start = to_local(start, tz)
    moved = datetime.combine(target_day, local_start.timetz())
    if start.tzinfo is not None:
        moved = moved.astimezone(start.tzinfo)
    delta: timedelta = moved - start
    return moved, (end + delta if end is not None else None)


def sort_key(item: ScheduleItem, tz: Optional[tzinfo] = None) -> datetime:
    # naive local wall time so naive and aware items compare together
    return to_local(item.startAt, tz).replace(tzinfo=None)


def order_items(items: Iterable[ScheduleItem], tz: Optional[tzinfo] = None) -> List[ScheduleItem]:
    """Ascending by local day then start; equal starts keep their list order."""
    return sorted(items, key=lambda item: sort_key(item, tz))


def array_move(items: List[T], old_index: int, new_index: int) -> List[T]:
    moved = list(items)
    moved.insert(new_index, moved.pop(old_index))
    return moved


def trip_days(start: date, end: date) -> List[date]:
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def group_by_day(
    items: Iterable[ScheduleItem],
    tz: Optional[tzinfo] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[DayBucket]:
    """
    Split an ordered item list into day buckets.

    When the trip range is given every day of it gets a bucket, empty or not.
    Items dated outside the range still get their own bucket so nothing is
    hidden from the caller.
    """
    buckets = {}
    if start is not None and end is not None:
        for day in trip_days(start, end):
            buckets[day] = []

    for item in items:
        buckets.setdefault(local_day(item.startAt, tz), []).append(item)

    result = []
    for day in sorted(buckets):
        day_number = None
        if start is not None and end is not None and start <= day <= end:
            day_number = (day - start).days + 1
        result.append(DayBucket(date=day, dayNumber=day_number, items=buckets[day]))
    return result


def _created_order(idea: Idea) -> float:
    created = idea.createdAt
    if isinstance(created, str):
        try:
            created = datetime.fromisoformat(created)
        except ValueError:
            return float("-inf")
    if isinstance(created, datetime):
        if created.tzinfo is None:
            return (created - datetime(1970, 1, 1)).total_seconds()
        return created.timestamp()
    return float("-inf")


def order_ideas(ideas: Iterable[Idea]) -> List[Idea]:
    """Backlog display order: high, medium, low; newest first within a priority."""
    newest_first = sorted(ideas, key=_created_order, reverse=True)
    return sorted(newest_first, key=lambda idea: PRIORITY_RANK[idea.priority])
