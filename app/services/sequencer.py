"""
Itinerary sequencer: turns drag-and-drop gestures into a new day ordering
and the persistence writes that make it durable.

Order is derived from timestamps, never from a stored position, so a move
only ever writes the item whose start/end actually changed.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, tzinfo
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from app.models.itinerary import (
    Category,
    DayBucket,
    DragKind,
    Idea,
    ScheduleItem,
    WriteFailure,
)
from app.services.itinerary_store import ItineraryStore
from app.services.timeline import (
    FLEXIBLE_TIME,
    array_move,
    group_by_day,
    local_day,
    move_to_day,
    order_ideas,
    order_items,
    to_local,
)

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class DragPhase(str, Enum):
    idle = "idle"
    dragging = "dragging"
    resolved = "resolved"
    cancelled = "cancelled"


class PromotionStatus(str, Enum):
    promoted = "promoted"
    noop = "noop"
    failed = "failed"


class DragStateError(RuntimeError):
    """Raised when the input layer starts or ends a drag out of sequence."""


@dataclass(frozen=True)
class DragSession:
    phase: DragPhase = DragPhase.idle
    source_id: Optional[str] = None
    kind: Optional[DragKind] = None


@dataclass
class DropTarget:
    item: ScheduleItem
    day: date


@dataclass
class ReorderResult:
    status: DragPhase
    writes: List[str] = field(default_factory=list)
    failures: List[WriteFailure] = field(default_factory=list)


@dataclass
class PromotionResult:
    status: PromotionStatus
    item_id: Optional[str] = None
    failures: List[WriteFailure] = field(default_factory=list)
    idea_delete_error: Optional[str] = None


DropResult = Union[ReorderResult, PromotionResult]


class ItinerarySequencer:
    """
    Owns one trip's items and ideas for the lifetime of a view.

    All state changes are applied in memory first; writes are issued
    afterwards, concurrently, and a failed write is reported but never
    rolled back.
    """

    def __init__(
        self,
        trip_id: str,
        items: List[ScheduleItem],
        ideas: List[Idea],
        store: ItineraryStore,
        tz: Optional[tzinfo] = None,
        user_id: Optional[str] = None,
    ):
        self.trip_id = trip_id
        self.store = store
        self.tz = tz
        self.user_id = user_id
        self._items = order_items(items, tz)
        self._ideas = list(ideas)
        self.session = DragSession()
        self.last_drop: Optional[DragSession] = None

    # -------------------------
    # Views
    # -------------------------
    @property
    def items(self) -> List[ScheduleItem]:
        return list(self._items)

    @property
    def ideas(self) -> List[Idea]:
        return order_ideas(self._ideas)

    def days(self, start: Optional[date] = None, end: Optional[date] = None) -> List[DayBucket]:
        return group_by_day(self._items, self.tz, start, end)

    def _index_of(self, item_id: str) -> int:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return -1

    # -------------------------
    # Drag state machine
    # -------------------------
    def begin_drag(self, source_id: str, kind: DragKind = DragKind.item) -> DragSession:
        if self.session.phase == DragPhase.dragging:
            raise DragStateError(f"Drag of {self.session.source_id} already in progress")
        self.session = DragSession(DragPhase.dragging, source_id, kind)
        return self.session

    def cancel_drag(self) -> ReorderResult:
        if self.session.phase == DragPhase.dragging:
            logger.info(f"Drag of {self.session.source_id} cancelled")
        self.last_drop = DragSession(DragPhase.cancelled, self.session.source_id, self.session.kind)
        self.session = DragSession()
        return ReorderResult(status=DragPhase.cancelled)

    async def end_drag(self, target_id: Optional[str]) -> DropResult:
        """Release the current drag over target_id (None = outside any slot)."""
        if self.session.phase != DragPhase.dragging:
            raise DragStateError("No drag in progress")

        source_id, kind = self.session.source_id, self.session.kind
        try:
            if kind == DragKind.idea:
                result = await self.promote(source_id, target_id)
                phase = DragPhase.cancelled if result.status == PromotionStatus.noop else DragPhase.resolved
            else:
                result = await self.reorder(source_id, target_id)
                phase = result.status
            self.last_drop = DragSession(phase, source_id, kind)
            return result
        finally:
            self.session = DragSession()

    # -------------------------
    # Drop-target resolution
    # -------------------------
    def resolve_drop_target(self, target_id: Optional[str]) -> Optional[DropTarget]:
        if target_id is None:
            return None
        index = self._index_of(target_id)
        if index == -1:
            return None
        item = self._items[index]
        return DropTarget(item=item, day=local_day(item.startAt, self.tz))

    # -------------------------
    # Reorder
    # -------------------------
    async def reorder(self, source_id: str, target_id: Optional[str]) -> ReorderResult:
        if source_id == target_id:
            return ReorderResult(status=DragPhase.cancelled)

        target = self.resolve_drop_target(target_id)
        old_index = self._index_of(source_id)
        if target is None or old_index == -1:
            logger.info(f"Drop of {source_id} onto {target_id} did not resolve, ignoring")
            return ReorderResult(status=DragPhase.cancelled)

        before = {item.id: (item.startAt, item.endAt) for item in self._items}

        source = self._items[old_index]
        if local_day(source.startAt, self.tz) != target.day:
            start_at, end_at = move_to_day(source.startAt, source.endAt, target.day, self.tz)
            source = source.model_copy(update={"startAt": start_at, "endAt": end_at})
            logger.info(f"Moving item {source_id} to {target.day.isoformat()}")

        new_index = self._index_of(target.item.id)
        moved = array_move(self._items, old_index, new_index)
        moved[new_index] = source
        self._items = order_items(moved, self.tz)

        changed = [item for item in self._items if before[item.id] != (item.startAt, item.endAt)]
        failures = await self._persist_timings(changed)
        return ReorderResult(
            status=DragPhase.resolved,
            writes=[item.id for item in changed],
            failures=failures,
        )

    async def _persist_timings(self, changed: List[ScheduleItem]) -> List[WriteFailure]:
        async def write(item: ScheduleItem) -> Optional[WriteFailure]:
            try:
                await self.store.update_schedule_item(
                    self.trip_id, item.id, {"startAt": item.startAt, "endAt": item.endAt}
                )
            except Exception as e:
                logger.error(f"Failed to save new timing for item {item.id}: {e}")
                return WriteFailure(itemId=item.id, cause=str(e))
            return None

        results = await asyncio.gather(*(write(item) for item in changed))
        return [failure for failure in results if failure is not None]

    # -------------------------
    # Idea promotion
    # -------------------------
    def _promoted_payload(self, idea: Idea, target: DropTarget) -> Dict[str, Any]:
        local_ref = to_local(target.item.startAt, self.tz)
        start_at = local_ref.replace(
            hour=FLEXIBLE_TIME.hour,
            minute=FLEXIBLE_TIME.minute,
            second=FLEXIBLE_TIME.second,
            microsecond=0,
        )
        return {
            "title": idea.title,
            "description": idea.description,
            "category": idea.category or Category.activity,
            "startAt": start_at,
            "endAt": None,
            "location": idea.location,
            "notes": idea.notes,
            "url": idea.url,
            "createdBy": self.user_id,
        }

    async def promote(self, idea_id: str, target_id: Optional[str]) -> PromotionResult:
        """Turn an idea into an item on the target's day, at the flexible time."""
        idea = next((i for i in self._ideas if i.id == idea_id), None)
        target = self.resolve_drop_target(target_id)
        if idea is None or target is None:
            logger.info(f"Promotion of idea {idea_id} onto {target_id} did not resolve, ignoring")
            return PromotionResult(status=PromotionStatus.noop)

        payload = self._promoted_payload(idea, target)
        created, deleted = await asyncio.gather(
            self.store.create_schedule_item(self.trip_id, payload),
            self.store.delete_idea(self.trip_id, idea_id),
            return_exceptions=True,
        )
        for outcome in (created, deleted):
            if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                raise outcome

        if isinstance(created, Exception):
            logger.error(f"Failed to create itinerary item from idea {idea_id}: {created}")
            if not isinstance(deleted, Exception):
                logger.warning(f"Idea {idea_id} was deleted although its item was not created")
            return PromotionResult(
                status=PromotionStatus.failed,
                failures=[WriteFailure(itemId=idea_id, cause=str(created))],
            )

        idea_delete_error = None
        if isinstance(deleted, Exception):
            logger.warning(f"Item {created.id} created but idea {idea_id} could not be deleted: {deleted}")
            idea_delete_error = str(deleted)

        self._ideas = [i for i in self._ideas if i.id != idea_id]
        self._items = order_items(self._items + [created], self.tz)
        logger.info(f"Promoted idea {idea_id} to item {created.id} on {target.day.isoformat()}")
        return PromotionResult(
            status=PromotionStatus.promoted,
            item_id=created.id,
            idea_delete_error=idea_delete_error,
        )


async def load_sequencer(
    trip_id: str,
    store: ItineraryStore,
    tz: Optional[tzinfo] = None,
    user_id: Optional[str] = None,
) -> ItinerarySequencer:
    """Load a trip's items and ideas together and wrap them in a sequencer."""
    items, ideas = await asyncio.gather(store.list_schedule_items(trip_id), store.list_ideas(trip_id))
    return ItinerarySequencer(trip_id, items, ideas, store, tz, user_id)
