from datetime import date, datetime, time
from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any


# ---------------------------
# Enumerations
# ---------------------------

class Category(str, Enum):
    flight = "flight"
    accommodation = "accommodation"
    activity = "activity"
    restaurant = "restaurant"
    transport = "transport"
    other = "other"


class Priority(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


class DragKind(str, Enum):
    item = "item"
    idea = "idea"


# ---------------------------
# Core Models
# ---------------------------

class ScheduleItem(BaseModel):
    id: str
    tripId: str
    title: str
    category: Category = Category.activity
    startAt: datetime
    endAt: Optional[datetime] = None
    description: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    confirmationNumber: Optional[str] = None
    cost: Optional[float] = None
    url: Optional[str] = None
    createdBy: Optional[str] = None
    createdAt: Optional[Any] = None
    updatedAt: Optional[Any] = None


class Idea(BaseModel):
    id: str
    tripId: str
    title: str
    category: Optional[Category] = None
    priority: Priority = Priority.medium
    description: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    url: Optional[str] = None
    estimatedDurationHours: Optional[float] = None
    estimatedCost: Optional[float] = None
    addedBy: Optional[str] = None
    createdAt: Optional[Any] = None
    updatedAt: Optional[Any] = None


class DayBucket(BaseModel):
    """One calendar day of the itinerary, items in display order."""
    date: date
    dayNumber: Optional[int] = None  # 1-based position in the trip, None when outside its range
    items: List[ScheduleItem] = []


class WriteFailure(BaseModel):
    itemId: str
    cause: str


# ---------------------------
# Request Models
# ---------------------------

class ScheduleItemCreate(BaseModel):
    """Item form submission. A missing time means the item has no specific time."""
    title: str = Field(..., min_length=1, max_length=200)
    category: Category = Category.activity
    startDate: date
    startTime: Optional[time] = None
    endDate: Optional[date] = None
    endTime: Optional[time] = None
    description: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    confirmationNumber: Optional[str] = None
    cost: Optional[float] = Field(None, ge=0)
    url: Optional[str] = None


class ScheduleItemUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[Category] = None
    startDate: Optional[date] = None
    startTime: Optional[time] = None
    endDate: Optional[date] = None
    endTime: Optional[time] = None
    description: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    confirmationNumber: Optional[str] = None
    cost: Optional[float] = Field(None, ge=0)
    url: Optional[str] = None


class IdeaCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    category: Optional[Category] = Category.activity
    priority: Priority = Priority.medium
    description: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    url: Optional[str] = None
    estimatedDurationHours: Optional[float] = Field(None, ge=0)
    estimatedCost: Optional[float] = Field(None, ge=0)


class IdeaUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[Category] = None
    priority: Optional[Priority] = None
    description: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    url: Optional[str] = None
    estimatedDurationHours: Optional[float] = Field(None, ge=0)
    estimatedCost: Optional[float] = Field(None, ge=0)


class ReorderRequest(BaseModel):
    sourceId: str
    targetId: Optional[str] = None  # None = released outside any slot


class PromoteRequest(BaseModel):
    targetItemId: Optional[str] = None


# ---------------------------
# Response Models
# ---------------------------

class ItineraryResponse(BaseModel):
    ok: bool = True
    tripId: str
    days: List[DayBucket]


class ReorderResponse(BaseModel):
    status: str  # "resolved" | "cancelled"
    days: List[DayBucket]
    writes: List[str] = []
    failures: List[WriteFailure] = []


class PromoteResponse(BaseModel):
    status: str  # "promoted" | "noop" | "failed"
    itemId: Optional[str] = None
    days: List[DayBucket]
    ideas: List[Idea]
    failures: List[WriteFailure] = []
    ideaDeleteError: Optional[str] = None


class ScheduleItemResponse(BaseModel):
    ok: bool = True
    item: ScheduleItem
    isFlexible: bool = False


class IdeaResponse(BaseModel):
    ok: bool = True
    idea: Idea


class ListIdeasResponse(BaseModel):
    ok: bool = True
    ideas: List[Idea]


class DeleteResponse(BaseModel):
    ok: bool = True
    deletedId: str
    meta: Optional[Dict[str, Any]] = None
