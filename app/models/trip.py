from datetime import date
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Any, List


class TripCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    destination: str = Field(..., min_length=2, max_length=100, description="Travel destination")
    startDate: date
    endDate: date
    description: Optional[str] = Field(None, max_length=500)

    @field_validator("endDate")
    @classmethod
    def validate_end_date(cls, v: date, info) -> date:
        start_date = info.data.get("startDate")
        if start_date and v < start_date:
            raise ValueError("endDate must be on or after startDate")
        return v


class Trip(BaseModel):
    id: str
    name: str
    destination: str
    startDate: date
    endDate: date
    description: Optional[str] = None
    createdBy: Optional[str] = None
    createdAt: Optional[Any] = None
    updatedAt: Optional[Any] = None


class TripResponse(BaseModel):
    ok: bool = True
    trip: Trip


class ListTripsResponse(BaseModel):
    ok: bool = True
    trips: List[Trip]


class TripUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    destination: Optional[str] = Field(None, min_length=2, max_length=100)
    startDate: Optional[date] = None
    endDate: Optional[date] = None
    description: Optional[str] = Field(None, max_length=500)


class TripStats(BaseModel):
    itineraryItems: int = 0
    totalSpent: float = 0.0
    participants: int = 1  # the owner


class TripStatsResponse(BaseModel):
    ok: bool = True
    tripId: str
    stats: TripStats
