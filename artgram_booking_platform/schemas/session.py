"""
Pydantic schemas for session-related API requests and responses.
"""

import re
from datetime import date as date_type, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.session import Activity

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def normalize_date(value) -> str:
    """Return a YYYY-MM-DD string for a date or date-like string."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date_type):
        return value.isoformat()
    if isinstance(value, str):
        return date_type.fromisoformat(value.strip()).isoformat()
    raise ValueError("Date must be in YYYY-MM-DD format")


class SessionTemplate(BaseModel):
    """One time slot to materialize on each generated date."""

    time: str = Field(..., description="Wall-clock start time (HH:MM)")
    label: Optional[str] = Field(None, max_length=50, description="Display label, defaults to the time")
    total_seats: int = Field(..., ge=1, description="Seat capacity")
    type: str = Field(..., min_length=1, max_length=100, description="Session type")
    age_group: str = Field(..., min_length=1, max_length=50, description="Age group")
    price: Optional[Decimal] = Field(None, ge=0, description="Informational price")
    notes: Optional[str] = Field(None, description="Staff notes")

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        if not TIME_PATTERN.match(v):
            raise ValueError("Time must be in HH:MM format")
        return v


class SessionSpec(SessionTemplate):
    """A fully specified session for bulk replacement."""

    activity: Activity = Field(..., description="Activity")
    is_active: bool = Field(True, description="Whether the session is bookable")


class SessionCreate(SessionSpec):
    """Schema for creating a single session."""

    branch_id: UUID = Field(..., description="Branch hosting the session")
    date: str = Field(..., description="Branch-local date (YYYY-MM-DD)")

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v) -> str:
        return normalize_date(v)


class SessionUpdate(BaseModel):
    """Schema for editing session metadata; all fields optional."""

    label: Optional[str] = Field(None, max_length=50)
    type: Optional[str] = Field(None, min_length=1, max_length=100)
    age_group: Optional[str] = Field(None, min_length=1, max_length=50)
    price: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None
    is_active: Optional[bool] = None
    total_seats: Optional[int] = Field(None, ge=1, description="New capacity; cannot drop below booked seats")


class CapacityUpdate(BaseModel):
    """Schema for changing a session's capacity."""

    total_seats: int = Field(..., ge=1)


class GenerateSessionsRequest(BaseModel):
    """Schema for generating sessions over a set of dates."""

    branch_id: UUID
    activity: Activity
    dates: List[str] = Field(..., min_length=1, description="Dates to fill (YYYY-MM-DD)")
    templates: Optional[List[SessionTemplate]] = Field(
        None, description="Time slots to create; the configured defaults are used when omitted"
    )

    @field_validator("dates", mode="before")
    @classmethod
    def validate_dates(cls, v) -> List[str]:
        return [normalize_date(d) for d in v]


class BulkReplaceRequest(BaseModel):
    """Schema for replacing every session of a branch on one date."""

    branch_id: UUID
    date: str
    sessions: List[SessionSpec] = Field(default_factory=list)

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v) -> str:
        return normalize_date(v)


class SessionResponse(BaseModel):
    """Schema for session responses."""

    id: UUID
    branch_id: UUID
    date: str
    time: str
    activity: Activity
    label: Optional[str]
    total_seats: int
    booked_seats: int
    available_seats: int
    is_sold_out: bool = False
    type: str
    age_group: str
    price: Optional[Decimal]
    is_active: bool
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AvailabilityQuery(BaseModel):
    """Filters for the availability listing."""

    branch_id: UUID
    activity: Optional[Activity] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def validate_dates(cls, v) -> Optional[str]:
        if v is None:
            return v
        return normalize_date(v)

    @model_validator(mode="after")
    def validate_range(self) -> "AvailabilityQuery":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self


class AvailabilityResponse(BaseModel):
    """Schema for availability listings."""

    sessions: List[SessionResponse]
    stale: bool = Field(False, description="True when served from cache because the database is unavailable")


class GenerationReport(BaseModel):
    """Outcome of session generation."""

    created: int = 0
    created_dates: List[str] = Field(default_factory=list)
    skipped_existing: List[str] = Field(default_factory=list)
    skipped_closed: List[str] = Field(default_factory=list)


class BulkReplaceResponse(BaseModel):
    """Outcome of a bulk replacement."""

    date: str
    deleted: int
    created: int
    sessions: List[SessionResponse]
