"""Request and response bodies for POST /book."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class BookingRequest(BaseModel):
    startTime: str = Field(..., description="ISO-8601 start instant")
    endTime: str = Field(..., description="ISO-8601 end instant")
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    timezone: Optional[str] = None  # requester's display zone; defaults to the business zone


class BookingResponse(BaseModel):
    eventId: Optional[str] = None
    htmlLink: Optional[str] = None
