"""Pydantic models describing Ticket payloads."""

from datetime import datetime

from pydantic import BaseModel, Field

from helpdesk.api.schemas.job import Pagination


class TicketBase(BaseModel):
    title: str = Field(..., max_length=255)
    description: str | None = None
    status: str = Field("open", max_length=32)


class TicketCreate(TicketBase):
    """Schema for admin-created tickets."""


class TicketUpdate(BaseModel):
    title: str | None = Field(None, max_length=255)
    description: str | None = None
    status: str | None = Field(None, max_length=32)


class TicketRead(TicketBase):
    id: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class TicketListResponse(BaseModel):
    tickets: list[TicketRead]
    pagination: Pagination
