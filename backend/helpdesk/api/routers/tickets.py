"""CRUD endpoints for helpdesk tickets."""

from __future__ import annotations

import logging
import math

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from helpdesk.api.dependencies.auth import CurrentUser, get_current_user, require_admin
from helpdesk.api.dependencies.db import get_session
from helpdesk.api.schemas.job import Pagination
from helpdesk.api.schemas.ticket import (
    TicketCreate,
    TicketListResponse,
    TicketRead,
    TicketUpdate,
)
from helpdesk.services import ticket_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/",
    summary="List live tickets with pagination",
    response_model=TicketListResponse,
)
async def list_tickets(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(10, ge=1, le=500, description="Tickets per page"),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> TicketListResponse:
    """Soft-deleted tickets are excluded."""
    try:
        tickets, total = ticket_service.list_tickets(db, page=page, limit=limit)
        return TicketListResponse(
            tickets=[TicketRead.model_validate(t) for t in tickets],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit),
            ),
        )
    except SQLAlchemyError as e:
        logger.error(f"Database error listing tickets: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve tickets",
        ) from e


@router.get(
    "/{ticket_id}",
    summary="Fetch a single ticket",
    response_model=TicketRead,
)
async def get_ticket(
    ticket_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> TicketRead:
    ticket = ticket_service.get_ticket(db, ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail=ticket_service.TICKET_NOT_FOUND)
    return TicketRead.model_validate(ticket)


@router.post(
    "/",
    summary="Create a ticket",
    status_code=status.HTTP_201_CREATED,
    response_model=TicketRead,
)
async def create_ticket(
    payload: TicketCreate,
    user: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_session),
) -> TicketRead:
    if not payload.title.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title is required",
        )
    try:
        ticket = ticket_service.create_ticket(
            db,
            title=payload.title.strip(),
            description=payload.description,
            status=payload.status,
        )
        db.commit()
        db.refresh(ticket)
        return TicketRead.model_validate(ticket)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error creating ticket: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create ticket",
        ) from e


@router.put(
    "/{ticket_id}",
    summary="Update a ticket",
    response_model=TicketRead,
)
async def update_ticket(
    ticket_id: int,
    payload: TicketUpdate,
    user: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_session),
) -> TicketRead:
    """Partial update; omitted fields keep their value."""
    if payload.title is not None and not payload.title.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title cannot be empty",
        )
    try:
        ticket = ticket_service.update_ticket(
            db,
            ticket_id,
            title=payload.title.strip() if payload.title else None,
            description=payload.description,
            status=payload.status,
        )
        if not ticket:
            raise HTTPException(status_code=404, detail=ticket_service.TICKET_NOT_FOUND)
        db.commit()
        db.refresh(ticket)
        return TicketRead.model_validate(ticket)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error updating ticket {ticket_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update ticket",
        ) from e


@router.delete(
    "/{ticket_id}",
    summary="Delete a ticket (soft delete)",
)
async def delete_ticket(
    ticket_id: int,
    user: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_session),
) -> dict[str, str]:
    """Sets deleted_at; the row stays for audit but drops out of listings."""
    try:
        if not ticket_service.soft_delete_ticket(db, ticket_id):
            raise HTTPException(status_code=404, detail=ticket_service.TICKET_NOT_FOUND)
        db.commit()
        return {"message": "Ticket deleted successfully"}
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error deleting ticket {ticket_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete ticket",
        ) from e
