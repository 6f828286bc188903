"""Ticket domain operations, including the batch soft-delete used by bulk jobs."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from helpdesk.db.models.job import utcnow
from helpdesk.db.models.ticket import Ticket

logger = logging.getLogger(__name__)

TICKET_NOT_FOUND = "Ticket not found"
TICKET_ALREADY_DELETED = "Ticket already deleted"


def bulk_soft_delete(session: Session, ticket_ids: list[int]) -> list[int]:
    """Soft-delete live tickets among ticket_ids.

    Returns the ids that actually changed, in input order. Missing and
    already-deleted tickets are left alone and omitted. Does not commit.
    """
    if not ticket_ids:
        return []
    live = set(
        session.scalars(
            select(Ticket.id)
            .where(Ticket.id.in_(ticket_ids), Ticket.deleted_at.is_(None))
            .with_for_update()
        )
    )
    if not live:
        return []
    now = utcnow()
    session.execute(
        update(Ticket)
        .where(Ticket.id.in_(live), Ticket.deleted_at.is_(None))
        .values(deleted_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return [ticket_id for ticket_id in ticket_ids if ticket_id in live]


def describe_unchanged(session: Session, ticket_id: int) -> str:
    """Explain why a ticket was not soft-deleted."""
    deleted_at = session.execute(
        select(Ticket.deleted_at).where(Ticket.id == ticket_id)
    ).first()
    if deleted_at is not None and deleted_at[0] is not None:
        return TICKET_ALREADY_DELETED
    return TICKET_NOT_FOUND


def list_tickets(session: Session, page: int = 1, limit: int = 10) -> tuple[Sequence[Ticket], int]:
    """Live tickets, newest first."""
    total = session.scalar(
        select(func.count(Ticket.id)).where(Ticket.deleted_at.is_(None))
    ) or 0
    tickets = session.scalars(
        select(Ticket)
        .where(Ticket.deleted_at.is_(None))
        .order_by(Ticket.created_at.desc(), Ticket.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return tickets, total


def get_ticket(session: Session, ticket_id: int) -> Ticket | None:
    ticket = session.get(Ticket, ticket_id)
    if ticket is None or ticket.is_deleted:
        return None
    return ticket


def create_ticket(
    session: Session,
    *,
    title: str,
    description: str | None = None,
    status: str = "open",
) -> Ticket:
    ticket = Ticket(title=title, description=description, status=status)
    session.add(ticket)
    session.flush()
    logger.info(f"Created ticket {ticket.id}")
    return ticket


def update_ticket(session: Session, ticket_id: int, **fields: str | None) -> Ticket | None:
    """Apply non-None fields to a live ticket."""
    ticket = get_ticket(session, ticket_id)
    if ticket is None:
        return None
    for name, value in fields.items():
        if value is not None:
            setattr(ticket, name, value)
    session.flush()
    logger.info(f"Updated ticket {ticket_id}")
    return ticket


def soft_delete_ticket(session: Session, ticket_id: int) -> bool:
    deleted = bulk_soft_delete(session, [ticket_id])
    if deleted:
        logger.info(f"Deleted ticket {ticket_id}")
    return bool(deleted)
