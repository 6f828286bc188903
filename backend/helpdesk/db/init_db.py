"""Table creation and seed data for local runs and tests."""

import logging
import random

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from helpdesk.db import models  # noqa: F401  registers every table on Base.metadata
from helpdesk.db.base import Base
from helpdesk.db.models.ticket import Ticket
from helpdesk.db.models.user import User
from helpdesk.services import user_service
from helpdesk.utils.batching import chunked

logger = logging.getLogger(__name__)

SEED_USERS = (
    ("admin1@example.com", "admin123", "admin"),
    ("user@example.com", "user123", "user"),
    ("admin2@example.com", "admin123", "admin"),
)

TICKET_TOPICS = (
    ("Login issue", "Cannot log in to the system"),
    ("Password reset", "Need to reset my password"),
    ("Feature request", "Add dark mode support"),
    ("Bug report", "Button not working on mobile"),
    ("Account locked", "My account is locked"),
    ("Payment issue", "Payment not processing"),
    ("Email not received", "Did not receive confirmation email"),
    ("API error", "Getting 500 error from API"),
    ("Slow performance", "Application is very slow"),
    ("Data export", "Need to export my data"),
    ("File upload error", "Cannot upload files"),
    ("Session timeout", "Getting logged out frequently"),
)

TICKET_STATUSES = ("open", "in_progress", "resolved", "closed")


def create_schema(bind: Engine) -> None:
    Base.metadata.create_all(bind=bind)
    logger.info(f"Ensured tables exist: {', '.join(sorted(Base.metadata.tables))}")


def seed_users(session: Session) -> int:
    """Create the demo accounts when the users table is empty; returns how many were added."""
    existing = session.scalar(select(func.count(User.id)))
    if existing:
        logger.info(f"Users already exist ({existing} users)")
        return 0

    for email, password, role in SEED_USERS:
        user_service.create_user(session, email, password, role)
    session.commit()
    logger.info(f"Seeded {len(SEED_USERS)} users: {', '.join(email for email, _, _ in SEED_USERS)}")
    return len(SEED_USERS)


def seed_tickets(session: Session, count: int = 1000, batch_size: int = 100) -> int:
    """Insert count sample tickets when the tickets table is empty."""
    existing = session.scalar(select(func.count(Ticket.id)))
    if existing:
        logger.info(f"Database already seeded with {existing} tickets")
        return 0

    inserted = 0
    for batch in chunked(range(1, count + 1), batch_size):
        for n in batch:
            title, description = TICKET_TOPICS[(n - 1) % len(TICKET_TOPICS)]
            session.add(
                Ticket(
                    title=f"{title} #{n}",
                    description=f"{description} (Ticket {n})",
                    status=random.choice(TICKET_STATUSES),
                )
            )
        session.commit()
        inserted += len(batch)
        logger.info(f"Inserted {inserted}/{count} tickets...")
    return inserted
