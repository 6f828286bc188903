#!/usr/bin/env python3
"""Create tables and load demo users and tickets into the configured database."""

import sys

from helpdesk.core.config import get_settings
from helpdesk.core.logging_config import configure_logging
from helpdesk.db.init_db import create_schema, seed_tickets, seed_users
from helpdesk.db.session import engine, get_fresh_session

if __name__ == '__main__':
    configure_logging(get_settings().log_level)
    ticket_count = int(sys.argv[1]) if len(sys.argv) > 1 else 1000

    create_schema(engine)
    session = get_fresh_session()
    try:
        seed_users(session)
        seed_tickets(session, ticket_count)
    finally:
        session.close()
