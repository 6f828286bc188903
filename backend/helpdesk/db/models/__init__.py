"""Database models package."""
from helpdesk.db.models.job import Job, JobStatus, JobType
from helpdesk.db.models.job_item import ItemOutcome, JobItem
from helpdesk.db.models.ticket import Ticket
from helpdesk.db.models.user import User

__all__ = ["Job", "JobStatus", "JobType", "JobItem", "ItemOutcome", "Ticket", "User"]
