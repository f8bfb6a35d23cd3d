"""
Domain entities package.
"""

from .job import Job, JobOutcome
from .outbound_email import Attachment, OutboundEmail

__all__ = [
    "Attachment",
    "Job",
    "JobOutcome",
    "OutboundEmail",
]
