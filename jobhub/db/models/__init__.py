from jobhub.db.models.job import Job
from jobhub.db.models.message import Message
from jobhub.db.models.payment import Payment
from jobhub.db.models.progress import JobFeedback, ProgressUpdate
from jobhub.db.models.quote import Quote
from jobhub.db.models.user import User

__all__ = [
    "Job",
    "JobFeedback",
    "Message",
    "Payment",
    "ProgressUpdate",
    "Quote",
    "User",
]
