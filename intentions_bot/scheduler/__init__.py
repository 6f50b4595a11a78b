from .jobs import NotificationJobs
from .runner import SchedulerRunner

__all__ = ["NotificationJobs", "SchedulerRunner"]
