from .application import Application
from .job import Job
from .user import User

__all__ = ["Application", "Job", "User"]
