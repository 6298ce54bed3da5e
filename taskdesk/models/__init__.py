"""ORM models. Importing this package registers every table on ``Base.metadata``."""

from taskdesk.models.task import Task
from taskdesk.models.user import User

__all__ = ["Task", "User"]
