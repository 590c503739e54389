"""Activity history domain exports"""

from .models import LoginRecord
from .repository import ActivityRepository

__all__ = [
    "ActivityRepository",
    "LoginRecord",
]
