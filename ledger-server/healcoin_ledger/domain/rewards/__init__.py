"""Reward catalogue domain exports"""

from .models import RewardItem
from .repository import RewardCatalog

__all__ = [
    "RewardCatalog",
    "RewardItem",
]
