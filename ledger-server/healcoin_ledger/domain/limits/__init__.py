"""Usage caps domain exports"""

from .models import UsageCounterState, UsageSummary
from .service import CapsLimitsTracker

__all__ = [
    "UsageCounterState",
    "UsageSummary",
    "CapsLimitsTracker",
]
