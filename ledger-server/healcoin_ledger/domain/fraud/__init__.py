"""Fraud heuristics domain exports"""

from .models import ActionContext, EarnContext, FraudSignal, LoginCheck, LoginContext, RedeemContext
from .service import FraudHeuristics

__all__ = [
    "ActionContext",
    "EarnContext",
    "FraudSignal",
    "LoginCheck",
    "LoginContext",
    "RedeemContext",
    "FraudHeuristics",
]
