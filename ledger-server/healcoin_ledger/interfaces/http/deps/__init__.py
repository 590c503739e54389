"""Reusable FastAPI dependencies."""

from .database import get_container, get_db_session
from .ledger import get_actor_id, get_idempotency_key, get_ledger

__all__ = [
    "get_container",
    "get_db_session",
    "get_ledger",
    "get_actor_id",
    "get_idempotency_key",
]
