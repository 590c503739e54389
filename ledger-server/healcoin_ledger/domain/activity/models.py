"""Domain models for activity history read by the fraud heuristics."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(slots=True)
class LoginRecord:
    id: str
    account_id: str
    device_id: str
    ip_address: Optional[str]
    created_at: datetime
