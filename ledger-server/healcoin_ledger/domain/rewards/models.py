"""Domain model for catalogue rewards."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class RewardItem:
    id: str
    name: str
    cost: int
    stock: int
    is_active: bool
