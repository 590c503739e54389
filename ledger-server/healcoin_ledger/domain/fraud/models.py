"""Fraud signal and the action contexts it is computed for."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional, Union

from healcoin_ledger.domain.activity import LoginRecord


@dataclass(frozen=True, slots=True)
class FraudSignal:
    is_suspicious: bool
    reason: Optional[str] = None

    @classmethod
    def clear(cls) -> "FraudSignal":
        return cls(False)

    @classmethod
    def flag(cls, reason: str) -> "FraudSignal":
        return cls(True, reason)


@dataclass(frozen=True, slots=True)
class EarnContext:
    action: ClassVar[str] = "earn_coins"

    amount: int
    source: str


@dataclass(frozen=True, slots=True)
class RedeemContext:
    action: ClassVar[str] = "redeem_coins"

    amount: int
    reward_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class LoginContext:
    action: ClassVar[str] = "user_login"

    device_id: str
    ip_address: Optional[str] = None


ActionContext = Union[EarnContext, RedeemContext, LoginContext]


@dataclass(slots=True)
class LoginCheck:
    login: LoginRecord
    signal: FraudSignal
