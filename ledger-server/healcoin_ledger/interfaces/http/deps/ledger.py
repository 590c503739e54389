"""Ledger related dependency providers."""

from typing import Optional

from fastapi import Depends, Header

from healcoin_ledger.core.container import ApplicationContainer
from healcoin_ledger.domain.common import ValidationError
from healcoin_ledger.domain.wallets.service import WalletLedger

from .database import get_container


def get_ledger(container: ApplicationContainer = Depends(get_container)) -> WalletLedger:
    return container.ledger


def get_actor_id(x_actor_id: Optional[str] = Header(None)) -> str:
    if not x_actor_id or not x_actor_id.strip():
        raise ValidationError("X-Actor-Id header is required for administrative actions")
    return x_actor_id.strip()


def get_idempotency_key(idempotency_key: Optional[str] = Header(None, max_length=128)) -> Optional[str]:
    if idempotency_key is None:
        return None
    return idempotency_key.strip() or None


__all__ = [
    "get_ledger",
    "get_actor_id",
    "get_idempotency_key",
]
