from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def to_iso(timestamp_ms: int) -> str:
    """Render epoch milliseconds as an ISO-8601 UTC string."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def to_epoch_ms(moment: datetime) -> int:
    """Epoch milliseconds of ``moment``; naive values are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


class TransactionRecord(BaseModel):
    """
    Entity representing one stored transaction of a wallet.

    Attributes
    ----------
    address : str
        Wallet address the record belongs to
    provider_id : str
        Canonical network identifier
    signature : str
        Transaction signature (hash)
    timestamp : int
        Block time in epoch milliseconds
    payload : dict
        Display data passed through to clients
    """
    address: str
    provider_id: str
    signature: str
    timestamp: int
    payload: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True, frozen=True)


class PaginationWindow(BaseModel):
    """Caller-supplied page bounds."""
    limit: int = Field(..., ge=0)
    offset: int = Field(0, ge=0)

    model_config = ConfigDict(frozen=True)


class TransactionPage(BaseModel):
    """
    One page of transaction history, most recent first.

    Attributes
    ----------
    records : list[TransactionRecord]
        At most ``limit`` records
    has_more : bool
        Whether records exist past this page
    total_count : int
        Number of records visible in the snapshot
    snapshot_id : int
        Watermark; pass it back to page through the same snapshot
    """
    records: list[TransactionRecord]
    has_more: bool
    total_count: int
    snapshot_id: int


class WalletRegistration(BaseModel):
    """Entity representing a wallet registered for indexing."""
    address: str
    provider_id: str
    enabled: bool
    last_indexed: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
