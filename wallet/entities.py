from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class BalanceSnapshot(BaseModel):
    """
    Native balance of an address on one network at fetch time.

    Snapshots are frozen; a refresh replaces the cached snapshot.

    Attributes
    ----------
    address : str
        Account address
    network_id : str
        Canonical network identifier
    native_amount : Decimal
        Balance in whole native units
    unit_price : Decimal
        USD price of one native unit at fetch time
    usd_value : Decimal
        ``native_amount * unit_price``
    fetched_at : float
        Clock reading (seconds) when the balance was fetched
    """
    address: str
    network_id: str
    native_amount: Decimal
    unit_price: Decimal
    usd_value: Decimal
    fetched_at: float

    model_config = ConfigDict(frozen=True)
