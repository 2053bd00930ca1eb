import logging
from datetime import datetime, timezone
from typing import Any

from core.exceptions import InvalidAddressException
from networks.addresses import is_valid_address
from networks.registry import NetworkRegistry
from transactions.entities import (
    PaginationWindow,
    TransactionRecord,
    WalletRegistration,
    to_epoch_ms,
    to_iso,
)
from transactions.schemas import (
    RegisterWalletResponse,
    RequestParams,
    ResponseMeta,
    StoreResult,
    StoreTransactionItem,
    StoreTransactionsResponse,
    TransactionsResponse,
    UpdateIndexedResponse,
    WalletItem,
    WalletsResponse,
)
from transactions.store import TransactionStore
from transactions.wallets import WalletRegistrationStore

API_VERSION = "1.0.0"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _wallet_item(registration: WalletRegistration) -> WalletItem:
    last_indexed = None
    if registration.last_indexed is not None:
        last_indexed = to_iso(to_epoch_ms(registration.last_indexed))
    return WalletItem(
        address=registration.address,
        network=registration.provider_id,
        enabled=registration.enabled,
        last_indexed=last_indexed,
    )


def serialize_record(record: TransactionRecord) -> dict[str, Any]:
    """
    Render a stored record the way wallet clients expect it.

    The stored payload is returned as-is; ``hash``, ``timestamp`` and
    ``nfts`` are filled in from the record when the payload lacks them.
    """
    item = dict(record.payload)
    item.setdefault("hash", record.signature)
    item.setdefault("timestamp", to_iso(record.timestamp))
    item.setdefault("nfts", [])
    return item


class GetTransactionsUseCase:
    """
    Use case for reading a page of transaction history.

    Parameters
    ----------
    registry : NetworkRegistry
        Network lookup
    store : TransactionStore
        Transaction history
    wallets : WalletRegistrationStore
        Wallets tracked by the indexer
    logger : logging.Logger
        Logger instance
    default_limit : int
        Page size used when the caller sends none
    max_limit : int
        Upper bound of the page size
    """

    def __init__(
        self,
        registry: NetworkRegistry,
        store: TransactionStore,
        wallets: WalletRegistrationStore,
        logger: logging.Logger,
        default_limit: int = 50,
        max_limit: int = 50
    ):
        self.registry = registry
        self.store = store
        self.wallets = wallets
        self.logger = logger
        self.default_limit = default_limit
        self.max_limit = max_limit

    async def __call__(
        self,
        address: str,
        provider_id: str | None,
        limit: int | None = None,
        offset: int = 0,
        snapshot_id: int | None = None,
        token_mint: str | None = None
    ) -> TransactionsResponse:
        """
        Execute use case.

        Parameters
        ----------
        address : str
            Wallet address
        provider_id : str | None
            Network identifier or alias
        limit : int | None
            Requested page size
        offset : int
            Records to skip
        snapshot_id : int | None
            Watermark of a previous page
        token_mint : str | None
            Sent by wallet clients; ignored beyond logging, history is
            native-token only

        Returns
        -------
        TransactionsResponse
            Page of history, most recent first
        """
        descriptor = self.registry.resolve(provider_id)
        if not is_valid_address(address):
            raise InvalidAddressException(f"Invalid address {address!r}")

        limit = self.default_limit if limit is None else min(limit, self.max_limit)
        self.logger.info(
            f"Transactions request for {address} on {descriptor.network_id} "
            f"(limit={limit}, offset={offset}, snapshotId={snapshot_id}, tokenMint={token_mint})"
        )

        await self.wallets.auto_register(address, descriptor.network_id)
        page = await self.store.query(
            address,
            descriptor.network_id,
            PaginationWindow(limit=limit, offset=offset),
            snapshot_id=snapshot_id,
        )

        return TransactionsResponse(
            transactions=[serialize_record(record) for record in page.records],
            has_more=page.has_more,
            total_count=page.total_count,
            snapshot_id=page.snapshot_id,
            request_params=RequestParams(
                address=address,
                provider_id=descriptor.network_id,
                limit=limit,
                offset=offset,
            ),
            meta=ResponseMeta(timestamp=_now_iso(), version=API_VERSION),
        )


class StoreTransactionsUseCase:
    """
    Use case for ingesting transactions pushed by a client.

    Parameters
    ----------
    registry : NetworkRegistry
        Network lookup
    store : TransactionStore
        Transaction history
    logger : logging.Logger
        Logger instance
    """

    def __init__(self, registry: NetworkRegistry, store: TransactionStore, logger: logging.Logger):
        self.registry = registry
        self.store = store
        self.logger = logger

    async def __call__(
        self,
        address: str,
        provider_id: str,
        items: list[StoreTransactionItem]
    ) -> StoreTransactionsResponse:
        """
        Execute use case.

        Parameters
        ----------
        address : str
            Wallet address the transactions belong to
        provider_id : str
            Network identifier or alias
        items : list[StoreTransactionItem]
            Transactions to append

        Returns
        -------
        StoreTransactionsResponse
            Per-item outcome; duplicates are reported, not rejected
        """
        descriptor = self.registry.resolve(provider_id)

        results = []
        inserted = 0
        for item in items:
            if item.timestamp is not None:
                timestamp_ms = to_epoch_ms(item.timestamp)
            else:
                timestamp_ms = to_epoch_ms(datetime.now(timezone.utc))

            payload = item.model_dump(mode="json")
            payload["timestamp"] = to_iso(timestamp_ms)
            record = TransactionRecord(
                address=address,
                provider_id=descriptor.network_id,
                signature=item.hash,
                timestamp=timestamp_ms,
                payload=payload,
            )
            if await self.store.append(record):
                inserted += 1
                results.append(StoreResult(hash=item.hash, status="inserted"))
            else:
                results.append(StoreResult(hash=item.hash, status="duplicate"))

        duplicates = len(items) - inserted
        self.logger.info(
            f"Stored transactions for {address} on {descriptor.network_id}: "
            f"{inserted} inserted, {duplicates} duplicates"
        )
        return StoreTransactionsResponse(success=True, inserted=inserted, duplicates=duplicates, results=results)


class RegisterWalletUseCase:
    """Use case for registering a wallet with the indexer."""

    def __init__(self, registry: NetworkRegistry, wallets: WalletRegistrationStore):
        self.registry = registry
        self.wallets = wallets

    async def __call__(self, address: str, network: str, enabled: bool = True) -> RegisterWalletResponse:
        descriptor = self.registry.resolve(network)
        registration = await self.wallets.register(address, descriptor.network_id, enabled=enabled)
        return RegisterWalletResponse(success=True, wallet=_wallet_item(registration))


class ListWalletsUseCase:
    """Use case for listing registered wallets."""

    def __init__(self, wallets: WalletRegistrationStore):
        self.wallets = wallets

    async def __call__(self) -> WalletsResponse:
        registrations = await self.wallets.list_registered()
        items = [_wallet_item(registration) for registration in registrations]
        return WalletsResponse(success=True, wallets=items, count=len(items))


class UpdateLastIndexedUseCase:
    """Use case for stamping a wallet as freshly indexed."""

    def __init__(self, registry: NetworkRegistry, wallets: WalletRegistrationStore):
        self.registry = registry
        self.wallets = wallets

    async def __call__(self, address: str, provider_id: str | None = None) -> UpdateIndexedResponse:
        network_id = self.registry.resolve(provider_id).network_id if provider_id else None
        updated = await self.wallets.update_last_indexed(address, network_id)
        return UpdateIndexedResponse(success=True, updated=updated)
