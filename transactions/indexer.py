import asyncio
import json
import logging
import time
from decimal import Decimal
from typing import Any

from core.exceptions import BaseCustomException
from networks.addresses import wallet_prefix
from networks.registry import NetworkDescriptor, NetworkRegistry
from transactions.entities import TransactionRecord, WalletRegistration, to_iso
from transactions.store import TransactionStore
from transactions.wallets import WalletRegistrationStore
from wallet.clients import UpstreamRpcClient

LAMPORTS_PER_UNIT = Decimal(10) ** 9


def _format_units(lamports: int) -> str:
    return f"{Decimal(lamports) / LAMPORTS_PER_UNIT:.9f}"


def _account_pubkeys(message: dict[str, Any]) -> list[str]:
    keys = []
    for account in message.get("accountKeys") or []:
        keys.append(account.get("pubkey") if isinstance(account, dict) else account)
    return keys


def parse_transaction(
    tx_data: dict[str, Any],
    signature: str,
    address: str,
    descriptor: NetworkDescriptor
) -> TransactionRecord:
    """
    Turn a ``jsonParsed`` transaction into a stored record for ``address``.

    The type follows the balance change of the wallet's own account:
    positive is RECEIVE, negative is SEND, anything else UNKNOWN.

    Parameters
    ----------
    tx_data : dict[str, Any]
        ``getTransaction`` result
    signature : str
        Transaction signature
    address : str
        Wallet being indexed
    descriptor : NetworkDescriptor
        Network the transaction was read from

    Returns
    -------
    TransactionRecord
        Record ready to append
    """
    transaction = tx_data.get("transaction") or {}
    meta = tx_data.get("meta") or {}
    message = transaction.get("message") or {}
    pubkeys = _account_pubkeys(message)

    tx_type = "UNKNOWN"
    amount = None
    description = None

    pre_balances = meta.get("preBalances") or []
    post_balances = meta.get("postBalances") or []
    if address in pubkeys:
        index = pubkeys.index(address)
        if index < len(pre_balances) and index < len(post_balances):
            change = post_balances[index] - pre_balances[index]
            if change > 0:
                tx_type = "RECEIVE"
                amount = _format_units(change)
                description = f"Received {descriptor.token_symbol}"
            elif change < 0:
                tx_type = "SEND"
                amount = _format_units(-change)
                description = f"Sent {descriptor.token_symbol}"

    block_time = tx_data.get("blockTime")
    timestamp_ms = int(block_time) * 1000 if block_time else int(time.time() * 1000)

    payload = {
        "hash": signature,
        "type": tx_type,
        "timestamp": to_iso(timestamp_ms),
        "amount": amount,
        "tokenName": descriptor.token_name,
        "tokenSymbol": descriptor.token_symbol,
        "fee": _format_units(meta.get("fee") or 0),
        "feePayer": pubkeys[0] if pubkeys else None,
        "description": description or f"{tx_type} transaction",
        "error": json.dumps(meta["err"]) if meta.get("err") else None,
        "source": "wallet",
        "nfts": [],
    }
    return TransactionRecord(
        address=address,
        provider_id=descriptor.network_id,
        signature=signature,
        timestamp=timestamp_ms,
        payload=payload,
    )


def unparsed_transaction(
    signature: str,
    address: str,
    descriptor: NetworkDescriptor,
    error: Exception
) -> TransactionRecord:
    """Minimal UNKNOWN record for a transaction that could not be parsed."""
    timestamp_ms = int(time.time() * 1000)
    payload = {
        "hash": signature,
        "type": "UNKNOWN",
        "timestamp": to_iso(timestamp_ms),
        "amount": None,
        "tokenName": descriptor.token_name,
        "tokenSymbol": descriptor.token_symbol,
        "fee": "0",
        "feePayer": None,
        "description": "Parse error",
        "error": str(error),
        "source": "wallet",
        "nfts": [],
    }
    return TransactionRecord(
        address=address,
        provider_id=descriptor.network_id,
        signature=signature,
        timestamp=timestamp_ms,
        payload=payload,
    )


class TransactionIndexer:
    """
    Polls upstream RPC for new transactions of registered wallets.

    Parameters
    ----------
    registry : NetworkRegistry
        Network lookup
    upstream : UpstreamRpcClient
        Upstream client
    store : TransactionStore
        Destination of parsed records
    wallets : WalletRegistrationStore
        Wallets to index
    logger : logging.Logger
        Logger instance
    poll_interval : float
        Seconds between polling cycles
    max_signatures : int
        Signatures fetched per wallet and cycle
    """

    def __init__(
        self,
        registry: NetworkRegistry,
        upstream: UpstreamRpcClient,
        store: TransactionStore,
        wallets: WalletRegistrationStore,
        logger: logging.Logger,
        poll_interval: float = 30.0,
        max_signatures: int = 50
    ):
        self.registry = registry
        self.upstream = upstream
        self.store = store
        self.wallets = wallets
        self.logger = logger
        self.poll_interval = poll_interval
        self.max_signatures = max_signatures
        self._last_processed: dict[tuple[str, str], str] = {}
        self._stopping = asyncio.Event()

    async def index_wallet(self, registration: WalletRegistration) -> int:
        """
        Fetch and store the wallet's transactions newer than the last cycle.

        Parameters
        ----------
        registration : WalletRegistration
            Wallet to index

        Returns
        -------
        int
            Number of newly stored records
        """
        if not registration.enabled:
            self.logger.info(f"Skipping disabled wallet {wallet_prefix(registration.address)}...")
            return 0

        descriptor = self.registry.resolve(registration.provider_id)
        client = self.upstream.client_for(descriptor)
        key = (registration.address, descriptor.network_id)

        signatures = await client.get_signatures_for_address(descriptor, registration.address, self.max_signatures)
        last_processed = self._last_processed.get(key)
        new_signatures = []
        for info in signatures:
            if info.get("signature") == last_processed:
                break
            if info.get("signature"):
                new_signatures.append(info["signature"])

        if not new_signatures:
            self.logger.debug(f"No new transactions for {wallet_prefix(registration.address)}")
            return 0

        inserted = 0
        for signature in new_signatures:
            try:
                tx_data = await client.get_transaction(descriptor, signature)
            except BaseCustomException as e:
                self.logger.warning(f"Error fetching tx {signature}: {e.message}")
                continue
            if tx_data is None:
                continue
            try:
                record = parse_transaction(tx_data, signature, registration.address, descriptor)
            except (AttributeError, IndexError, KeyError, TypeError, ValueError) as e:
                self.logger.warning(f"Error parsing tx {signature}: {e}")
                record = unparsed_transaction(signature, registration.address, descriptor, e)
            if await self.store.append(record):
                inserted += 1

        self._last_processed[key] = new_signatures[0]
        await self.wallets.update_last_indexed(registration.address, descriptor.network_id)
        self.logger.info(
            f"Indexed {wallet_prefix(registration.address)} on {descriptor.network_id}: "
            f"{inserted} new, {len(new_signatures) - inserted} skipped"
        )
        return inserted

    async def poll_once(self) -> int:
        """
        Index every enabled wallet; a failing wallet does not stop the cycle.

        Returns
        -------
        int
            Number of newly stored records across all wallets
        """
        registrations = await self.wallets.list_registered(enabled_only=True)
        self.logger.info(f"Polling cycle started for {len(registrations)} wallet(s)")
        total = 0
        for registration in registrations:
            try:
                total += await self.index_wallet(registration)
            except BaseCustomException as e:
                self.logger.error(f"Error indexing wallet {registration.address}: {e.get_kind()}: {e.message}")
            except Exception:
                self.logger.exception(f"Unexpected error indexing wallet {registration.address}")
        return total

    async def run(self) -> None:
        """Poll until :meth:`stop` is called."""
        self._stopping.clear()
        while not self._stopping.is_set():
            try:
                await self.poll_once()
            except BaseCustomException as e:
                self.logger.error(f"Polling cycle failed, retrying next cycle: {e.message}")
            except Exception:
                self.logger.exception("Unexpected error in polling cycle, retrying next cycle")
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass
        self.logger.info("Indexer stopped")

    def stop(self) -> None:
        """Ask :meth:`run` to return after the current cycle."""
        self._stopping.set()
