import asyncio
import logging
import time
from collections import OrderedDict
from typing import Callable

from networks.registry import NetworkDescriptor, NetworkRegistry
from wallet.clients import UpstreamRpcClient
from wallet.entities import BalanceSnapshot

CacheKey = tuple[str, str]


class BalanceCache:
    """
    TTL cache of balance snapshots with request coalescing.

    Concurrent lookups of the same stale or missing ``(address, network)``
    share one upstream fetch. A failed fetch is never cached, so the next
    lookup starts from a clean miss. Entries beyond ``max_entries`` are
    evicted least-recently-fetched first.

    Parameters
    ----------
    registry : NetworkRegistry
        Network lookup
    upstream : UpstreamRpcClient
        Miss-fill source
    logger : logging.Logger
        Logger instance
    ttl_ms : int
        Freshness window in milliseconds
    max_entries : int
        Maximum number of cached snapshots
    clock : Callable[[], float]
        Time source in seconds; must match the one stamping snapshots
    """

    def __init__(
        self,
        registry: NetworkRegistry,
        upstream: UpstreamRpcClient,
        logger: logging.Logger,
        ttl_ms: int = 2000,
        max_entries: int = 10000,
        clock: Callable[[], float] = time.time
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.registry = registry
        self.upstream = upstream
        self.logger = logger
        self.ttl_seconds = ttl_ms / 1000
        self.max_entries = max_entries
        self.clock = clock
        self._snapshots: OrderedDict[CacheKey, BalanceSnapshot] = OrderedDict()
        self._pending: dict[CacheKey, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._snapshots)

    async def get_balance(self, address: str, network_id: str) -> BalanceSnapshot:
        """
        Return a fresh balance snapshot, fetching it at most once per miss.

        Parameters
        ----------
        address : str
            Account address
        network_id : str
            Network identifier or alias

        Returns
        -------
        BalanceSnapshot
            Cached or freshly fetched snapshot

        Raises
        ------
        NetworkNotSupportedException
            If the network is unknown (no upstream call is made)
        UpstreamException
            If the shared fetch failed
        """
        descriptor = self.registry.resolve(network_id)
        key = (address, descriptor.network_id)

        snapshot = self._fresh(key)
        if snapshot is not None:
            self.logger.debug(f"Using cached balance for {address} on {descriptor.network_id}")
            return snapshot

        # No await between lookup and insert: check-then-create is atomic on the loop.
        task = self._pending.get(key)
        if task is None:
            task = asyncio.create_task(self._fill(key, address, descriptor))
            task.add_done_callback(self._consume_result)
            self._pending[key] = task

        # Shielded so a disconnecting caller does not cancel the fetch for other waiters.
        return await asyncio.shield(task)

    def peek(self, address: str, network_id: str) -> BalanceSnapshot | None:
        """Return the cached snapshot if it is still fresh, without fetching."""
        descriptor = self.registry.resolve(network_id)
        return self._fresh((address, descriptor.network_id))

    def _fresh(self, key: CacheKey) -> BalanceSnapshot | None:
        snapshot = self._snapshots.get(key)
        if snapshot is not None and self.clock() - snapshot.fetched_at < self.ttl_seconds:
            return snapshot
        return None

    async def _fill(self, key: CacheKey, address: str, descriptor: NetworkDescriptor) -> BalanceSnapshot:
        try:
            snapshot = await self.upstream.fetch_balance(address, descriptor)
            self._store(key, snapshot)
            self.logger.info(
                f"Balance from {descriptor.network_id} RPC: {snapshot.native_amount} {descriptor.token_symbol}"
            )
            return snapshot
        finally:
            if self._pending.get(key) is asyncio.current_task():
                del self._pending[key]

    def _store(self, key: CacheKey, snapshot: BalanceSnapshot) -> None:
        self._snapshots[key] = snapshot
        self._snapshots.move_to_end(key)
        while len(self._snapshots) > self.max_entries:
            evicted, _ = self._snapshots.popitem(last=False)
            self.logger.debug(f"Evicted cached balance for {evicted[0]} on {evicted[1]}")

    @staticmethod
    def _consume_result(task: asyncio.Task) -> None:
        # Waiters may all be gone; retrieve the exception so asyncio does not warn.
        if not task.cancelled():
            task.exception()

    async def close(self) -> None:
        """Cancel in-flight fetches and drop every cached snapshot."""
        pending = list(self._pending.values())
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._pending.clear()
        self._snapshots.clear()
