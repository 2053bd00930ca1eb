import asyncio
import logging
import time
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Callable

import aiohttp

from core.exceptions import (
    UpstreamAddressException,
    UpstreamConnectionException,
    UpstreamProtocolException,
    UpstreamTimeoutException,
)
from networks.registry import ChainFamily, NetworkDescriptor
from wallet.entities import BalanceSnapshot
from wallet.pricing import PriceService

LAMPORTS_PER_UNIT = Decimal(10) ** 9

# JSON-RPC "invalid params"; SVM nodes answer it for undecodable pubkeys
INVALID_PARAMS_CODE = -32602


async def post_json(
    session: aiohttp.ClientSession,
    url: str,
    payload: Any,
    logger: logging.Logger
) -> Any:
    """
    POST a JSON payload and decode the JSON answer.

    Exactly one request is made; the session timeout bounds it.

    Parameters
    ----------
    session : aiohttp.ClientSession
        Shared HTTP session
    url : str
        Target URL
    payload : Any
        JSON body
    logger : logging.Logger
        Logger instance

    Returns
    -------
    Any
        Decoded response body

    Raises
    ------
    UpstreamTimeoutException
        If the call exceeded its timeout
    UpstreamConnectionException
        If the upstream could not be reached
    UpstreamProtocolException
        If the upstream answered with a non-2xx status or non-JSON body
    """
    try:
        async with session.post(url, json=payload) as response:
            if response.status >= 400:
                raise UpstreamProtocolException(f"Upstream {url} answered HTTP {response.status}")
            return await response.json(content_type=None)
    except asyncio.TimeoutError:
        logger.warning(f"Upstream {url} timed out")
        raise UpstreamTimeoutException(f"Upstream {url} timed out")
    except ValueError as e:
        # aiohttp.ContentTypeError and json.JSONDecodeError are both ValueErrors
        logger.warning(f"Upstream {url} returned invalid JSON: {e}")
        raise UpstreamProtocolException(f"Upstream {url} returned invalid JSON")
    except aiohttp.ClientError as e:
        logger.warning(f"Upstream {url} unreachable: {e}")
        raise UpstreamConnectionException(f"Upstream {url} is unreachable")


class ChainClient(ABC):
    """
    JSON-RPC client for one chain family.

    Parameters
    ----------
    session : aiohttp.ClientSession
        Shared HTTP session
    price_service : PriceService
        Source of USD unit prices
    logger : logging.Logger
        Logger instance
    clock : Callable[[], float]
        Time source stamped on snapshots
    """

    chain_family: ChainFamily

    def __init__(
        self,
        session: aiohttp.ClientSession,
        price_service: PriceService,
        logger: logging.Logger,
        clock: Callable[[], float] = time.time
    ):
        self.session = session
        self.price_service = price_service
        self.logger = logger
        self.clock = clock

    async def rpc_call(self, endpoint_url: str, method: str, params: list[Any]) -> Any:
        """
        Perform one JSON-RPC call and return its ``result``.

        Raises
        ------
        UpstreamAddressException
            If the node rejected the parameters (bad address)
        UpstreamProtocolException
            If the node returned an error or no result
        """
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        data = await post_json(self.session, endpoint_url, payload, self.logger)

        if not isinstance(data, dict):
            raise UpstreamProtocolException(f"{method}: response is not a JSON object")

        error = data.get("error")
        if error:
            message = str(error.get("message") or "RPC error") if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            if code == INVALID_PARAMS_CODE or "invalid param" in message.lower():
                raise UpstreamAddressException(f"{method}: {message}")
            self.logger.warning(f"{method} on {endpoint_url} failed: {message}")
            raise UpstreamProtocolException(f"{method}: {message}")

        if "result" not in data:
            raise UpstreamProtocolException(f"{method}: response has no result")
        return data["result"]

    def _read_lamports(self, result: Any) -> int:
        value = result.get("value") if isinstance(result, dict) else None
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            self.logger.warning(f"getBalance returned unexpected value: {result!r}")
            raise UpstreamProtocolException("getBalance: invalid balance value")
        return value

    async def _snapshot(self, address: str, descriptor: NetworkDescriptor, lamports: int) -> BalanceSnapshot:
        native_amount = Decimal(lamports) / LAMPORTS_PER_UNIT
        unit_price = await self.price_service.get_unit_price(descriptor)
        return BalanceSnapshot(
            address=address,
            network_id=descriptor.network_id,
            native_amount=native_amount,
            unit_price=unit_price,
            usd_value=native_amount * unit_price,
            fetched_at=self.clock(),
        )

    @abstractmethod
    async def fetch_balance(self, address: str, descriptor: NetworkDescriptor) -> BalanceSnapshot:
        """Fetch the native balance of ``address``."""

    async def get_signatures_for_address(
        self,
        descriptor: NetworkDescriptor,
        address: str,
        limit: int
    ) -> list[dict[str, Any]]:
        """
        Fetch the newest signatures of ``address``, newest first.
        """
        result = await self.rpc_call(descriptor.endpoint_url, "getSignaturesForAddress", [address, {"limit": limit}])
        if result is None:
            return []
        if not isinstance(result, list):
            raise UpstreamProtocolException("getSignaturesForAddress: result is not a list")
        return result

    async def get_transaction(self, descriptor: NetworkDescriptor, signature: str) -> dict[str, Any] | None:
        """
        Fetch a parsed transaction, or None if the node does not know it.
        """
        result = await self.rpc_call(
            descriptor.endpoint_url,
            "getTransaction",
            [signature, {"encoding": "jsonParsed", "maxSupportedTransactionVersion": 0}],
        )
        if result is not None and not isinstance(result, dict):
            raise UpstreamProtocolException("getTransaction: result is not an object")
        return result


class NativeChainClient(ChainClient):
    """X1 client; balances are priced at the fixed native unit price."""

    chain_family = ChainFamily.NATIVE

    async def fetch_balance(self, address: str, descriptor: NetworkDescriptor) -> BalanceSnapshot:
        result = await self.rpc_call(descriptor.endpoint_url, "getBalance", [address])
        return await self._snapshot(address, descriptor, self._read_lamports(result))


class SecondaryChainClient(ChainClient):
    """Solana client; balances are read at ``confirmed`` commitment and priced by the oracle."""

    chain_family = ChainFamily.SECONDARY

    async def fetch_balance(self, address: str, descriptor: NetworkDescriptor) -> BalanceSnapshot:
        result = await self.rpc_call(
            descriptor.endpoint_url,
            "getBalance",
            [address, {"commitment": "confirmed"}],
        )
        return await self._snapshot(address, descriptor, self._read_lamports(result))


class UpstreamRpcClient:
    """
    Entry point for upstream calls, dispatching on chain family.

    Parameters
    ----------
    chain_clients : list[ChainClient]
        One client per chain family
    session : aiohttp.ClientSession
        Shared HTTP session for GraphQL forwarding
    logger : logging.Logger
        Logger instance
    """

    def __init__(
        self,
        chain_clients: list[ChainClient],
        session: aiohttp.ClientSession,
        logger: logging.Logger
    ):
        self.chain_clients = {client.chain_family: client for client in chain_clients}
        self.session = session
        self.logger = logger

    def client_for(self, descriptor: NetworkDescriptor) -> ChainClient:
        """Return the client speaking ``descriptor``'s dialect."""
        try:
            return self.chain_clients[descriptor.chain_family]
        except KeyError:
            raise ValueError(f"No client for chain family {descriptor.chain_family.value}")

    async def fetch_balance(self, address: str, descriptor: NetworkDescriptor) -> BalanceSnapshot:
        """
        Fetch a balance snapshot with a single upstream call.

        Parameters
        ----------
        address : str
            Account address
        descriptor : NetworkDescriptor
            Resolved network

        Returns
        -------
        BalanceSnapshot
            Freshly fetched snapshot
        """
        return await self.client_for(descriptor).fetch_balance(address, descriptor)

    async def forward_graphql(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Forward a GraphQL request and return the upstream body unchanged.

        Parameters
        ----------
        url : str
            Upstream GraphQL endpoint
        payload : dict[str, Any]
            ``query``, ``variables`` and ``operationName``

        Returns
        -------
        dict[str, Any]
            Upstream JSON response
        """
        data = await post_json(self.session, url, payload, self.logger)
        if not isinstance(data, dict):
            raise UpstreamProtocolException("GraphQL response is not a JSON object")
        return data
