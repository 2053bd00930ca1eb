from enum import Enum

from pydantic import BaseModel, ConfigDict

from core.environment.config import Settings
from core.exceptions import NetworkNotSupportedException


class ChainFamily(str, Enum):
    """Wire dialect used to talk to a network's RPC endpoint."""

    NATIVE = "native"
    SECONDARY = "secondary"


class NetworkDescriptor(BaseModel):
    """
    Immutable description of one supported network.

    Attributes
    ----------
    network_id : str
        Unique logical identifier, e.g. ``X1-mainnet``
    chain_family : ChainFamily
        Dialect discriminator
    is_testnet : bool
        Whether the network is a test environment
    endpoint_url : str
        Upstream JSON-RPC URL
    token_symbol : str
        Symbol of the native token
    token_name : str
        Display name of the native token
    logo : str
        Logo path shown by wallet clients
    graphql_url : str | None
        Upstream GraphQL service, if any
    """
    network_id: str
    chain_family: ChainFamily
    is_testnet: bool
    endpoint_url: str
    token_symbol: str
    token_name: str
    logo: str
    graphql_url: str | None = None

    model_config = ConfigDict(frozen=True)


class NetworkRegistry:
    """
    Lookup table from network identifier to descriptor.

    Parameters
    ----------
    descriptors : list[NetworkDescriptor]
        Supported networks; identifiers must be unique
    aliases : dict[str, str] | None
        Extra identifiers mapped onto a canonical ``network_id``
    """

    def __init__(
        self,
        descriptors: list[NetworkDescriptor],
        aliases: dict[str, str] | None = None
    ):
        self._descriptors: dict[str, NetworkDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.network_id in self._descriptors:
                raise ValueError(f"Duplicate network id {descriptor.network_id}")
            self._descriptors[descriptor.network_id] = descriptor

        self._aliases = dict(aliases or {})
        for alias, target in self._aliases.items():
            if target not in self._descriptors:
                raise ValueError(f"Alias {alias} points to unknown network {target}")

    @classmethod
    def from_settings(cls, settings: Settings) -> "NetworkRegistry":
        """
        Build the fixed table of five networks from settings.

        Parameters
        ----------
        settings : Settings
            Application settings

        Returns
        -------
        NetworkRegistry
            Registry with X1 and Solana networks
        """
        graphql_url = settings.graphql_upstream_url
        x1 = dict(
            chain_family=ChainFamily.NATIVE,
            token_symbol="XNT",
            token_name="X1 Native Token",
            logo="./x1.png",
            graphql_url=graphql_url,
        )
        solana = dict(
            chain_family=ChainFamily.SECONDARY,
            token_symbol="SOL",
            token_name="Solana",
            logo="./solana.png",
            graphql_url=graphql_url,
        )
        descriptors = [
            NetworkDescriptor(network_id="X1-mainnet", is_testnet=False,
                              endpoint_url=settings.x1_mainnet_rpc_url, **x1),
            NetworkDescriptor(network_id="X1-testnet", is_testnet=True,
                              endpoint_url=settings.x1_testnet_rpc_url, **x1),
            NetworkDescriptor(network_id="SOLANA-mainnet", is_testnet=False,
                              endpoint_url=settings.solana_mainnet_rpc_url, **solana),
            NetworkDescriptor(network_id="SOLANA-devnet", is_testnet=True,
                              endpoint_url=settings.solana_devnet_rpc_url, **solana),
            NetworkDescriptor(network_id="SOLANA-testnet", is_testnet=True,
                              endpoint_url=settings.solana_testnet_rpc_url, **solana),
        ]
        return cls(descriptors, aliases={"X1": "X1-mainnet", "SOLANA": "SOLANA-mainnet"})

    def resolve(self, network_id: str | None) -> NetworkDescriptor:
        """
        Resolve a network identifier or alias.

        Parameters
        ----------
        network_id : str | None
            Identifier supplied by the caller

        Returns
        -------
        NetworkDescriptor
            Descriptor of the network

        Raises
        ------
        NetworkNotSupportedException
            If the identifier is empty or unknown
        """
        if not network_id:
            raise NetworkNotSupportedException("providerId is required")
        canonical = self._aliases.get(network_id, network_id)
        descriptor = self._descriptors.get(canonical)
        if descriptor is None:
            raise NetworkNotSupportedException(f"Network {network_id} is not supported")
        return descriptor

    def all(self) -> list[NetworkDescriptor]:
        """Return every descriptor in registration order."""
        return list(self._descriptors.values())
