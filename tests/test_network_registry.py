import pytest

from core.exceptions import NetworkNotSupportedException
from networks.addresses import is_valid_address, wallet_prefix
from networks.registry import ChainFamily, NetworkDescriptor, NetworkRegistry


def make_descriptor(network_id: str, chain_family: ChainFamily = ChainFamily.NATIVE) -> NetworkDescriptor:
    return NetworkDescriptor(
        network_id=network_id,
        chain_family=chain_family,
        is_testnet=False,
        endpoint_url="https://rpc.test",
        token_symbol="XNT",
        token_name="X1 Native Token",
        logo="./x1.png",
    )


class TestNetworkRegistry:
    """
    Tests for network lookup.
    """

    def test_five_networks_are_registered(self, registry: NetworkRegistry):
        ids = [descriptor.network_id for descriptor in registry.all()]
        assert ids == ["X1-mainnet", "X1-testnet", "SOLANA-mainnet", "SOLANA-devnet", "SOLANA-testnet"]

    def test_chain_families_and_tokens(self, registry: NetworkRegistry):
        x1 = registry.resolve("X1-testnet")
        solana = registry.resolve("SOLANA-mainnet")

        assert x1.chain_family is ChainFamily.NATIVE
        assert x1.is_testnet is True
        assert x1.token_symbol == "XNT"
        assert solana.chain_family is ChainFamily.SECONDARY
        assert solana.is_testnet is False
        assert solana.token_symbol == "SOL"

    def test_endpoints_come_from_settings(self, registry: NetworkRegistry, settings):
        assert registry.resolve("X1-mainnet").endpoint_url == settings.x1_mainnet_rpc_url
        assert registry.resolve("SOLANA-devnet").endpoint_url == settings.solana_devnet_rpc_url

    @pytest.mark.parametrize(("alias", "canonical"), [("X1", "X1-mainnet"), ("SOLANA", "SOLANA-mainnet")])
    def test_aliases(self, registry: NetworkRegistry, alias: str, canonical: str):
        assert registry.resolve(alias) is registry.resolve(canonical)

    @pytest.mark.parametrize("network_id", ["BITCOIN", "x1-mainnet", "ETHEREUM-mainnet", "", None])
    def test_unknown_network(self, registry: NetworkRegistry, network_id):
        with pytest.raises(NetworkNotSupportedException) as exc_info:
            registry.resolve(network_id)
        assert exc_info.value.get_status_code() == 400
        assert exc_info.value.get_kind() == "error.network.not_supported"

    def test_descriptor_is_immutable(self, registry: NetworkRegistry):
        descriptor = registry.resolve("X1-mainnet")
        with pytest.raises(Exception):
            descriptor.endpoint_url = "https://elsewhere.test"

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError):
            NetworkRegistry([make_descriptor("X1-mainnet"), make_descriptor("X1-mainnet")])

    def test_alias_to_unknown_network_rejected(self):
        with pytest.raises(ValueError):
            NetworkRegistry([make_descriptor("X1-mainnet")], aliases={"X1": "X1-devnet"})


class TestAddresses:
    """
    Tests for address helpers.
    """

    @pytest.mark.parametrize(
        "address",
        ["5paZC1vV94AF513DJn5yXj2TTnTEqm4RuPkWgKYujAi5", "11111111111111111111111111111111"],
    )
    def test_valid_addresses(self, address: str):
        assert is_valid_address(address) is True

    @pytest.mark.parametrize(
        "address",
        [
            "",
            None,
            "0x66357dCaCe80431aee0A7507e2E361B7e2402370",
            "5paZC1vV94AF513DJn5yXj2TTnTEqm4RuPkWgKYujAi5extra",
            "O0Il1111111111111111111111111111",
            "short",
        ],
    )
    def test_invalid_addresses(self, address):
        assert is_valid_address(address) is False

    def test_wallet_prefix(self):
        assert wallet_prefix("5paZC1vV94AF513DJn5yXj2TTnTEqm4RuPkWgKYujAi5") == "5pazc1vv"
