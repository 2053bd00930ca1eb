import os
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings using Pydantic Settings.

    Attributes
    ----------
    redis_host : str
        Redis host for the shared price cache
    redis_port : int
        Redis port
    redis_db : int
        Redis database number
    redis_password : str
        Redis password (optional)
    x1_mainnet_rpc_url, x1_testnet_rpc_url : str
        Native chain JSON-RPC endpoints
    solana_mainnet_rpc_url, solana_devnet_rpc_url, solana_testnet_rpc_url : str
        Secondary chain JSON-RPC endpoints
    xnt_price_usd : float
        Fixed USD price of one native unit
    price_oracle_url : str
        Oracle endpoint returning aggregated prices
    price_cache_ttl_seconds : int
        How long an oracle price stays cached in Redis
    sol_fallback_price_usd : float
        Price used before the oracle has ever answered
    balance_cache_ttl_ms : int
        Freshness window of a cached balance
    balance_cache_max_entries : int
        Upper bound of cached balances
    upstream_timeout_seconds : float
        Timeout of a single upstream call
    database_url : str
        SQLAlchemy async URL of the transaction store
    transactions_default_limit, transactions_max_limit : int
        Page size used when omitted and its upper bound
    graphql_upstream_url : str | None
        Upstream GraphQL service; answered locally when unset
    priority_fee_estimate : str
        Priority fee (microlamports) answered locally
    indexer_enabled : bool
        Start the transaction indexer with the application
    indexer_poll_interval_seconds : float
        Pause between indexer polling cycles
    indexer_max_signatures : int
        Signatures fetched per wallet and cycle
    log_level : str
        Root logging level
    """

    redis_host: str
    redis_port: int
    redis_db: int
    redis_password: str

    x1_mainnet_rpc_url: str = "https://rpc.mainnet.x1.xyz"
    x1_testnet_rpc_url: str = "https://rpc.testnet.x1.xyz"
    solana_mainnet_rpc_url: str = "https://api.mainnet-beta.solana.com"
    solana_devnet_rpc_url: str = "https://api.devnet.solana.com"
    solana_testnet_rpc_url: str = "https://api.testnet.solana.com"

    xnt_price_usd: float = 1.0
    price_oracle_url: str = "http://oracle.mainnet.x1.xyz:3000/api/state"
    price_cache_ttl_seconds: int = 300
    sol_fallback_price_usd: float = 158.0

    balance_cache_ttl_ms: int = 2000
    balance_cache_max_entries: int = 10000
    upstream_timeout_seconds: float = 10.0

    database_url: str = "sqlite+aiosqlite:///./transactions.db"
    transactions_default_limit: int = 50
    transactions_max_limit: int = 50

    graphql_upstream_url: str | None = None
    priority_fee_estimate: str = "1000"

    indexer_enabled: bool = False
    indexer_poll_interval_seconds: float = 30.0
    indexer_max_signatures: int = 50

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE", ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False
    )
