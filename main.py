import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from dishka.integrations.fastapi import setup_dishka

from core.container import make_container
from core.environment.config import Settings
from core.exception_handler import (
    validation_exception_handler,
    http_exception_handler,
    starlette_exception_handler,
    custom_exception_handler
)
from core.exceptions import BaseCustomException
from core.logging.middleware import RequestLoggingMiddleware
from graphql_bridge.router import router as graphql_router
from transactions.indexer import TransactionIndexer
from transactions.router import router as transactions_router
from wallet.router import router as wallet_router

APP_NAME = "X1 Wallet Gateway"
APP_VERSION = "1.0.0"

TEST_PAGE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>X1 Wallet Gateway</title>
  <style>
    body { font-family: sans-serif; margin: 2rem; }
    pre { background: #f4f4f4; padding: 1rem; white-space: pre-wrap; }
  </style>
</head>
<body>
  <h1>X1 Wallet Gateway</h1>
  <p>
    <input id="address" size="50" placeholder="Wallet address">
    <select id="network">
      <option>X1-mainnet</option>
      <option>X1-testnet</option>
      <option>SOLANA-mainnet</option>
      <option>SOLANA-devnet</option>
      <option>SOLANA-testnet</option>
    </select>
    <button onclick="balance()">Balance</button>
    <button onclick="history()">Transactions</button>
  </p>
  <pre id="output"></pre>
  <script>
    const output = document.getElementById("output");
    const address = () => document.getElementById("address").value.trim();
    const network = () => document.getElementById("network").value;
    async function show(response) {
      output.textContent = response.status + "\\n" + JSON.stringify(await response.json(), null, 2);
    }
    async function balance() {
      await show(await fetch(`/wallet/${address()}?providerId=${network()}`));
    }
    async function history() {
      await show(await fetch("/transactions", {
        method: "POST",
        headers: {"Content-Type": "application/json"},
        body: JSON.stringify({address: address(), providerId: network(), limit: 10, offset: 0}),
      }));
    }
  </script>
</body>
</html>
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Start the transaction indexer if enabled and release resources on shutdown.
    """
    container = app.state.dishka_container
    settings = await container.get(Settings, component="environment")

    indexer = None
    indexer_task = None
    if settings.indexer_enabled:
        indexer = await container.get(TransactionIndexer, component="transactions")
        indexer_task = asyncio.create_task(indexer.run())

    try:
        yield
    finally:
        if indexer_task is not None:
            indexer.stop()
            await indexer_task
        await container.close()


def create_app() -> FastAPI:
    """
    Build the gateway application.

    Returns
    -------
    FastAPI
        Application with routes, handlers and a fresh container
    """
    app = FastAPI(
        title=APP_NAME,
        version=APP_VERSION,
        description="Balance, transaction history and GraphQL gateway for X1 and Solana wallets",
        lifespan=lifespan,
    )

    setup_dishka(make_container(), app)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, starlette_exception_handler)
    app.add_exception_handler(BaseCustomException, custom_exception_handler)
    app.add_exception_handler(Exception, custom_exception_handler)

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(wallet_router)
    app.include_router(transactions_router)
    app.include_router(graphql_router)

    @app.get("/")
    async def root():
        """
        Root endpoint.

        Returns
        -------
        dict
            Application information
        """
        return {
            "name": APP_NAME,
            "version": APP_VERSION,
            "endpoints": {
                "wallet": "/wallet/{address}?providerId=X1-mainnet",
                "transactions": "/transactions",
                "store": "/transactions/store",
                "wallets": "/wallets",
                "graphql": "/v2/graphql",
                "test": "/test",
                "docs": "/docs"
            }
        }

    @app.get("/health")
    async def health():
        """Liveness probe."""
        return {"status": "healthy", "version": APP_VERSION}

    @app.get("/test", response_class=HTMLResponse)
    async def test_page():
        """Static diagnostic page for manual checks from a browser."""
        return TEST_PAGE

    return app


app = create_app()
