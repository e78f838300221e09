"""
Token Ledger API Application Factory
"""

from typing import Optional

import uvicorn
from fastapi import FastAPI

from .. import __version__
from ..host import LedgerHost
from .dependencies import set_host
from .routes import router as token_router


def create_app(host: Optional[LedgerHost] = None) -> FastAPI:
    """
    Create and configure the FastAPI application

    Args:
        host: Ledger host to serve; when omitted one is built from
            configuration on the first request
    """
    if host is not None:
        set_host(host)

    app = FastAPI(
        title="Token Ledger API",
        description="Fungible-token ledger with balances, allowances and delegated transfers",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.include_router(token_router, prefix="/token", tags=["Token"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "token_ledger_api",
            "version": __version__
        }

    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Token Ledger API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "total_supply": "/token/total-supply",
                "balances": "/token/balances/{account}",
                "allowances": "/token/allowances/{owner}/{spender}",
                "events": "/token/events",
                "transfer": "/token/transfer",
                "approve": "/token/approve",
                "transfer_from": "/token/transfer-from"
            }
        }

    return app


def run_server(host: str = "0.0.0.0", port: int = 8090, log_level: str = "info"):
    """Run the FastAPI server"""
    uvicorn.run(create_app(), host=host, port=port, log_level=log_level.lower())
