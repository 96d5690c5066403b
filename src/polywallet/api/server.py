# File: src/polywallet/api/server.py
from contextlib import asynccontextmanager
from typing import Iterable

from fastapi import FastAPI

from polywallet.wallet.api import WalletAPI
from polywallet.wallet.manager import WalletManager
from polywallet.utils.logger import get_logger
from .routes import wallet_router


def create_app(manager: WalletManager, secrets: Iterable[str] = ()) -> FastAPI:
    logger = get_logger(__name__, secrets=secrets)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not manager.get_initialization_status():
            await manager.initialize()
        logger.info(f"Wallet API ready (state={manager.state.value})")
        yield
        logger.info("Wallet API stopped")

    app = FastAPI(title="polywallet API", lifespan=lifespan)
    app.state.wallet_api = WalletAPI(manager)

    # Include routers
    app.include_router(wallet_router)

    return app
