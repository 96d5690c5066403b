from .wallet import router as wallet_router

__all__ = ['wallet_router']
