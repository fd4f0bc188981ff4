"""HTTP routers for smppgate."""

from .send import router as send_router

__all__ = ["send_router"]
