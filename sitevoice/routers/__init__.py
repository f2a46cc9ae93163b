"""API routers."""

from sitevoice.routers.process import router as process_router

__all__ = ["process_router"]
