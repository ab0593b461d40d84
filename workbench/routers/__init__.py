"""
FastAPI routers.
"""
from workbench.routers.health import router as health_router
from workbench.routers.keys import router as keys_router
from workbench.routers.synthesis import router as synthesis_router

__all__ = ['health_router', 'keys_router', 'synthesis_router']
