from __future__ import annotations

from .ipc import router as ipc_router
from .kalkulatorer import router as kalkulator_router
from .rapporter import router as rapport_router

__all__ = ["ipc_router", "kalkulator_router", "rapport_router"]
