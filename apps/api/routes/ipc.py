from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from byggbot.infrastructure.db import get_session
from byggbot.ipc import registry

router = APIRouter(prefix="/ipc", tags=["ipc"])


@router.get("")
async def list_channels() -> Dict[str, Any]:
    return {"channels": registry.channels}


@router.post("/{channel}")
async def call_channel(
    channel: str,
    params: Optional[Dict[str, Any]] = Body(default=None),
    session: AsyncSession = Depends(get_session),
) -> Dict[str, Any]:
    """Kall en kanal. Svaret er alltid en konvolutt, også ved feil."""
    return await registry.dispatch(channel, params, session=session)
