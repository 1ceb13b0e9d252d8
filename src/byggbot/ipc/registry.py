# byggbot/ipc/registry.py
"""
Kanalregister for forespørsel/svar-kall.

Hver kanal (for eksempel ``garanti:createSak``) tar ett params-objekt og
svarer alltid med en konvolutt: ``{"success": True, "data": ...}`` eller
``{"success": False, "error": "<melding>"}``. Ingen unntak slipper ut av
``dispatch``.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from byggbot.domain.garanti.errors import GarantiError
from byggbot.infrastructure.config import SETTINGS

logger = logging.getLogger(__name__)

Handler = Callable[[AsyncSession, Dict[str, Any]], Awaitable[Any]]

RELATERT_IKKE_FUNNET = "Relatert post ble ikke funnet. Sjekk at alle referanser (IDer) er gyldige."
UVENTET_FEIL = "En uventet feil oppstod. Prøv igjen eller kontakt systemadministrator."


def jsonable(value: Any) -> Any:
    """Gjør tjenesteresultater om til JSON-vennlige verdier. Decimal blir tekst."""
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return jsonable(asdict(value))
    if isinstance(value, Mapping):
        return {str(k): jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [jsonable(v) for v in value]
    return value


def ok(data: Any = None) -> Dict[str, Any]:
    return {"success": True, "data": jsonable(data)}


def feil(melding: str) -> Dict[str, Any]:
    return {"success": False, "error": melding}


def aktor(params: Mapping[str, Any], nokkel: str = "brukerId") -> int:
    """Bruker-ID fra kallet, ellers systembrukeren."""
    verdi = params.get(nokkel)
    if verdi in (None, ""):
        return SETTINGS.SYSTEM_BRUKER_ID
    try:
        return int(verdi)
    except (TypeError, ValueError):
        return SETTINGS.SYSTEM_BRUKER_ID


class ChannelRegistry:
    def __init__(self) -> None:
        self._handlers: Dict[str, Handler] = {}

    def channel(self, name: str) -> Callable[[Handler], Handler]:
        def decorator(func: Handler) -> Handler:
            if name in self._handlers:
                raise ValueError(f"Kanal {name} er allerede registrert")
            self._handlers[name] = func
            return func

        return decorator

    @property
    def channels(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    async def dispatch(
        self,
        name: str,
        params: Optional[Mapping[str, Any]],
        *,
        session: AsyncSession,
    ) -> Dict[str, Any]:
        handler = self._handlers.get(name)
        if handler is None:
            logger.warning("Ukjent kanal: %s", name)
            return feil(f"Ukjent kanal: {name}")

        logger.info("IPC %s", name)
        try:
            return ok(await handler(session, dict(params or {})))
        except GarantiError as exc:
            logger.info("IPC %s avvist: %s", name, exc)
            await session.rollback()
            return feil(str(exc))
        except IntegrityError:
            logger.exception("Integritetsfeil i %s", name)
            await session.rollback()
            return feil(RELATERT_IKKE_FUNNET)
        except Exception:
            logger.exception("Uventet feil i %s", name)
            await session.rollback()
            return feil(UVENTET_FEIL)


registry = ChannelRegistry()


__all__ = [
    "ChannelRegistry",
    "RELATERT_IKKE_FUNNET",
    "UVENTET_FEIL",
    "aktor",
    "feil",
    "jsonable",
    "ok",
    "registry",
]
