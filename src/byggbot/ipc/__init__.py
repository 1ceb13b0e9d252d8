"""Forespørsel/svar-kanalene. Import av handlermodulene registrerer kanalene."""
from byggbot.ipc import garanti_handlers, rapport_handlers, tilbud_handlers  # noqa: F401
from byggbot.ipc.registry import ChannelRegistry, feil, jsonable, ok, registry

__all__ = ["ChannelRegistry", "feil", "jsonable", "ok", "registry"]
