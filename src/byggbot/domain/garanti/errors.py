"""Feiltyper for garantidomenet.

Alle feil bærer en lesbar norsk melding som kan vises direkte for brukeren.
IPC-laget oversetter dem til `{success: false, error}`.
"""

from __future__ import annotations


class GarantiError(RuntimeError):
    """Base class for all guarantee domain errors."""


class ValideringsFeil(GarantiError):
    """Raised when required fields are missing or malformed."""


class IkkeFunnetFeil(GarantiError):
    """Raised when a referenced entity does not exist."""


class ForretningsregelFeil(GarantiError):
    """Raised when an operation would break a business rule (share sums, ramme, deletion)."""


class InfrastrukturFeil(GarantiError):
    """Raised when blob storage, the key vault or the reporting API fails."""


__all__ = [
    "ForretningsregelFeil",
    "GarantiError",
    "IkkeFunnetFeil",
    "InfrastrukturFeil",
    "ValideringsFeil",
]
