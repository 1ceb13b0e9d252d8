from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from byggbot.domain.garanti.constants import HendelseType
from byggbot.domain.garanti.errors import InfrastrukturFeil, ValideringsFeil
from byggbot.domain.garanti.models import GarantiSakDokument
from byggbot.domain.garanti.schemas import EntityContext, parse_model
from byggbot.infrastructure.config import ConfigError
from byggbot.integrations.blob_storage import BlobStorage, BlobStorageError
from byggbot.integrations.key_vault import KeyVaultError
from byggbot.services.hendelser import logg_hendelse, require_forelder


logger = logging.getLogger(__name__)

_LAGRINGSFEIL = (BlobStorageError, KeyVaultError, ConfigError)


async def upload_dokument(
    session: AsyncSession,
    *,
    entity_context: Mapping[str, Any] | EntityContext,
    innhold: bytes,
    filnavn: str,
    dokument_type: str,
    opplastet_av_id: int | None = None,
    content_type: Optional[str] = None,
    storage: Optional[BlobStorage] = None,
) -> GarantiSakDokument:
    """
    Last opp et dokument til blob-lagring og knytt det til sak, selskap eller prosjekt.

    Filen lagres under et tilfeldig navn (`<uuid>-<filnavn>`); raden peker på
    container og blobnavn slik at lese-URL kan lages på nytt senere.
    """
    context = parse_model(EntityContext, entity_context)
    if not innhold or not filnavn or not dokument_type:
        raise ValideringsFeil("Filinnhold, filnavn og dokumenttype er påkrevd for opplasting.")
    await require_forelder(session, context)

    storage = storage or BlobStorage()
    try:
        blob = await asyncio.to_thread(storage.upload, innhold, filnavn, content_type=content_type)
    except _LAGRINGSFEIL as exc:
        logger.exception("Opplasting av %s feilet for %s %s", filnavn, context.type, context.id)
        raise InfrastrukturFeil("Kunne ikke laste opp dokumentet til lagring.") from exc

    dokument = GarantiSakDokument(
        dokument_type=dokument_type,
        filnavn=filnavn,
        blob_url=blob.url,
        container_navn=blob.container,
        blob_navn=blob.blob_name,
        opplastet_av_id=opplastet_av_id,
        **context.fk_felt(),
    )
    session.add(dokument)
    logg_hendelse(
        session,
        hendelse_type=HendelseType.DOKUMENT_LASTET_OPP,
        beskrivelse=f"Fil: {filnavn} | Type: {dokument_type}",
        utfort_av_id=opplastet_av_id,
        **context.fk_felt(),
    )
    await session.flush()
    await session.commit()
    logger.info("Dokument %s lastet opp som %s/%s", filnavn, blob.container, blob.blob_name)
    return dokument


async def get_dokument_sas_url(
    *,
    container_navn: str,
    blob_navn: str,
    storage: Optional[BlobStorage] = None,
) -> str:
    """Lese-URL som utløper etter 15 minutter."""
    if not container_navn or not blob_navn:
        raise ValideringsFeil("Containernavn og blobnavn er påkrevd.")
    storage = storage or BlobStorage(container=container_navn)
    try:
        return await asyncio.to_thread(storage.signed_read_url, blob_navn, container=container_navn)
    except _LAGRINGSFEIL as exc:
        logger.exception("Kunne ikke lage lese-URL for %s/%s", container_navn, blob_navn)
        raise InfrastrukturFeil("Kunne ikke generere lenke til dokumentet.") from exc


__all__ = ["get_dokument_sas_url", "upload_dokument"]
