from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from sqlalchemy import Select, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from byggbot.domain.garanti.constants import (
    PRODUKSJON_ROLLER,
    PROSJEKT_ANSVARLIG_FELT,
    PROSJEKT_FELT_ETIKETTER,
    PROSJEKT_STATUS_ETIKETTER,
    RAADGIVER_ROLLER,
    UW_ROLLER,
    HendelseType,
    ProsjektStatus,
)
from byggbot.domain.garanti.errors import IkkeFunnetFeil, ValideringsFeil
from byggbot.domain.garanti.models import (
    Bruker,
    GarantiProsjekt,
    GarantiSakInternKommentar,
    Selskap,
    Tilbud,
)
from byggbot.domain.garanti.schemas import (
    EntityContext,
    GuaranteeRequest,
    ProsjektCreate,
    ProsjektFilter,
    ProsjektUpdate,
    parse_model,
)
from byggbot.domain.garanti.status import utled_prosjekt_status
from byggbot.services import selskap as selskap_service
from byggbot.services.hendelser import IKKE_SATT, endringstekst, logg_hendelse, require_forelder


logger = logging.getLogger(__name__)

STATUS_FALLBACK = ProsjektStatus.BEHANDLES


def _status_etikett(status: ProsjektStatus | str | None) -> str:
    if status is None:
        return IKKE_SATT
    try:
        return PROSJEKT_STATUS_ETIKETTER[ProsjektStatus(status)]
    except ValueError:
        return str(status)


def _bruker_navn(bruker: Bruker | None) -> str:
    return bruker.visningsnavn() if bruker is not None else IKKE_SATT


async def _require_bruker(session: AsyncSession, bruker_id: int) -> Bruker:
    bruker = await session.get(Bruker, bruker_id)
    if bruker is None:
        raise IkkeFunnetFeil(f"Bruker med ID {bruker_id} finnes ikke.")
    return bruker


async def require_prosjekt(session: AsyncSession, prosjekt_id: str) -> GarantiProsjekt:
    prosjekt = await session.get(GarantiProsjekt, prosjekt_id)
    if prosjekt is None:
        raise IkkeFunnetFeil(f"Prosjekt med ID {prosjekt_id} finnes ikke.")
    return prosjekt


async def get_prosjekt_by_id(session: AsyncSession, *, prosjekt_id: str) -> GarantiProsjekt | None:
    if not prosjekt_id:
        raise ValideringsFeil("Prosjekt-ID er påkrevd.")
    stmt: Select[tuple[GarantiProsjekt]] = (
        select(GarantiProsjekt)
        .where(GarantiProsjekt.id == prosjekt_id)
        .options(
            selectinload(GarantiProsjekt.selskap),
            selectinload(GarantiProsjekt.ansvarlig_raadgiver),
            selectinload(GarantiProsjekt.uw_ansvarlig),
            selectinload(GarantiProsjekt.produksjonsansvarlig),
            selectinload(GarantiProsjekt.tilbud).selectinload(Tilbud.beregning),
            selectinload(GarantiProsjekt.tilbud).selectinload(Tilbud.benefisienter),
            selectinload(GarantiProsjekt.tilbud).selectinload(Tilbud.enheter),
            selectinload(GarantiProsjekt.dokumenter),
            selectinload(GarantiProsjekt.hendelser),
            selectinload(GarantiProsjekt.kommentarer),
        )
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_prosjekt(
    session: AsyncSession,
    *,
    selskap_id: str,
    data: Mapping[str, Any] | ProsjektCreate,
    utfort_av_id: int | None = None,
    commit: bool = True,
) -> GarantiProsjekt:
    if not selskap_id:
        raise ValideringsFeil("Prosjektdata og selskaps-ID er påkrevd.")
    payload = parse_model(ProsjektCreate, data)

    selskap = await session.get(Selskap, selskap_id)
    if selskap is None:
        raise IkkeFunnetFeil(f"Selskap med ID {selskap_id} ble ikke funnet. Kan ikke opprette prosjekt.")
    for felt in PROSJEKT_ANSVARLIG_FELT:
        bruker_id = getattr(payload, felt)
        if bruker_id is not None:
            await _require_bruker(session, bruker_id)

    verdier = payload.model_dump()
    verdier["status"] = payload.status or ProsjektStatus.NY
    prosjekt = GarantiProsjekt(selskap_id=selskap.id, **verdier)
    session.add(prosjekt)
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        raise IkkeFunnetFeil(
            "Kunne ikke opprette prosjekt: En relatert oppføring (f.eks. selskap eller ansvarlig bruker) ble ikke funnet."
        ) from exc

    logg_hendelse(
        session,
        hendelse_type=HendelseType.PROSJEKT_OPPRETTET,
        beskrivelse=f'Prosjekt "{prosjekt.navn or "Navnløst prosjekt"}" ble opprettet under selskap {selskap.selskapsnavn}.',
        utfort_av_id=utfort_av_id,
        prosjekt_id=prosjekt.id,
    )
    if commit:
        await session.commit()
    logger.info("Prosjekt %s opprettet for selskap %s", prosjekt.id, selskap.id)
    return prosjekt


async def update_prosjekt(
    session: AsyncSession,
    *,
    prosjekt_id: str,
    data: Mapping[str, Any],
    utfort_av_id: int | None = None,
) -> GarantiProsjekt:
    if not prosjekt_id:
        raise ValideringsFeil("Prosjekt-ID er påkrevd.")
    payload = parse_model(ProsjektUpdate, data)

    stmt: Select[tuple[GarantiProsjekt]] = (
        select(GarantiProsjekt)
        .where(GarantiProsjekt.id == prosjekt_id)
        .options(
            selectinload(GarantiProsjekt.ansvarlig_raadgiver),
            selectinload(GarantiProsjekt.uw_ansvarlig),
            selectinload(GarantiProsjekt.produksjonsansvarlig),
        )
    )
    prosjekt = (await session.execute(stmt)).scalar_one_or_none()
    if prosjekt is None:
        raise IkkeFunnetFeil(f"Prosjekt med ID {prosjekt_id} ikke funnet.")

    gammel_status = prosjekt.status
    nye_verdier: dict[str, Any] = {}
    endringer: list[str] = []

    for felt, ny in payload.endrede_felt().items():
        etikett = PROSJEKT_FELT_ETIKETTER[felt]
        gammel = getattr(prosjekt, felt)
        if felt in PROSJEKT_ANSVARLIG_FELT:
            if gammel == ny:
                continue
            ny_bruker = await _require_bruker(session, ny) if ny is not None else None
            gammel_bruker = getattr(prosjekt, felt[: -len("_id")])
            gammelt_navn = _bruker_navn(gammel_bruker) if gammel_bruker else (f"ID: {gammel}" if gammel else IKKE_SATT)
            endringer.append(f"{etikett} endret fra '{gammelt_navn}' til '{_bruker_navn(ny_bruker)}'")
        elif felt == "status":
            if ny is None or gammel == ny:
                continue
            endringer.append(f"{etikett} endret fra '{_status_etikett(gammel)}' til '{_status_etikett(ny)}'")
        else:
            if gammel == ny:
                continue
            endringer.append(endringstekst(etikett, gammel, ny))
        nye_verdier[felt] = ny

    # En tildelt rådgiver flytter et nytt prosjekt til Tildelt, med mindre status ble satt eksplisitt.
    if (
        nye_verdier.get("ansvarlig_raadgiver_id") is not None
        and gammel_status == ProsjektStatus.NY
        and nye_verdier.get("status") in (None, ProsjektStatus.NY)
    ):
        nye_verdier["status"] = ProsjektStatus.TILDELT
        endringer.append(
            f"Status automatisk endret fra '{_status_etikett(ProsjektStatus.NY)}' "
            f"til '{_status_etikett(ProsjektStatus.TILDELT)}' pga. tildelt rådgiver."
        )

    if not nye_verdier:
        logger.info("Ingen faktiske dataendringer for prosjekt %s", prosjekt_id)
        return prosjekt

    for felt, verdi in nye_verdier.items():
        setattr(prosjekt, felt, verdi)

    logg_hendelse(
        session,
        hendelse_type=HendelseType.PROSJEKT_OPPDATERT,
        beskrivelse="Prosjektopplysninger oppdatert. Endringer: " + "; ".join(endringer) + ".",
        utfort_av_id=utfort_av_id,
        prosjekt_id=prosjekt.id,
    )
    await session.flush()
    await session.commit()
    logger.info("Prosjekt %s oppdatert. Endringer: %s", prosjekt_id, "; ".join(endringer))
    return prosjekt


async def get_prosjekter(
    session: AsyncSession,
    *,
    filtre: Mapping[str, Any] | ProsjektFilter | None = None,
) -> Sequence[GarantiProsjekt]:
    valg = parse_model(ProsjektFilter, filtre)
    stmt: Select[tuple[GarantiProsjekt]] = (
        select(GarantiProsjekt)
        .join(Selskap, Selskap.id == GarantiProsjekt.selskap_id)
        .options(
            selectinload(GarantiProsjekt.selskap),
            selectinload(GarantiProsjekt.ansvarlig_raadgiver),
            selectinload(GarantiProsjekt.uw_ansvarlig),
            selectinload(GarantiProsjekt.produksjonsansvarlig),
        )
    )
    if valg.search_term:
        pattern = f"%{valg.search_term}%"
        stmt = stmt.where(
            or_(
                GarantiProsjekt.navn.ilike(pattern),
                Selskap.selskapsnavn.ilike(pattern),
                Selskap.organisasjonsnummer.ilike(pattern),
            )
        )
    if valg.opprettet_etter:
        stmt = stmt.where(GarantiProsjekt.opprettet_dato >= selskap_service.dagstart(valg.opprettet_etter))
    if valg.opprettet_for:
        stmt = stmt.where(
            GarantiProsjekt.opprettet_dato < selskap_service.dagslutt_eksklusiv(valg.opprettet_for)
        )
    if valg.endret_etter:
        stmt = stmt.where(GarantiProsjekt.updated_at >= selskap_service.dagstart(valg.endret_etter))
    if valg.endret_for:
        stmt = stmt.where(GarantiProsjekt.updated_at < selskap_service.dagslutt_eksklusiv(valg.endret_for))
    if valg.status:
        stmt = stmt.where(GarantiProsjekt.status == valg.status)
    for felt in PROSJEKT_ANSVARLIG_FELT:
        verdi = getattr(valg, felt)
        if verdi is not None:
            stmt = stmt.where(getattr(GarantiProsjekt, felt) == verdi)

    sorteringer = {
        "opprettetDato": GarantiProsjekt.opprettet_dato,
        "updatedAt": GarantiProsjekt.updated_at,
        "updated_at": GarantiProsjekt.updated_at,
        "navn": GarantiProsjekt.navn,
        "status": GarantiProsjekt.status,
    }
    kolonne = sorteringer[valg.sort_by] if valg.sort_by else GarantiProsjekt.updated_at
    retning = valg.sort_order if valg.sort_by else "desc"
    stmt = stmt.order_by(kolonne.asc() if retning == "asc" else kolonne.desc())
    if valg.take:
        stmt = stmt.limit(valg.take)

    result = await session.execute(stmt)
    return result.scalars().all()


async def get_ansvarlige_personer(session: AsyncSession) -> dict[str, Sequence[Bruker]]:
    """Aktive brukere som er eller kan være ansvarlige, gruppert per rolle."""

    async def _hent(kolonne, roller: frozenset[str]) -> Sequence[Bruker]:
        tildelte = select(kolonne).where(kolonne.is_not(None))
        stmt: Select[tuple[Bruker]] = (
            select(Bruker)
            .where(Bruker.aktiv.is_(True))
            .where(or_(Bruker.id.in_(tildelte), Bruker.rolle.in_(sorted(roller))))
            .order_by(Bruker.navn.asc())
        )
        return (await session.execute(stmt)).scalars().all()

    resultat = {
        "raadgivere": await _hent(GarantiProsjekt.ansvarlig_raadgiver_id, RAADGIVER_ROLLER),
        "uwAnsvarlige": await _hent(GarantiProsjekt.uw_ansvarlig_id, UW_ROLLER),
        "produksjonsansvarlige": await _hent(GarantiProsjekt.produksjonsansvarlig_id, PRODUKSJON_ROLLER),
    }
    logger.info(
        "Hentet %d rådgivere, %d UW ansvarlige, %d produksjonsansvarlige",
        len(resultat["raadgivere"]),
        len(resultat["uwAnsvarlige"]),
        len(resultat["produksjonsansvarlige"]),
    )
    return resultat


async def add_intern_kommentar(
    session: AsyncSession,
    *,
    entity_context: Mapping[str, Any] | EntityContext,
    kommentar_tekst: str,
    bruker_id: int | None = None,
) -> GarantiSakInternKommentar:
    context = parse_model(EntityContext, entity_context)
    tekst = (kommentar_tekst or "").strip() if isinstance(kommentar_tekst, str) else ""
    if not tekst:
        raise ValideringsFeil("EntityContext (type, id), kommentartekst og bruker-ID er påkrevd.")
    await require_forelder(session, context)

    kommentar = GarantiSakInternKommentar(
        kommentar=tekst,
        opprettet_av_id=bruker_id,
        **context.fk_felt(),
    )
    session.add(kommentar)
    logg_hendelse(
        session,
        hendelse_type=HendelseType.INTERN_KOMMENTAR_LAGT_TIL,
        beskrivelse=f"Ny intern kommentar lagt til {context.type}.",
        utfort_av_id=bruker_id,
        **context.fk_felt(),
    )
    await session.flush()
    await session.commit()
    return kommentar


async def handle_new_guarantee_request(
    session: AsyncSession,
    *,
    request_data: Mapping[str, Any],
    opprettet_av_id: int | None = None,
) -> tuple[Selskap, GarantiProsjekt, bool]:
    """
    Registrer en ny garantiforespørsel.

    Selskapet slås opp på organisasjonsnummer og opprettes bare når det ikke
    finnes fra før. Prosjektet opprettes alltid. Alt skjer i én transaksjon.

    Returns:
        (selskap, prosjekt, nytt_selskap)
    """
    if not request_data:
        raise ValideringsFeil("RequestData er påkrevd.")
    payload = parse_model(GuaranteeRequest, request_data)

    selskap = await selskap_service.get_selskap_by_orgnr(
        session, organisasjonsnummer=payload.organisasjonsnummer
    )
    nytt_selskap = selskap is None
    if selskap is None:
        if not payload.selskapsnavn:
            raise ValideringsFeil("Selskapsnavn er påkrevd for å opprette et nytt selskap.")
        selskap = await selskap_service.create_selskap(
            session,
            data={
                "organisasjonsnummer": payload.organisasjonsnummer,
                "selskapsnavn": payload.selskapsnavn,
                "gateadresse": payload.gateadresse,
                "postnummer": payload.postnummer,
                "poststed": payload.poststed,
                "kontaktperson_navn": payload.kontaktperson_navn,
                "kontaktperson_telefon": payload.kontaktperson_telefon,
                "kundenummer_wims": payload.kundenummer_wims,
                "ramme": payload.ramme,
            },
            utfort_av_id=opprettet_av_id,
            commit=False,
        )

    prosjekt = await create_prosjekt(
        session,
        selskap_id=selskap.id,
        data=ProsjektCreate(
            navn=payload.prosjekt_navn,
            prosjekt_gateadresse=payload.prosjekt_gateadresse,
            prosjekt_postnummer=payload.prosjekt_postnummer,
            prosjekt_poststed=payload.prosjekt_poststed,
            prosjekt_kommune=payload.prosjekt_kommune,
            prosjekt_kommunenummer=payload.prosjekt_kommunenummer,
            produkt=payload.produkt,
            kommentar_kunde=payload.kommentar_kunde,
            status=payload.prosjekt_status,
            ansvarlig_raadgiver_id=payload.ansvarlig_raadgiver_id,
            uw_ansvarlig_id=payload.uw_ansvarlig_id,
            produksjonsansvarlig_id=payload.produksjonsansvarlig_id,
        ),
        utfort_av_id=opprettet_av_id,
        commit=False,
    )
    await session.commit()
    logger.info(
        "Garantiforespørsel registrert: selskap %s (%s), prosjekt %s",
        selskap.id,
        "nytt" if nytt_selskap else "eksisterende",
        prosjekt.id,
    )
    return selskap, prosjekt, nytt_selskap


async def synkroniser_prosjekt_status(
    session: AsyncSession,
    *,
    prosjekt_id: str,
    utfort_av_id: int | None = None,
) -> ProsjektStatus:
    """
    Regn ut prosjektstatus fra tilbudene og lagre den på prosjektet.

    Feil under utledningen stopper ikke mutasjonen som utløste den: statusen
    faller da tilbake til «Behandles» og feilen logges med traceback.
    """
    prosjekt = await require_prosjekt(session, prosjekt_id)
    await session.flush()

    try:
        # savepoint: en feilet spørring skal ikke avbryte den ytre transaksjonen
        async with session.begin_nested():
            result = await session.execute(select(Tilbud.status).where(Tilbud.prosjekt_id == prosjekt_id))
            ny_status = utled_prosjekt_status(result.scalars().all())
    except Exception:
        logger.exception(
            "Kunne ikke utlede prosjektstatus for prosjekt %s; bruker %s",
            prosjekt_id,
            STATUS_FALLBACK.value,
        )
        ny_status = STATUS_FALLBACK

    if prosjekt.status != ny_status:
        gammel = prosjekt.status
        prosjekt.status = ny_status
        logg_hendelse(
            session,
            hendelse_type=HendelseType.PROSJEKT_STATUS_UTLEDET,
            beskrivelse=(
                f"Prosjektstatus endret fra '{_status_etikett(gammel)}' til "
                f"'{_status_etikett(ny_status)}' basert på tilbudsstatus."
            ),
            utfort_av_id=utfort_av_id,
            prosjekt_id=prosjekt.id,
        )
        logger.info("Prosjekt %s: status %s -> %s", prosjekt_id, gammel, ny_status)
    return ny_status


__all__ = [
    "STATUS_FALLBACK",
    "add_intern_kommentar",
    "create_prosjekt",
    "get_ansvarlige_personer",
    "get_prosjekt_by_id",
    "get_prosjekter",
    "handle_new_guarantee_request",
    "require_prosjekt",
    "synkroniser_prosjekt_status",
    "update_prosjekt",
]
