"""Domain-level constants for the guarantee workflow."""

from __future__ import annotations

import enum
from decimal import Decimal


class ProsjektStatus(str, enum.Enum):
    NY = "Ny"
    TILDELT = "Tildelt"
    BEHANDLES = "Behandles"
    AVVENTER_GODKJENNING_UW = "AvventerGodkjenningUW"
    KLAR_TIL_PRODUKSJON = "KlarTilProduksjon"
    PRODUSERT = "Produsert"
    AVSLAATT = "Avslaatt"
    UTVIDES = "Utvides"


class TilbudStatus(str, enum.Enum):
    UTKAST = "Utkast"
    TIL_BEHANDLING = "TilBehandling"
    UNDER_UW_BEHANDLING = "UnderUWBehandling"
    GODKJENT = "Godkjent"
    PRODUSERT = "Produsert"
    AVSLATT = "Avslatt"
    UTLOPT = "Utlopt"


class BenefisientType(str, enum.Enum):
    JURIDISK = "Juridisk"
    FYSISK = "Fysisk"


class HendelseType(str, enum.Enum):
    SELSKAP_OPPRETTET = "SELSKAP_OPPRETTET"
    SELSKAP_OPPDATERT = "SELSKAP_OPPDATERT"
    PROSJEKT_OPPRETTET = "PROSJEKT_OPPRETTET"
    PROSJEKT_OPPDATERT = "PROSJEKT_OPPDATERT"
    PROSJEKT_STATUS_UTLEDET = "PROSJEKT_STATUS_UTLEDET"
    DOKUMENT_LASTET_OPP = "DOKUMENT_LASTET_OPP"
    INTERN_KOMMENTAR_LAGT_TIL = "INTERN_KOMMENTAR_LAGT_TIL"
    TILBUD_OPPRETTET = "TILBUD_OPPRETTET"
    TILBUD_OPPDATERT = "TILBUD_OPPDATERT"
    TILBUD_SLETTET = "TILBUD_SLETTET"
    BEREGNING_LAGRET = "BEREGNING_LAGRET"
    BENEFISIENT_OPPRETTET = "BENEFISIENT_OPPRETTET"
    BENEFISIENT_OPPDATERT = "BENEFISIENT_OPPDATERT"
    BENEFISIENT_SLETTET = "BENEFISIENT_SLETTET"
    EIERSKIFTE_REGISTRERT = "EIERSKIFTE_REGISTRERT"
    ENHET_OPPRETTET = "ENHET_OPPRETTET"
    ENHET_OPPDATERT = "ENHET_OPPDATERT"
    ENHET_SLETTET = "ENHET_SLETTET"
    ENHETER_GENERERT = "ENHETER_GENERERT"


PROSJEKT_STATUS_ETIKETTER: dict[ProsjektStatus, str] = {
    ProsjektStatus.NY: "Ny",
    ProsjektStatus.TILDELT: "Tildelt",
    ProsjektStatus.BEHANDLES: "Behandles",
    ProsjektStatus.AVVENTER_GODKJENNING_UW: "Avventer godkjenning UW",
    ProsjektStatus.KLAR_TIL_PRODUKSJON: "Klar til produksjon",
    ProsjektStatus.PRODUSERT: "Produsert",
    ProsjektStatus.AVSLAATT: "Avslått",
    ProsjektStatus.UTVIDES: "Utvides",
}

# Roller som kvalifiserer til hver ansvarlig-liste, i tillegg til faktiske tildelinger.
RAADGIVER_ROLLER: frozenset[str] = frozenset({"RAADGIVER", "ADMIN", "SUPER_USER"})
UW_ROLLER: frozenset[str] = frozenset({"UW", "UNDERWRITER", "ADMIN", "SUPER_USER"})
PRODUKSJON_ROLLER: frozenset[str] = frozenset({"PRODUKSJON", "ADMIN", "SUPER_USER"})


# Høyest vinner når prosjektstatus utledes fra flere tilbud.
TILBUD_STATUS_PRIORITET: dict[TilbudStatus, int] = {
    TilbudStatus.PRODUSERT: 6,
    TilbudStatus.GODKJENT: 5,
    TilbudStatus.UNDER_UW_BEHANDLING: 4,
    TilbudStatus.TIL_BEHANDLING: 3,
    TilbudStatus.UTKAST: 2,
    TilbudStatus.AVSLATT: 1,
    TilbudStatus.UTLOPT: 1,
}

TILBUD_TIL_PROSJEKT_STATUS: dict[TilbudStatus, ProsjektStatus] = {
    TilbudStatus.PRODUSERT: ProsjektStatus.PRODUSERT,
    TilbudStatus.GODKJENT: ProsjektStatus.KLAR_TIL_PRODUKSJON,
    TilbudStatus.UNDER_UW_BEHANDLING: ProsjektStatus.AVVENTER_GODKJENNING_UW,
    TilbudStatus.TIL_BEHANDLING: ProsjektStatus.BEHANDLES,
    TilbudStatus.UTKAST: ProsjektStatus.TILDELT,
    TilbudStatus.AVSLATT: ProsjektStatus.AVSLAATT,
    TilbudStatus.UTLOPT: ProsjektStatus.AVSLAATT,
}

AKTIVE_TILBUD_STATUSER: frozenset[TilbudStatus] = frozenset(
    {
        TilbudStatus.UTKAST,
        TilbudStatus.TIL_BEHANDLING,
        TilbudStatus.UNDER_UW_BEHANDLING,
        TilbudStatus.GODKJENT,
    }
)

# Avslåtte og utløpte tilbud belaster aldri rammen.
IKKE_RAMMEBELASTENDE_STATUSER: frozenset[TilbudStatus] = frozenset(
    {TilbudStatus.AVSLATT, TilbudStatus.UTLOPT}
)

RAMME_GUL_GRENSE = Decimal("70")
RAMME_ROD_GRENSE = Decimal("90")
RAMME_ADVARSEL_ANDEL = Decimal("0.1")


SELSKAP_FELT_ETIKETTER: dict[str, str] = {
    "selskapsnavn": "Selskapsnavn",
    "gateadresse": "Gateadresse",
    "postnummer": "Postnummer",
    "poststed": "Poststed",
    "kontaktperson_navn": "Kontaktperson navn",
    "kontaktperson_telefon": "Kontaktperson telefon",
    "kundenummer_wims": "Kundenummer WIMS",
    "ramme": "Ramme",
}

PROSJEKT_FELT_ETIKETTER: dict[str, str] = {
    "navn": "Prosjektnavn",
    "prosjekt_gateadresse": "Prosjekt gateadresse",
    "prosjekt_postnummer": "Prosjekt postnummer",
    "prosjekt_poststed": "Prosjekt poststed",
    "prosjekt_kommune": "Prosjekt kommune",
    "prosjekt_kommunenummer": "Prosjekt kommunenummer",
    "status": "Status",
    "produkt": "Produkt",
    "kommentar_kunde": "Kommentar fra kunde",
    "ansvarlig_raadgiver_id": "Ansvarlig rådgiver",
    "uw_ansvarlig_id": "UW ansvarlig",
    "produksjonsansvarlig_id": "Produksjonsansvarlig",
}

PROSJEKT_ANSVARLIG_FELT: tuple[str, ...] = (
    "ansvarlig_raadgiver_id",
    "uw_ansvarlig_id",
    "produksjonsansvarlig_id",
)

TILBUD_FELT_ETIKETTER: dict[str, str] = {
    "status": "Status",
    "produkttype": "Produkttype",
    "prosjekttype": "Prosjekttype",
    "antall_enheter": "Antall enheter",
}


STANDARD_PRODUKTKONFIGURASJONER: tuple[dict[str, object], ...] = (
    {
        "produktnavn": "Utføringsgaranti",
        "standard_utforelse_prosent": Decimal("0.0050"),
        "standard_garanti_prosent": Decimal("0.0025"),
        "standard_garantitid": 24,
        "maks_kontraktssum": Decimal("100000000.00"),
    },
    {
        "produktnavn": "Vedlikeholdsgaranti",
        "standard_utforelse_prosent": Decimal("0.0025"),
        "standard_garanti_prosent": Decimal("0.0050"),
        "standard_garantitid": 60,
        "maks_kontraktssum": Decimal("50000000.00"),
    },
    {
        "produktnavn": "Anbudsgaranti",
        "standard_utforelse_prosent": Decimal("0.0010"),
        "standard_garanti_prosent": Decimal("0.0010"),
        "standard_garantitid": 6,
        "maks_kontraktssum": Decimal("200000000.00"),
    },
    {
        "produktnavn": "Forskuddsgaranti",
        "standard_utforelse_prosent": Decimal("0.0075"),
        "standard_garanti_prosent": Decimal("0.0050"),
        "standard_garantitid": 36,
        "maks_kontraktssum": Decimal("75000000.00"),
    },
    {
        "produktnavn": "Leveransegaranti",
        "standard_utforelse_prosent": Decimal("0.0040"),
        "standard_garanti_prosent": Decimal("0.0030"),
        "standard_garantitid": 12,
        "maks_kontraktssum": Decimal("80000000.00"),
    },
    {
        "produktnavn": "Kontraktsgaranti",
        "standard_utforelse_prosent": Decimal("0.0060"),
        "standard_garanti_prosent": Decimal("0.0040"),
        "standard_garantitid": 48,
        "maks_kontraktssum": Decimal("120000000.00"),
    },
    {
        "produktnavn": "Reklamasjonssikkerhet",
        "standard_utforelse_prosent": Decimal("0.0030"),
        "standard_garanti_prosent": Decimal("0.0060"),
        "standard_garantitid": 120,
        "maks_kontraktssum": Decimal("40000000.00"),
    },
    {
        "produktnavn": "Betalingsgaranti",
        "standard_utforelse_prosent": Decimal("0.0080"),
        "standard_garanti_prosent": Decimal("0.0040"),
        "standard_garantitid": 18,
        "maks_kontraktssum": Decimal("60000000.00"),
    },
)


# Maler for automatisk generering av enheter per prosjekttype.
# `betegnelse` får løpenummer når `nummerert` er satt.
PROSJEKT_TYPER: dict[str, dict[str, object]] = {
    "Boligblokk": {
        "label": "Boligblokk",
        "har_enheter": True,
        "enhetstype": "Leilighet",
        "betegnelse": "Leilighet",
        "nummerert": True,
    },
    "Rekkehus": {
        "label": "Rekkehus/Småhus",
        "har_enheter": True,
        "enhetstype": "Boenhet",
        "betegnelse": "Boenhet",
        "nummerert": True,
    },
    "Enebolig": {
        "label": "Enebolig",
        "har_enheter": True,
        "enhetstype": "Enebolig",
        "betegnelse": "Enebolig",
        "nummerert": False,
        "fast_antall": 1,
    },
    "Naeringsbygg": {
        "label": "Næringsbygg",
        "har_enheter": True,
        "enhetstype": "Seksjon",
        "betegnelse": "Seksjon",
        "nummerert": True,
    },
    "Kombinasjonsbygg": {
        "label": "Kombinasjonsbygg",
        "har_enheter": True,
        "enhetstype": "Enhet",
        "betegnelse": "Enhet",
        "nummerert": True,
    },
    "Infrastruktur": {"label": "Infrastruktur", "har_enheter": False},
    "Annet": {"label": "Annet", "har_enheter": False},
}

MAKS_ANTALL_ENHETER = 500


__all__ = [
    "AKTIVE_TILBUD_STATUSER",
    "BenefisientType",
    "HendelseType",
    "IKKE_RAMMEBELASTENDE_STATUSER",
    "MAKS_ANTALL_ENHETER",
    "PROSJEKT_ANSVARLIG_FELT",
    "PROSJEKT_FELT_ETIKETTER",
    "PROSJEKT_STATUS_ETIKETTER",
    "PRODUKSJON_ROLLER",
    "RAADGIVER_ROLLER",
    "PROSJEKT_TYPER",
    "ProsjektStatus",
    "RAMME_ADVARSEL_ANDEL",
    "RAMME_GUL_GRENSE",
    "RAMME_ROD_GRENSE",
    "SELSKAP_FELT_ETIKETTER",
    "STANDARD_PRODUKTKONFIGURASJONER",
    "TILBUD_FELT_ETIKETTER",
    "TILBUD_STATUS_PRIORITET",
    "TILBUD_TIL_PROSJEKT_STATUS",
    "TilbudStatus",
    "UW_ROLLER",
]
