from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Literal, Mapping, Type, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from byggbot.domain.garanti.constants import BenefisientType, ProsjektStatus, TilbudStatus
from byggbot.domain.garanti.errors import ValideringsFeil


ModelT = TypeVar("ModelT", bound=BaseModel)

ORGNR_FEIL = "Organisasjonsnummer må være en streng bestående av 9 siffer."


def _trim(value: str | None, *, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    stripped = str(value).strip()
    if not stripped:
        return None
    if max_length is not None and len(stripped) > max_length:
        return stripped[:max_length]
    return stripped


def _decimal_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def valider_orgnr(value: Any) -> str:
    if not isinstance(value, str) or len(value) != 9 or not value.isdigit():
        raise ValueError(ORGNR_FEIL)
    return value


def _feilmelding(exc: ValidationError) -> str:
    error = exc.errors()[0]
    felt = ".".join(str(part) for part in error.get("loc", ())) or "data"
    ctx = error.get("ctx") or {}
    if error.get("type") == "value_error" and ctx.get("error") is not None:
        return str(ctx["error"])
    if error.get("type") == "missing":
        return f"Feltet {felt} er påkrevd."
    return f"Ugyldig verdi for {felt}: {error.get('msg')}"


def parse_model(model_cls: Type[ModelT], data: Mapping[str, Any] | BaseModel | None) -> ModelT:
    """Valider rådata mot en inn-modell og oversett pydantic-feil til ValideringsFeil."""
    if isinstance(data, model_cls):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True)
    try:
        return model_cls.model_validate(dict(data or {}))
    except ValidationError as exc:
        raise ValideringsFeil(_feilmelding(exc)) from exc


class _Inn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def trim_strings(cls, value: Any, info: ValidationInfo) -> Any:
        if isinstance(value, str):
            return _trim(value)
        return value

    def endrede_felt(self) -> dict[str, Any]:
        """Felt som faktisk ble oppgitt av kalleren."""
        return self.model_dump(exclude_unset=True)


class _Les(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- Inn-modeller --------------------------------------------------------


class EntityContext(_Inn):
    type: Literal["sak", "selskap", "prosjekt"]
    id: str | int

    @model_validator(mode="after")
    def validate_sak_id(self) -> "EntityContext":
        if self.type == "sak":
            try:
                int(self.id)
            except ValueError:
                raise ValueError("entityContext.id må være et heltall når type er sak.") from None
        return self

    def fk_felt(self) -> dict[str, Any]:
        """Oversett til raden med gjensidig utelukkende fremmednøkler."""
        felt: dict[str, Any] = {"sak_id": None, "selskap_id": None, "prosjekt_id": None}
        if self.type == "sak":
            felt["sak_id"] = int(self.id)
        else:
            felt[f"{self.type}_id"] = str(self.id)
        return felt


class SelskapCreate(_Inn):
    organisasjonsnummer: str | None = Field(default=None, validate_default=True)
    selskapsnavn: str | None = Field(default=None, max_length=255)
    gateadresse: str | None = None
    postnummer: str | None = None
    poststed: str | None = None
    kontaktperson_navn: str | None = None
    kontaktperson_telefon: str | None = None
    kundenummer_wims: str | None = None
    ramme: Decimal | None = Field(default=None, ge=0)

    @field_validator("organisasjonsnummer", mode="before")
    @classmethod
    def validate_orgnr(cls, value: Any) -> str:
        return valider_orgnr(_trim(value) if isinstance(value, str) else value)


class SelskapUpdate(_Inn):
    selskapsnavn: str | None = Field(default=None, max_length=255)
    gateadresse: str | None = None
    postnummer: str | None = None
    poststed: str | None = None
    kontaktperson_navn: str | None = None
    kontaktperson_telefon: str | None = None
    kundenummer_wims: str | None = None
    ramme: Decimal | None = Field(default=None, ge=0)


class ProsjektCreate(_Inn):
    navn: str | None = Field(default=None, max_length=255)
    prosjekt_gateadresse: str | None = None
    prosjekt_postnummer: str | None = None
    prosjekt_poststed: str | None = None
    prosjekt_kommune: str | None = None
    prosjekt_kommunenummer: str | None = None
    produkt: str | None = None
    kommentar_kunde: str | None = None
    status: ProsjektStatus | None = None
    ansvarlig_raadgiver_id: int | None = None
    uw_ansvarlig_id: int | None = None
    produksjonsansvarlig_id: int | None = None


class ProsjektUpdate(ProsjektCreate):
    pass


class GuaranteeRequest(_Inn):
    """Ny garantiforespørsel: selskapsdata og prosjektdata i én flat struktur."""

    organisasjonsnummer: str | None = Field(default=None, validate_default=True)
    selskapsnavn: str | None = None
    gateadresse: str | None = None
    postnummer: str | None = None
    poststed: str | None = None
    kontaktperson_navn: str | None = None
    kontaktperson_telefon: str | None = None
    kundenummer_wims: str | None = None
    ramme: Decimal | None = Field(default=None, ge=0)
    prosjekt_navn: str | None = None
    prosjekt_gateadresse: str | None = None
    prosjekt_postnummer: str | None = None
    prosjekt_poststed: str | None = None
    prosjekt_kommune: str | None = None
    prosjekt_kommunenummer: str | None = None
    produkt: str | None = None
    prosjekt_status: ProsjektStatus | None = None
    kommentar_kunde: str | None = None
    ansvarlig_raadgiver_id: int | None = None
    uw_ansvarlig_id: int | None = None
    produksjonsansvarlig_id: int | None = None

    @field_validator("organisasjonsnummer", mode="before")
    @classmethod
    def validate_orgnr(cls, value: Any) -> str:
        return valider_orgnr(_trim(value) if isinstance(value, str) else value)


class TilbudCreate(_Inn):
    status: TilbudStatus | None = None
    produkttype: str | None = None
    prosjekttype: str | None = None
    antall_enheter: int | None = Field(default=None, ge=0)


class TilbudUpdate(TilbudCreate):
    pass


class BeregningInn(_Inn):
    kontraktssum: Decimal | None = Field(default=None, ge=0)
    start_dato: date | None = None
    slutt_dato: date | None = None
    utforelsestid: int | None = Field(default=None, ge=0)
    garantitid: int | None = Field(default=None, ge=0)
    rentesats_utforelse: Decimal | None = None
    rentesats_garanti: Decimal | None = None
    etableringsgebyr: Decimal | None = Field(default=None, ge=0)
    total_premie: Decimal | None = Field(default=None, ge=0)
    manuelt_overstyrt: bool | None = None


class PremieParametre(_Inn):
    kontraktssum: Decimal | None = None
    utforelsestid: int | None = None
    garantitid: int | None = None
    etableringsgebyr: Decimal | None = None


class BenefisientInn(_Inn):
    type: str | None = None
    navn: str | None = None
    organisasjonsnummer: str | None = None
    personident: str | None = None
    kjonn: str | None = None
    fodselsdato: date | None = None
    boenhet: str | None = None
    adresse: str | None = None
    postnummer: str | None = None
    poststed: str | None = None
    gardsnummer: str | None = None
    bruksnummer: str | None = None
    festenummer: str | None = None
    seksjonsnummer: str | None = None
    epost: str | None = None
    telefon: str | None = None
    mobiltelefon: str | None = None
    kontaktinformasjon: str | None = None
    andel: Decimal | None = None
    enhet_id: str | None = None
    aktiv: bool | None = None
    aktiv_fra: datetime | None = None
    aktiv_til: datetime | None = None
    kommentar: str | None = None


class EnhetInn(_Inn):
    betegnelse: str | None = None
    enhetsnummer: int | None = None
    enhetstype: str | None = None
    andel_av_helhet: Decimal | None = Field(default=None, ge=0, le=100)
    kommentar: str | None = None


class AutoGenererEnheterInn(_Inn):
    tilbud_id: str
    antall_enheter: int
    prosjekttype: str


class ProsjektFilter(_Inn):
    search_term: str | None = None
    opprettet_etter: date | None = None
    opprettet_for: date | None = None
    endret_etter: date | None = None
    endret_for: date | None = None
    status: ProsjektStatus | None = None
    ansvarlig_raadgiver_id: int | None = None
    uw_ansvarlig_id: int | None = None
    produksjonsansvarlig_id: int | None = None
    sort_by: Literal["opprettetDato", "updatedAt", "updated_at", "navn", "status"] | None = None
    sort_order: Literal["asc", "desc"] = "desc"
    take: int | None = Field(default=None, ge=1, le=1000)


class SelskapFilter(_Inn):
    opprettet_etter: date | None = None
    opprettet_for: date | None = None
    endret_etter: date | None = None
    endret_for: date | None = None
    sort_by: Literal["opprettetDato", "updatedAt", "updated_at", "selskapsnavn"] | None = None
    sort_order: Literal["asc", "desc"] = "desc"
    take: int | None = Field(default=None, ge=1, le=1000)


# --- Lese-modeller -------------------------------------------------------


class BrukerRead(_Les):
    id: int
    navn: str | None = None
    email: str
    rolle: str | None = None


class SelskapRead(_Les):
    id: str
    organisasjonsnummer: str
    selskapsnavn: str
    gateadresse: str | None = None
    postnummer: str | None = None
    poststed: str | None = None
    kontaktperson_navn: str | None = None
    kontaktperson_telefon: str | None = None
    kundenummer_wims: str | None = None
    ramme: str | None = None
    opprettet_dato: datetime
    updated_at: datetime

    @field_validator("ramme", mode="before")
    @classmethod
    def decimal_as_string(cls, value: Any) -> str | None:
        return _decimal_str(value)


class SelskapListItem(SelskapRead):
    antall_prosjekter: int = 0


class ProsjektRead(_Les):
    id: str
    selskap_id: str
    navn: str | None = None
    prosjekt_gateadresse: str | None = None
    prosjekt_postnummer: str | None = None
    prosjekt_poststed: str | None = None
    prosjekt_kommune: str | None = None
    prosjekt_kommunenummer: str | None = None
    produkt: str | None = None
    kommentar_kunde: str | None = None
    status: ProsjektStatus
    ansvarlig_raadgiver_id: int | None = None
    uw_ansvarlig_id: int | None = None
    produksjonsansvarlig_id: int | None = None
    opprettet_dato: datetime
    updated_at: datetime


class ProsjektListItem(ProsjektRead):
    selskap: SelskapRead | None = None
    ansvarlig_raadgiver: BrukerRead | None = None
    uw_ansvarlig: BrukerRead | None = None
    produksjonsansvarlig: BrukerRead | None = None


class BeregningRead(_Les):
    id: str
    tilbud_id: str
    kontraktssum: str | None = None
    start_dato: date | None = None
    slutt_dato: date | None = None
    utforelsestid: int | None = None
    garantitid: int | None = None
    rentesats_utforelse: str | None = None
    rentesats_garanti: str | None = None
    etableringsgebyr: str | None = None
    total_premie: str | None = None
    manuelt_overstyrt: bool = False
    sist_endret: datetime

    @field_validator(
        "kontraktssum",
        "rentesats_utforelse",
        "rentesats_garanti",
        "etableringsgebyr",
        "total_premie",
        mode="before",
    )
    @classmethod
    def decimal_as_string(cls, value: Any) -> str | None:
        return _decimal_str(value)


class EnhetRead(_Les):
    id: str
    tilbud_id: str
    betegnelse: str
    enhetsnummer: int | None = None
    enhetstype: str | None = None
    andel_av_helhet: str | None = None
    kommentar: str | None = None
    opprettet_dato: datetime

    @field_validator("andel_av_helhet", mode="before")
    @classmethod
    def decimal_as_string(cls, value: Any) -> str | None:
        return _decimal_str(value)


class BenefisientRead(_Les):
    id: str
    tilbud_id: str
    enhet_id: str | None = None
    type: BenefisientType
    navn: str
    organisasjonsnummer: str | None = None
    personident: str | None = None
    kjonn: str | None = None
    fodselsdato: date | None = None
    boenhet: str | None = None
    adresse: str | None = None
    postnummer: str | None = None
    poststed: str | None = None
    gardsnummer: str | None = None
    bruksnummer: str | None = None
    festenummer: str | None = None
    seksjonsnummer: str | None = None
    epost: str | None = None
    telefon: str | None = None
    mobiltelefon: str | None = None
    kontaktinformasjon: str | None = None
    andel: str
    aktiv: bool
    aktiv_fra: datetime | None = None
    aktiv_til: datetime | None = None
    kommentar: str | None = None

    @field_validator("andel", mode="before")
    @classmethod
    def decimal_as_string(cls, value: Any) -> str | None:
        return _decimal_str(value)


class TilbudRead(_Les):
    id: str
    prosjekt_id: str
    status: TilbudStatus
    produkttype: str | None = None
    prosjekttype: str | None = None
    antall_enheter: int | None = None
    versjonsnummer: int
    opprettet_av_id: int | None = None
    endret_av_id: int | None = None
    opprettet_dato: datetime
    sist_endret: datetime


class TilbudDetail(TilbudRead):
    beregning: BeregningRead | None = None
    benefisienter: list[BenefisientRead] = Field(default_factory=list)
    enheter: list[EnhetRead] = Field(default_factory=list)


class ProduktKonfigurasjonRead(_Les):
    id: int
    produktnavn: str
    standard_utforelse_prosent: str
    standard_garanti_prosent: str
    standard_garantitid: int
    maks_kontraktssum: str | None = None
    aktiv: bool
    beskrivelse: str | None = None

    @field_validator(
        "standard_utforelse_prosent",
        "standard_garanti_prosent",
        "maks_kontraktssum",
        mode="before",
    )
    @classmethod
    def decimal_as_string(cls, value: Any) -> str | None:
        return _decimal_str(value)


class DokumentRead(_Les):
    id: int
    sak_id: int | None = None
    selskap_id: str | None = None
    prosjekt_id: str | None = None
    dokument_type: str
    filnavn: str
    blob_url: str
    container_navn: str
    blob_navn: str
    opplastet_av_id: int | None = None
    opplastet_dato: datetime


class HendelseRead(_Les):
    id: int
    sak_id: int | None = None
    selskap_id: str | None = None
    prosjekt_id: str | None = None
    hendelse_type: str
    beskrivelse: str
    utfort_av_id: int | None = None
    dato: datetime


class KommentarRead(_Les):
    id: int
    sak_id: int | None = None
    selskap_id: str | None = None
    prosjekt_id: str | None = None
    kommentar: str
    opprettet_av_id: int | None = None
    opprettet_dato: datetime


class ProsjektDetail(ProsjektListItem):
    tilbud: list[TilbudDetail] = Field(default_factory=list)
    dokumenter: list[DokumentRead] = Field(default_factory=list)
    hendelser: list[HendelseRead] = Field(default_factory=list)
    kommentarer: list[KommentarRead] = Field(default_factory=list)


class SelskapDetail(SelskapRead):
    prosjekter: list[ProsjektRead] = Field(default_factory=list)
    dokumenter: list[DokumentRead] = Field(default_factory=list)
    hendelser: list[HendelseRead] = Field(default_factory=list)
    kommentarer: list[KommentarRead] = Field(default_factory=list)


class GuaranteeRequestResult(_Les):
    selskap: SelskapRead
    prosjekt: ProsjektRead
    nytt_selskap: bool


class ProsjektCollection(BaseModel):
    items: list[ProsjektListItem] = Field(default_factory=list)

    @classmethod
    def from_iterable(cls, items: Iterable[object]) -> "ProsjektCollection":
        return cls(items=[ProsjektListItem.model_validate(item) for item in items])


__all__ = [
    "AutoGenererEnheterInn",
    "BenefisientInn",
    "BenefisientRead",
    "BeregningInn",
    "BeregningRead",
    "BrukerRead",
    "DokumentRead",
    "EnhetInn",
    "EnhetRead",
    "EntityContext",
    "GuaranteeRequest",
    "GuaranteeRequestResult",
    "HendelseRead",
    "KommentarRead",
    "ORGNR_FEIL",
    "PremieParametre",
    "ProduktKonfigurasjonRead",
    "ProsjektCollection",
    "ProsjektCreate",
    "ProsjektDetail",
    "ProsjektFilter",
    "ProsjektListItem",
    "ProsjektRead",
    "ProsjektUpdate",
    "SelskapCreate",
    "SelskapDetail",
    "SelskapFilter",
    "SelskapListItem",
    "SelskapRead",
    "SelskapUpdate",
    "TilbudCreate",
    "TilbudDetail",
    "TilbudRead",
    "TilbudUpdate",
    "parse_model",
    "valider_orgnr",
]
