from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from byggbot.domain.garanti.constants import BenefisientType, ProsjektStatus, TilbudStatus
from byggbot.infrastructure.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


# Dokumenter, hendelser og kommentarer peker på nøyaktig én av sak, selskap eller prosjekt.
_EN_FORELDER = (
    "(CASE WHEN sak_id IS NULL THEN 0 ELSE 1 END)"
    " + (CASE WHEN selskap_id IS NULL THEN 0 ELSE 1 END)"
    " + (CASE WHEN prosjekt_id IS NULL THEN 0 ELSE 1 END) = 1"
)


class Bruker(Base):
    __tablename__ = "brukere"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    navn: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False, index=True)
    rolle: Mapped[str | None] = mapped_column(String(64), nullable=True)
    aktiv: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def visningsnavn(self) -> str:
        return self.navn or self.email or f"ID: {self.id}"

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"Bruker(id={self.id!r}, email={self.email!r})"


class Selskap(Base):
    __tablename__ = "selskaper"

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default=lambda: uuid4().hex)
    organisasjonsnummer: Mapped[str] = mapped_column(String(9), unique=True, nullable=False, index=True)
    selskapsnavn: Mapped[str] = mapped_column(String(255), nullable=False)
    gateadresse: Mapped[str | None] = mapped_column(String(255), nullable=True)
    postnummer: Mapped[str | None] = mapped_column(String(10), nullable=True)
    poststed: Mapped[str | None] = mapped_column(String(120), nullable=True)
    kontaktperson_navn: Mapped[str | None] = mapped_column(String(255), nullable=True)
    kontaktperson_telefon: Mapped[str | None] = mapped_column(String(50), nullable=True)
    kundenummer_wims: Mapped[str | None] = mapped_column(String(50), nullable=True)
    ramme: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    opprettet_dato: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    prosjekter: Mapped[list["GarantiProsjekt"]] = relationship(
        "GarantiProsjekt", back_populates="selskap", cascade="all, delete-orphan"
    )
    saker: Mapped[list["GarantiSak"]] = relationship(
        "GarantiSak", back_populates="selskap", cascade="all, delete-orphan"
    )
    dokumenter: Mapped[list["GarantiSakDokument"]] = relationship(
        "GarantiSakDokument", back_populates="selskap", cascade="all, delete-orphan"
    )
    hendelser: Mapped[list["GarantiSakHendelse"]] = relationship(
        "GarantiSakHendelse", back_populates="selskap", cascade="all, delete-orphan"
    )
    kommentarer: Mapped[list["GarantiSakInternKommentar"]] = relationship(
        "GarantiSakInternKommentar", back_populates="selskap", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"Selskap(id={self.id!r}, orgnr={self.organisasjonsnummer!r})"


class GarantiSak(Base):
    """Eldre saksmodell; fortsatt mål for dokumenter, hendelser og kommentarer."""

    __tablename__ = "garanti_saker"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    selskap_id: Mapped[str | None] = mapped_column(
        ForeignKey("selskaper.id", ondelete="CASCADE"), nullable=True, index=True
    )
    beskrivelse: Mapped[str | None] = mapped_column(Text, nullable=True)
    opprettet_dato: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    selskap: Mapped[Optional["Selskap"]] = relationship("Selskap", back_populates="saker")
    dokumenter: Mapped[list["GarantiSakDokument"]] = relationship(
        "GarantiSakDokument", back_populates="sak", cascade="all, delete-orphan"
    )
    hendelser: Mapped[list["GarantiSakHendelse"]] = relationship(
        "GarantiSakHendelse", back_populates="sak", cascade="all, delete-orphan"
    )
    kommentarer: Mapped[list["GarantiSakInternKommentar"]] = relationship(
        "GarantiSakInternKommentar", back_populates="sak", cascade="all, delete-orphan"
    )


class GarantiProsjekt(Base):
    __tablename__ = "garanti_prosjekter"

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default=lambda: uuid4().hex)
    selskap_id: Mapped[str] = mapped_column(
        ForeignKey("selskaper.id", ondelete="CASCADE"), nullable=False, index=True
    )
    navn: Mapped[str | None] = mapped_column(String(255), nullable=True)
    prosjekt_gateadresse: Mapped[str | None] = mapped_column(String(255), nullable=True)
    prosjekt_postnummer: Mapped[str | None] = mapped_column(String(10), nullable=True)
    prosjekt_poststed: Mapped[str | None] = mapped_column(String(120), nullable=True)
    prosjekt_kommune: Mapped[str | None] = mapped_column(String(120), nullable=True)
    prosjekt_kommunenummer: Mapped[str | None] = mapped_column(String(10), nullable=True)
    produkt: Mapped[str | None] = mapped_column(String(120), nullable=True)
    kommentar_kunde: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[ProsjektStatus] = mapped_column(
        Enum(ProsjektStatus, name="prosjekt_status", values_callable=_enum_values),
        default=ProsjektStatus.NY,
        nullable=False,
    )
    ansvarlig_raadgiver_id: Mapped[int | None] = mapped_column(
        ForeignKey("brukere.id", ondelete="SET NULL"), nullable=True
    )
    uw_ansvarlig_id: Mapped[int | None] = mapped_column(
        ForeignKey("brukere.id", ondelete="SET NULL"), nullable=True
    )
    produksjonsansvarlig_id: Mapped[int | None] = mapped_column(
        ForeignKey("brukere.id", ondelete="SET NULL"), nullable=True
    )
    opprettet_dato: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    selskap: Mapped["Selskap"] = relationship("Selskap", back_populates="prosjekter")
    tilbud: Mapped[list["Tilbud"]] = relationship(
        "Tilbud", back_populates="prosjekt", cascade="all, delete-orphan", order_by="Tilbud.opprettet_dato"
    )
    ansvarlig_raadgiver: Mapped[Optional["Bruker"]] = relationship(
        "Bruker", foreign_keys=[ansvarlig_raadgiver_id]
    )
    uw_ansvarlig: Mapped[Optional["Bruker"]] = relationship("Bruker", foreign_keys=[uw_ansvarlig_id])
    produksjonsansvarlig: Mapped[Optional["Bruker"]] = relationship(
        "Bruker", foreign_keys=[produksjonsansvarlig_id]
    )
    dokumenter: Mapped[list["GarantiSakDokument"]] = relationship(
        "GarantiSakDokument", back_populates="prosjekt", cascade="all, delete-orphan"
    )
    hendelser: Mapped[list["GarantiSakHendelse"]] = relationship(
        "GarantiSakHendelse", back_populates="prosjekt", cascade="all, delete-orphan"
    )
    kommentarer: Mapped[list["GarantiSakInternKommentar"]] = relationship(
        "GarantiSakInternKommentar", back_populates="prosjekt", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"GarantiProsjekt(id={self.id!r}, status={self.status!r})"


class Tilbud(Base):
    __tablename__ = "tilbud"

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default=lambda: uuid4().hex)
    prosjekt_id: Mapped[str] = mapped_column(
        ForeignKey("garanti_prosjekter.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[TilbudStatus] = mapped_column(
        Enum(TilbudStatus, name="tilbud_status", values_callable=_enum_values),
        default=TilbudStatus.UTKAST,
        nullable=False,
    )
    produkttype: Mapped[str | None] = mapped_column(String(120), nullable=True)
    prosjekttype: Mapped[str | None] = mapped_column(String(64), nullable=True)
    antall_enheter: Mapped[int | None] = mapped_column(Integer, nullable=True)
    versjonsnummer: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    opprettet_av_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    endret_av_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    opprettet_dato: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    sist_endret: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    prosjekt: Mapped["GarantiProsjekt"] = relationship("GarantiProsjekt", back_populates="tilbud")
    beregning: Mapped[Optional["TilbudsBeregning"]] = relationship(
        "TilbudsBeregning", back_populates="tilbud", uselist=False, cascade="all, delete-orphan"
    )
    benefisienter: Mapped[list["Benefisient"]] = relationship(
        "Benefisient", back_populates="tilbud", cascade="all, delete-orphan"
    )
    enheter: Mapped[list["Enhet"]] = relationship(
        "Enhet", back_populates="tilbud", cascade="all, delete-orphan", order_by="Enhet.enhetsnummer"
    )

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"Tilbud(id={self.id!r}, status={self.status!r}, v={self.versjonsnummer!r})"


class TilbudsBeregning(Base):
    __tablename__ = "tilbuds_beregninger"

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default=lambda: uuid4().hex)
    tilbud_id: Mapped[str] = mapped_column(
        ForeignKey("tilbud.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    kontraktssum: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    start_dato: Mapped[date | None] = mapped_column(Date, nullable=True)
    slutt_dato: Mapped[date | None] = mapped_column(Date, nullable=True)
    utforelsestid: Mapped[int | None] = mapped_column(Integer, nullable=True)
    garantitid: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rentesats_utforelse: Mapped[Decimal | None] = mapped_column(Numeric(10, 6), nullable=True)
    rentesats_garanti: Mapped[Decimal | None] = mapped_column(Numeric(10, 6), nullable=True)
    etableringsgebyr: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    total_premie: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    manuelt_overstyrt: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    opprettet_dato: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    sist_endret: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    tilbud: Mapped["Tilbud"] = relationship("Tilbud", back_populates="beregning")


class Enhet(Base):
    __tablename__ = "enheter"

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default=lambda: uuid4().hex)
    tilbud_id: Mapped[str] = mapped_column(
        ForeignKey("tilbud.id", ondelete="CASCADE"), nullable=False, index=True
    )
    betegnelse: Mapped[str] = mapped_column(String(120), nullable=False)
    enhetsnummer: Mapped[int | None] = mapped_column(Integer, nullable=True)
    enhetstype: Mapped[str | None] = mapped_column(String(64), nullable=True)
    andel_av_helhet: Mapped[Decimal | None] = mapped_column(Numeric(7, 2), nullable=True)
    kommentar: Mapped[str | None] = mapped_column(Text, nullable=True)
    opprettet_dato: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    sist_endret: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    tilbud: Mapped["Tilbud"] = relationship("Tilbud", back_populates="enheter")
    benefisienter: Mapped[list["Benefisient"]] = relationship(
        "Benefisient", back_populates="enhet", cascade="all, delete"
    )


class Benefisient(Base):
    __tablename__ = "benefisienter"
    __table_args__ = (
        CheckConstraint("andel > 0 AND andel <= 100", name="ck_benefisienter_andel"),
    )

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default=lambda: uuid4().hex)
    tilbud_id: Mapped[str] = mapped_column(
        ForeignKey("tilbud.id", ondelete="CASCADE"), nullable=False, index=True
    )
    enhet_id: Mapped[str | None] = mapped_column(
        ForeignKey("enheter.id", ondelete="CASCADE"), nullable=True, index=True
    )
    type: Mapped[BenefisientType] = mapped_column(
        Enum(BenefisientType, name="benefisient_type", values_callable=_enum_values),
        nullable=False,
    )
    navn: Mapped[str] = mapped_column(String(255), nullable=False)
    organisasjonsnummer: Mapped[str | None] = mapped_column(String(9), nullable=True)
    personident: Mapped[str | None] = mapped_column(String(11), nullable=True)
    kjonn: Mapped[str | None] = mapped_column(String(20), nullable=True)
    fodselsdato: Mapped[date | None] = mapped_column(Date, nullable=True)
    boenhet: Mapped[str | None] = mapped_column(String(50), nullable=True)
    adresse: Mapped[str | None] = mapped_column(String(255), nullable=True)
    postnummer: Mapped[str | None] = mapped_column(String(10), nullable=True)
    poststed: Mapped[str | None] = mapped_column(String(120), nullable=True)
    gardsnummer: Mapped[str | None] = mapped_column(String(20), nullable=True)
    bruksnummer: Mapped[str | None] = mapped_column(String(20), nullable=True)
    festenummer: Mapped[str | None] = mapped_column(String(20), nullable=True)
    seksjonsnummer: Mapped[str | None] = mapped_column(String(20), nullable=True)
    epost: Mapped[str | None] = mapped_column(String(320), nullable=True)
    telefon: Mapped[str | None] = mapped_column(String(50), nullable=True)
    mobiltelefon: Mapped[str | None] = mapped_column(String(50), nullable=True)
    kontaktinformasjon: Mapped[str | None] = mapped_column(Text, nullable=True)
    andel: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    aktiv: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    aktiv_fra: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=True)
    aktiv_til: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    kommentar: Mapped[str | None] = mapped_column(Text, nullable=True)
    opprettet_dato: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    sist_endret: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    tilbud: Mapped["Tilbud"] = relationship("Tilbud", back_populates="benefisienter")
    enhet: Mapped[Optional["Enhet"]] = relationship("Enhet", back_populates="benefisienter")

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"Benefisient(id={self.id!r}, andel={self.andel!r}, aktiv={self.aktiv!r})"


class ProduktKonfigurasjon(Base):
    __tablename__ = "produkt_konfigurasjoner"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    produktnavn: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    standard_utforelse_prosent: Mapped[Decimal] = mapped_column(Numeric(10, 6), nullable=False)
    standard_garanti_prosent: Mapped[Decimal] = mapped_column(Numeric(10, 6), nullable=False)
    standard_garantitid: Mapped[int] = mapped_column(Integer, nullable=False)
    maks_kontraktssum: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    aktiv: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    beskrivelse: Mapped[str | None] = mapped_column(Text, nullable=True)


class GarantiSakDokument(Base):
    __tablename__ = "garanti_dokumenter"
    __table_args__ = (CheckConstraint(_EN_FORELDER, name="ck_garanti_dokumenter_en_forelder"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    sak_id: Mapped[int | None] = mapped_column(
        ForeignKey("garanti_saker.id", ondelete="CASCADE"), nullable=True, index=True
    )
    selskap_id: Mapped[str | None] = mapped_column(
        ForeignKey("selskaper.id", ondelete="CASCADE"), nullable=True, index=True
    )
    prosjekt_id: Mapped[str | None] = mapped_column(
        ForeignKey("garanti_prosjekter.id", ondelete="CASCADE"), nullable=True, index=True
    )
    dokument_type: Mapped[str] = mapped_column(String(120), nullable=False)
    filnavn: Mapped[str] = mapped_column(String(255), nullable=False)
    blob_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    container_navn: Mapped[str] = mapped_column(String(120), nullable=False)
    blob_navn: Mapped[str] = mapped_column(String(400), nullable=False)
    opplastet_av_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    opplastet_dato: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    sak: Mapped[Optional["GarantiSak"]] = relationship("GarantiSak", back_populates="dokumenter")
    selskap: Mapped[Optional["Selskap"]] = relationship("Selskap", back_populates="dokumenter")
    prosjekt: Mapped[Optional["GarantiProsjekt"]] = relationship(
        "GarantiProsjekt", back_populates="dokumenter"
    )


class GarantiSakHendelse(Base):
    """Revisjonslogg. Rader legges bare til; de endres eller slettes aldri av tjenestene."""

    __tablename__ = "garanti_hendelser"
    __table_args__ = (CheckConstraint(_EN_FORELDER, name="ck_garanti_hendelser_en_forelder"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    sak_id: Mapped[int | None] = mapped_column(
        ForeignKey("garanti_saker.id", ondelete="CASCADE"), nullable=True, index=True
    )
    selskap_id: Mapped[str | None] = mapped_column(
        ForeignKey("selskaper.id", ondelete="CASCADE"), nullable=True, index=True
    )
    prosjekt_id: Mapped[str | None] = mapped_column(
        ForeignKey("garanti_prosjekter.id", ondelete="CASCADE"), nullable=True, index=True
    )
    hendelse_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    beskrivelse: Mapped[str] = mapped_column(Text, nullable=False)
    utfort_av_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    dato: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    sak: Mapped[Optional["GarantiSak"]] = relationship("GarantiSak", back_populates="hendelser")
    selskap: Mapped[Optional["Selskap"]] = relationship("Selskap", back_populates="hendelser")
    prosjekt: Mapped[Optional["GarantiProsjekt"]] = relationship(
        "GarantiProsjekt", back_populates="hendelser"
    )


class GarantiSakInternKommentar(Base):
    __tablename__ = "garanti_intern_kommentarer"
    __table_args__ = (CheckConstraint(_EN_FORELDER, name="ck_garanti_kommentarer_en_forelder"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    sak_id: Mapped[int | None] = mapped_column(
        ForeignKey("garanti_saker.id", ondelete="CASCADE"), nullable=True, index=True
    )
    selskap_id: Mapped[str | None] = mapped_column(
        ForeignKey("selskaper.id", ondelete="CASCADE"), nullable=True, index=True
    )
    prosjekt_id: Mapped[str | None] = mapped_column(
        ForeignKey("garanti_prosjekter.id", ondelete="CASCADE"), nullable=True, index=True
    )
    kommentar: Mapped[str] = mapped_column(Text, nullable=False)
    opprettet_av_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    opprettet_dato: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    sak: Mapped[Optional["GarantiSak"]] = relationship("GarantiSak", back_populates="kommentarer")
    selskap: Mapped[Optional["Selskap"]] = relationship("Selskap", back_populates="kommentarer")
    prosjekt: Mapped[Optional["GarantiProsjekt"]] = relationship(
        "GarantiProsjekt", back_populates="kommentarer"
    )


__all__ = [
    "Benefisient",
    "Bruker",
    "Enhet",
    "GarantiProsjekt",
    "GarantiSak",
    "GarantiSakDokument",
    "GarantiSakHendelse",
    "GarantiSakInternKommentar",
    "ProduktKonfigurasjon",
    "Selskap",
    "Tilbud",
    "TilbudsBeregning",
]
