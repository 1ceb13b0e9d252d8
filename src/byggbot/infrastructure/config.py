# byggbot/infrastructure/config.py
from __future__ import annotations
from dataclasses import dataclass
import os


def _env_bool(name: str, default: bool) -> bool:
    """Les boolsk miljøvariabel på en tolerant måte."""
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() not in {"0", "false", "no", "off", ""}


def _env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val)
    except ValueError:
        return default


class ConfigError(RuntimeError):
    """Raised when required configuration is missing."""


def require_env(name: str, *, context: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise ConfigError(f"Miljøvariabelen {name} er ikke satt (kreves for {context}).")
    return value


@dataclass(frozen=True)
class Settings:
    # Blob-lagring for garantidokumenter
    STORAGE_BUCKET: str = os.getenv("GARANTI_STORAGE_BUCKET", "garanti-dokumenter")
    STORAGE_REGION: str = os.getenv("GARANTI_STORAGE_REGION", "eu-north-1")
    STORAGE_ENDPOINT_URL: str | None = os.getenv("GARANTI_STORAGE_ENDPOINT_URL") or None

    # Lesetilgang via signert URL, 15 minutter
    SAS_URL_EXPIRY_SECONDS: int = _env_int("SAS_URL_EXPIRY_SECONDS", 900)

    # Nøkkelhvelv (Secrets Manager) for lagringsnøkler
    STORAGE_SECRET_NAME: str = os.getenv("GARANTI_STORAGE_SECRET_NAME", "byggbotgaranti-storage-key")
    KEY_VAULT_REGION: str = os.getenv("KEY_VAULT_REGION", "eu-north-1")

    # Rapport-API
    RAPPORT_API_URL: str = os.getenv(
        "RAPPORT_API_URL",
        "https://portal.bmf.no/CallActionset/Byggmesterforsikring/PortalApi_report_json",
    )
    RAPPORT_API_TIMEOUT: int = _env_int("RAPPORT_API_TIMEOUT", 60)
    RAPPORT_CHUNK_MAANEDER: int = _env_int("RAPPORT_CHUNK_MAANEDER", 6)

    # Brukes som aktør når kallet ikke oppgir bruker
    SYSTEM_BRUKER_ID: int = _env_int("SYSTEM_BRUKER_ID", 1)

    DB_ECHO: bool = _env_bool("SQLALCHEMY_ECHO", False)

    LOG_LEVEL: str = os.getenv("GARANTI_LOG_LEVEL", "INFO")
    AUTO_SEED_PRODUKTER: bool = _env_bool("GARANTI_AUTO_SEED_PRODUKTER", True)


SETTINGS = Settings()


__all__ = ["ConfigError", "SETTINGS", "Settings", "require_env"]
