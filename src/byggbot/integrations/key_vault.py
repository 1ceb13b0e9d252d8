# byggbot/integrations/key_vault.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from byggbot.infrastructure.config import SETTINGS, require_env


logger = logging.getLogger(__name__)


class KeyVaultError(RuntimeError):
    """Raised when a secret could not be read from the key vault."""


@dataclass(frozen=True)
class KeyVaultConfig:
    """Tjenestekonto-legitimasjon for nøkkelhvelvet, lest fra miljøet ved kjøretid."""

    client_id: str
    client_secret: str
    region: str

    @classmethod
    def from_env(cls) -> "KeyVaultConfig":
        return cls(
            client_id=require_env("KEY_VAULT_CLIENT_ID", context="oppslag i nøkkelhvelv"),
            client_secret=require_env("KEY_VAULT_CLIENT_SECRET", context="oppslag i nøkkelhvelv"),
            region=os.getenv("KEY_VAULT_REGION", SETTINGS.KEY_VAULT_REGION) or SETTINGS.KEY_VAULT_REGION,
        )


def _build_client(config: KeyVaultConfig) -> Any:
    try:
        return boto3.client(
            "secretsmanager",
            aws_access_key_id=config.client_id,
            aws_secret_access_key=config.client_secret,
            region_name=config.region,
        )
    except (BotoCoreError, ClientError) as exc:
        raise KeyVaultError(f"Kunne ikke opprette klient for nøkkelhvelv: {exc}") from exc


def get_secret(
    name: str,
    *,
    config: Optional[KeyVaultConfig] = None,
    client: Any = None,
) -> str:
    """
    Hent en hemmelighet fra nøkkelhvelvet.

    Verdien holdes kun i minnet; den skrives aldri til disk og caches ikke.
    """
    if client is None:
        client = _build_client(config or KeyVaultConfig.from_env())
    try:
        response = client.get_secret_value(SecretId=name)
    except (BotoCoreError, ClientError) as exc:
        raise KeyVaultError(f"Kunne ikke hente hemmeligheten {name}: {exc}") from exc

    value = response.get("SecretString")
    if not value:
        raise KeyVaultError(f"Hemmeligheten {name} er tom.")
    logger.info("Hentet hemmelighet %s fra nøkkelhvelv", name)
    return value


__all__ = ["KeyVaultConfig", "KeyVaultError", "get_secret"]
