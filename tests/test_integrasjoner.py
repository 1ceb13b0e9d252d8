from datetime import date

import pytest
import requests
from botocore.exceptions import ClientError

from byggbot.infrastructure.config import ConfigError
from byggbot.integrations import rapport_api
from byggbot.integrations.blob_storage import BlobStorage, BlobStorageError, sanitize_filename
from byggbot.integrations.key_vault import KeyVaultError, get_secret


def _client_error(operasjon: str) -> ClientError:
    return ClientError({"Error": {"Code": "AccessDenied", "Message": "nei"}}, operasjon)


class FakeS3:
    def __init__(self, feil: bool = False):
        self.feil = feil
        self.lagret = []

    def put_object(self, **kwargs):
        if self.feil:
            raise _client_error("PutObject")
        self.lagret.append(kwargs)

    def generate_presigned_url(self, operasjon, Params, ExpiresIn):
        return f"https://signert/{Params['Bucket']}/{Params['Key']}?op={operasjon}&exp={ExpiresIn}"


class FakeSecrets:
    def __init__(self, verdier):
        self.verdier = verdier

    def get_secret_value(self, SecretId):
        if SecretId not in self.verdier:
            raise _client_error("GetSecretValue")
        return {"SecretString": self.verdier[SecretId]}


# -------------------------------
# Blob-lagring
# -------------------------------
def test_sanitize_filename_fjerner_spesialtegn():
    assert sanitize_filename("Kontrakt (endelig) æøå.pdf") == "Kontraktendelig.pdf"
    assert sanitize_filename(None) == ""


def test_upload_lagrer_med_tilfeldig_navn():
    s3 = FakeS3()
    lagring = BlobStorage(container="dok", client=s3)

    blob = lagring.upload(b"%PDF-1.4", "avtale 1.pdf", content_type="application/pdf")

    assert blob.container == "dok"
    assert blob.blob_name.endswith("-avtale1.pdf")
    assert len(blob.blob_name) == 36 + len("-avtale1.pdf")
    assert blob.url.endswith(f"/{blob.blob_name}")
    assert s3.lagret == [
        {"Bucket": "dok", "Key": blob.blob_name, "Body": b"%PDF-1.4", "ContentType": "application/pdf"}
    ]


def test_upload_feil_blir_blob_storage_error():
    with pytest.raises(BlobStorageError):
        BlobStorage(container="dok", client=FakeS3(feil=True)).upload(b"x", "a.txt")


def test_signert_url_har_standard_levetid():
    lagring = BlobStorage(container="dok", client=FakeS3())

    assert lagring.signed_read_url("abc.pdf") == "https://signert/dok/abc.pdf?op=get_object&exp=900"
    assert lagring.signed_read_url("abc.pdf", container="annen", expires_in=60).endswith("annen/abc.pdf?op=get_object&exp=60")


# -------------------------------
# Nøkkelhvelv
# -------------------------------
def test_get_secret():
    assert get_secret("lagring", client=FakeSecrets({"lagring": "hemmelig"})) == "hemmelig"


@pytest.mark.parametrize("verdier", [{"lagring": ""}, {}])
def test_get_secret_feiler(verdier):
    with pytest.raises(KeyVaultError):
        get_secret("lagring", client=FakeSecrets(verdier))


def test_get_secret_uten_legitimasjon(monkeypatch):
    monkeypatch.delenv("KEY_VAULT_CLIENT_ID", raising=False)
    with pytest.raises(ConfigError):
        get_secret("lagring")


# -------------------------------
# Rapport-API
# -------------------------------
class FakeResponse:
    def __init__(self, body, status=200):
        self.body = body
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} feil")

    def json(self):
        return self.body


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.kall = []

    def post(self, url, **kwargs):
        self.kall.append((url, kwargs))
        return self.response


def test_build_payload():
    assert rapport_api.build_payload(date(2025, 1, 1), date(2025, 6, 30)) == {
        "Params": [
            {"Name": "@FromDate", "Value": "2025-01-01"},
            {"Name": "@ToDate", "Value": "2025-06-30"},
        ]
    }


def test_fetch_report_sender_token_og_rapportnavn(monkeypatch):
    monkeypatch.setenv("RAPPORT_API_TOKEN", "tok-123")
    sess = FakeSession(FakeResponse([{"CustomerNumber": 1}]))

    data = rapport_api.fetch_report(
        rapport_api.NYSALG_RAPPORT, date(2025, 1, 1), date(2025, 1, 31), session=sess
    )

    assert data == [{"CustomerNumber": 1}]
    _, kwargs = sess.kall[0]
    assert kwargs["params"] == {"reportname": "API_Byggbot_nysalgsrapport"}
    assert kwargs["headers"]["Authorization"] == "tok-123"
    assert kwargs["json"]["Params"][1]["Value"] == "2025-01-31"


def test_fetch_report_krever_token(monkeypatch):
    monkeypatch.delenv("RAPPORT_API_TOKEN", raising=False)
    with pytest.raises(ConfigError):
        rapport_api.fetch_report(rapport_api.NYSALG_RAPPORT, date(2025, 1, 1), date(2025, 1, 31))


@pytest.mark.parametrize(
    "body, melding",
    [
        ({"ErrorMessage": "Parameter @FromDate not found in query definition."}, rapport_api.PARAMETERFEIL),
        ({"ErrorCode": "E42", "ErrorMessage": "Tidsavbrudd i databasen. Prøv igjen."}, "API-feil: Tidsavbrudd i databasen."),
        ({"ErrorCode": "E500"}, "API-feil: E500"),
    ],
)
def test_fetch_report_feilsvar(monkeypatch, body, melding):
    monkeypatch.setenv("RAPPORT_API_TOKEN", "tok")
    with pytest.raises(rapport_api.RapportApiError) as exc:
        rapport_api.fetch_report(
            rapport_api.SKADE_RAPPORT, date(2025, 1, 1), date(2025, 1, 31), session=FakeSession(FakeResponse(body))
        )
    assert str(exc.value) == melding


def test_fetch_report_http_feil(monkeypatch):
    monkeypatch.setenv("RAPPORT_API_TOKEN", "tok")
    with pytest.raises(rapport_api.RapportApiError):
        rapport_api.fetch_report(
            rapport_api.SKADE_RAPPORT,
            date(2025, 1, 1),
            date(2025, 1, 31),
            session=FakeSession(FakeResponse({}, status=503)),
        )
