"""
Fixture condivise dai test.

Ogni test usa un database SQLite temporaneo e una directory uploads
temporanea; il gateway SMS è sostituito da un fake che registra i messaggi.
"""
from __future__ import annotations

import base64
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from dental_clinic.api_main import create_app
from dental_clinic.config import Settings
from dental_clinic.db import Database
from dental_clinic.media import MediaStore

# PNG 1x1 trasparente
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class FakeSmsGateway:
    """Registra gli invii invece di chiamare Netgsm."""

    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.sent: list[tuple[str, str]] = []

    def send(self, phone: str, message: str, header: str | None = None) -> bool:
        self.sent.append((phone, message))
        return self.ok


def png(name: str = "foto.png") -> tuple[str, bytes, str]:
    return (name, PNG_BYTES, "image/png")


def stored_file(uploads_dir: Path, public_path: str) -> Path:
    return uploads_dir / Path(public_path).name


# ============================================================================
# CONFIGURAZIONE / RISORSE
# ============================================================================


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.sqlite'}",
        uploads_dir=tmp_path / "uploads",
        admin_username="admin",
        admin_password="segreta-di-test",
        sms_signature="TEST DIS",
        log_level="WARNING",
    )


@pytest.fixture
def database(settings: Settings):
    db = Database(settings.database_url)
    yield db
    db.dispose()


@pytest.fixture
def media(settings: Settings) -> MediaStore:
    return MediaStore(settings.uploads_dir)


@pytest.fixture
def uploads_dir(media: MediaStore) -> Path:
    return media.root


@pytest.fixture
def sms() -> FakeSmsGateway:
    return FakeSmsGateway()


# ============================================================================
# APP / CLIENT
# ============================================================================


@pytest.fixture
def app(settings: Settings, database: Database, media: MediaStore, sms: FakeSmsGateway):
    return create_app(settings=settings, database=database, media=media, sms=sms)


@pytest.fixture
def client(app):
    # il context manager esegue il lifespan (migrazioni + admin)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def clinic(client) -> dict:
    r = client.post("/api/clinics", data={"name": "C1", "phone": "0462 123 45 67"})
    assert r.status_code == 200
    return r.json()


@pytest.fixture
def doctor(client, clinic: dict) -> dict:
    r = client.post("/api/doctors", data={"name": "Dr. A", "clinic_id": str(clinic["id"])})
    assert r.status_code == 200
    return r.json()
