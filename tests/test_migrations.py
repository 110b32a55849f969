from __future__ import annotations

import logging

from fastapi.testclient import TestClient
from sqlalchemy import func, inspect, select, text

from dental_clinic import services
from dental_clinic.auth_models import Admin
from dental_clinic.auth_service import authenticate, set_admin_password
from dental_clinic.config import DEFAULT_ADMIN_PASSWORD, Settings
from dental_clinic.migrations import MIGRATIONS, current_version, run_migrations
from dental_clinic.seed import init_schema, seed_admin


def test_migrations_apply_once(database):
    assert run_migrations(database) == [m.version for m in MIGRATIONS]
    assert run_migrations(database) == []
    assert current_version(database) == MIGRATIONS[-1].version


def test_slot_index_exists(database):
    run_migrations(database)

    names = {ix["name"] for ix in inspect(database.engine).get_indexes("appointments")}
    assert "uq_appointments_doctor_slot" in names


def test_legacy_videos_table_gets_new_columns(database):
    with database.engine.begin() as conn:
        conn.execute(text("CREATE TABLE videos (id INTEGER PRIMARY KEY, title VARCHAR(255), url VARCHAR(255), description TEXT)"))

    run_migrations(database)

    cols = {c["name"] for c in inspect(database.engine).get_columns("videos")}
    assert {"video_id", "long_description"} <= cols


def test_admin_seeded_once_with_hash(database, settings):
    init_schema(database, settings)
    init_schema(database, settings)

    with database.session() as s:
        admins = list(s.scalars(select(Admin)))
        assert len(admins) == 1
        assert admins[0].username == "admin"
        assert admins[0].password_hash != settings.admin_password
        assert admins[0].password_hash.startswith("$2")


def test_seed_skipped_when_admin_exists(database):
    run_migrations(database)

    assert seed_admin(database, "admin", "uno") is True
    assert seed_admin(database, "altro", "due") is False

    with database.session() as s:
        assert s.execute(select(func.count()).select_from(Admin)).scalar_one() == 1


def test_legacy_plaintext_admin_is_rehashed(database):
    with database.engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE admins (id INTEGER PRIMARY KEY, username VARCHAR(50) UNIQUE NOT NULL, "
            "password VARCHAR(50) NOT NULL)"
        ))
        conn.execute(text("INSERT INTO admins (username, password) VALUES ('admin', 'admin123')"))

    run_migrations(database)

    cols = {c["name"] for c in inspect(database.engine).get_columns("admins")}
    assert "password_hash" in cols
    assert "password" not in cols
    assert authenticate(database, "admin", "admin123") is True
    assert seed_admin(database, "admin", "altra") is False
    # dopo la conversione si possono creare nuovi amministratori
    assert set_admin_password(database, "segreteria", "pw-nuova") > 0
    assert authenticate(database, "segreteria", "pw-nuova") is True


def test_legacy_admin_can_log_in_after_startup(app, database):
    with database.engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE admins (id INTEGER PRIMARY KEY, username VARCHAR(50) UNIQUE NOT NULL, "
            "password VARCHAR(50) NOT NULL)"
        ))
        conn.execute(text("INSERT INTO admins (username, password) VALUES ('admin', 'admin123')"))

    with TestClient(app) as client:
        r = client.post("/api/admin/login", json={"username": "admin", "password": "admin123"})

    assert r.status_code == 200
    assert r.json() == {"success": True}


def test_legacy_branch_gallery_and_treatment_columns(database):
    with database.engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE branches (id INTEGER PRIMARY KEY, name VARCHAR(255) NOT NULL, image VARCHAR(255), "
            "address TEXT, phone TEXT, email TEXT, gallery TEXT, lat DOUBLE PRECISION, lng DOUBLE PRECISION)"
        ))
        conn.execute(text("INSERT INTO branches (name) VALUES ('Merkez')"))
        conn.execute(text(
            "CREATE TABLE treatments (id INTEGER PRIMARY KEY, title VARCHAR(255) NOT NULL, short_description TEXT, "
            "description TEXT, content TEXT, image VARCHAR(255), slug VARCHAR(255) UNIQUE, meta_title VARCHAR(255), "
            "meta_description TEXT, featured BOOLEAN DEFAULT 0, order_index INTEGER DEFAULT 0)"
        ))
        conn.execute(text("INSERT INTO treatments (title, slug, featured, order_index) VALUES ('Dolgu', 'dolgu', 0, 0)"))

    run_migrations(database)

    assert services.list_branches(database)[0]["gallery"] == []
    treatments = services.list_treatments(database)
    assert treatments[0]["slug"] == "dolgu"
    assert treatments[0]["updated_at"] is None


def test_default_password_warning(database, caplog):
    run_migrations(database)

    with caplog.at_level(logging.WARNING, logger="dental_clinic.seed"):
        seed_admin(database, "admin", Settings(database_url="sqlite://").admin_password)

    assert Settings(database_url="sqlite://").admin_password == DEFAULT_ADMIN_PASSWORD
    assert "password di default" in caplog.text
