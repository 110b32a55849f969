from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from sqlalchemy import ARRAY, Connection, Table, func, inspect, insert, select, text, update
from sqlalchemy.exc import SQLAlchemyError

from .auth_models import Admin
from .auth_security import hash_password
from .db import Base, Database, utcnow
from .models import Appointment, SchemaVersion, Treatment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Migration:
    version: int
    description: str
    apply: Callable[[Connection], None]


def _baseline(conn: Connection) -> None:
    """Crea tutte le tabelle mancanti (IF NOT EXISTS)."""
    Base.metadata.create_all(bind=conn, checkfirst=True)


def _video_columns(conn: Connection) -> None:
    # DB creati dalla prima versione: videos aveva solo title/url/description
    cols = {c["name"] for c in inspect(conn).get_columns("videos")}
    if "video_id" not in cols:
        conn.execute(text("ALTER TABLE videos ADD COLUMN video_id VARCHAR(255)"))
    if "long_description" not in cols:
        conn.execute(text("ALTER TABLE videos ADD COLUMN long_description TEXT"))


def _appointment_slot_index(conn: Connection) -> None:
    for index in Appointment.__table__.indexes:
        if index.name == "uq_appointments_doctor_slot":
            index.create(bind=conn, checkfirst=True)


def _columns(conn: Connection, table: str) -> dict[str, dict]:
    return {c["name"]: c for c in inspect(conn).get_columns(table)}


def _add_column(conn: Connection, table: Table, name: str) -> None:
    """ADD COLUMN con il tipo del modello, sempre nullable (le righe esistenti non hanno valore)."""
    col_type = table.c[name].type.compile(dialect=conn.dialect)
    conn.execute(text(f"ALTER TABLE {table.name} ADD COLUMN {name} {col_type}"))


def _admin_password_hash(conn: Connection) -> None:
    # DB della prima versione: admins(username, password) con la password in chiaro
    admins = Admin.__table__
    cols = _columns(conn, "admins")
    if "password_hash" not in cols:
        _add_column(conn, admins, "password_hash")
    if "created_at" not in cols:
        _add_column(conn, admins, "created_at")
        conn.execute(update(admins).where(admins.c.created_at.is_(None)).values(created_at=utcnow()))
    if "password" not in cols:
        return

    legacy = conn.execute(text("SELECT id, password FROM admins WHERE password_hash IS NULL")).all()
    for admin_id, password in legacy:
        conn.execute(
            update(admins).where(admins.c.id == admin_id).values(password_hash=hash_password(password or ""))
        )
    conn.execute(text("ALTER TABLE admins DROP COLUMN password"))
    logger.info("Password di %s amministratori convertite in hash bcrypt", len(legacy))


def _branch_gallery_json(conn: Connection) -> None:
    # la prima versione usava TEXT[] (solo PostgreSQL)
    gallery = _columns(conn, "branches")["gallery"]
    if isinstance(gallery["type"], ARRAY):
        conn.execute(text("ALTER TABLE branches ALTER COLUMN gallery TYPE JSON USING to_json(gallery)"))
    conn.execute(text("UPDATE branches SET gallery = '[]' WHERE gallery IS NULL"))


def _legacy_columns(conn: Connection) -> None:
    if "updated_at" not in _columns(conn, "treatments"):
        _add_column(conn, Treatment.__table__, "updated_at")
    # videos.url era NOT NULL; su SQLite il vincolo non si può togliere con ALTER
    if conn.dialect.name == "postgresql" and not _columns(conn, "videos")["url"]["nullable"]:
        conn.execute(text("ALTER TABLE videos ALTER COLUMN url DROP NOT NULL"))


MIGRATIONS: tuple[Migration, ...] = (
    Migration(1, "baseline", _baseline),
    Migration(2, "videos: video_id, long_description", _video_columns),
    Migration(3, "appointments: indice univoco medico/data/slot", _appointment_slot_index),
    Migration(4, "admins: password in chiaro -> password_hash bcrypt", _admin_password_hash),
    Migration(5, "branches: gallery da TEXT[] a JSON", _branch_gallery_json),
    Migration(6, "treatments.updated_at, videos.url facoltativo", _legacy_columns),
)


def current_version(database: Database) -> int:
    SchemaVersion.__table__.create(bind=database.engine, checkfirst=True)
    with database.engine.connect() as conn:
        return conn.execute(select(func.max(SchemaVersion.version))).scalar() or 0


def run_migrations(database: Database, migrations: tuple[Migration, ...] = MIGRATIONS) -> list[int]:
    """
    Applica in ordine le migrazioni non ancora registrate in schema_version.
    Ognuna gira nella sua transazione; alla prima che fallisce ci si ferma.
    """
    applied: list[int] = []
    version = current_version(database)

    for migration in sorted(migrations, key=lambda m: m.version):
        if migration.version <= version:
            continue
        try:
            with database.engine.begin() as conn:
                migration.apply(conn)
                conn.execute(
                    insert(SchemaVersion).values(
                        version=migration.version,
                        description=migration.description,
                        applied_at=utcnow(),
                    )
                )
        except SQLAlchemyError:
            logger.exception("Migrazione %s (%s) fallita", migration.version, migration.description)
            break

        logger.info("Migrazione %s applicata: %s", migration.version, migration.description)
        applied.append(migration.version)

    return applied
