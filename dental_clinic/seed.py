from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from .auth_models import Admin
from .auth_security import hash_password
from .config import DEFAULT_ADMIN_PASSWORD, Settings
from .db import Database
from .errors import ClinicError
from .migrations import run_migrations

logger = logging.getLogger(__name__)


def seed_admin(db: Database, username: str, password: str) -> bool:
    """Crea l'amministratore di default solo se la tabella admins è vuota (idempotente)."""
    with db.session() as s:
        if s.execute(select(func.count()).select_from(Admin)).scalar_one() > 0:
            return False

        s.add(Admin(username=username.strip().lower(), password_hash=hash_password(password)))

    if password == DEFAULT_ADMIN_PASSWORD:
        logger.warning("Creato l'amministratore '%s' con la password di default: cambiarla subito", username)
    else:
        logger.info("Creato l'amministratore '%s'", username)
    return True


def init_schema(db: Database, settings: Settings) -> None:
    """
    Bootstrap all'avvio: migrazioni + admin di default.
    Gli errori vengono loggati ma non fermano il processo.
    """
    try:
        run_migrations(db)
        seed_admin(db, settings.admin_username, settings.admin_password)
    except (SQLAlchemyError, ClinicError):
        logger.exception("Inizializzazione del database non completata")
