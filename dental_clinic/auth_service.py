from __future__ import annotations

from sqlalchemy import select

from .auth_models import Admin
from .auth_security import hash_password, verify_password
from .db import Database
from .errors import InvalidRequest


def set_admin_password(db: Database, username: str, password: str) -> int:
    """Crea l'amministratore o ne reimposta la password."""
    username = username.strip().lower()
    if not username or not password:
        raise InvalidRequest("Username e password sono obbligatori.")

    with db.session() as s:
        admin = s.execute(select(Admin).where(Admin.username == username)).scalar_one_or_none()
        if admin is None:
            admin = Admin(username=username, password_hash=hash_password(password))
            s.add(admin)
        else:
            admin.password_hash = hash_password(password)
        s.flush()
        return admin.id


def authenticate(db: Database, username: str, password: str) -> bool:
    username = (username or "").strip().lower()
    if not username or not password:
        return False

    with db.session() as s:
        admin = s.execute(select(Admin).where(Admin.username == username)).scalar_one_or_none()
        if admin is None:
            return False
        return verify_password(password, admin.password_hash)
