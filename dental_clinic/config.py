from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy.engine import URL

# uploads/ nella root del progetto (accanto a streamlit_app.py)
DEFAULT_UPLOADS_DIR = Path(__file__).resolve().parents[1] / "uploads"

NETGSM_API_URL = "https://api.netgsm.com.tr/sms/rest/v2/send"
DEFAULT_ADMIN_PASSWORD = "admin123"


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str) -> list[str]:
    return [v.strip() for v in os.getenv(name, default).split(",") if v.strip()]


@dataclass(frozen=True)
class Settings:
    """Configurazione applicativa (variabili d'ambiente / file .env)."""

    database_url: str
    uploads_dir: Path = DEFAULT_UPLOADS_DIR
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    sql_echo: bool = False
    log_level: str = "INFO"

    netgsm_username: str | None = None
    netgsm_password: str | None = None
    netgsm_msgheader: str = "KARADENZDiS"
    netgsm_api_url: str = NETGSM_API_URL
    sms_signature: str = "KARADENIZ DIS"
    sms_timeout: float = 10.0

    admin_username: str = "admin"
    admin_password: str = DEFAULT_ADMIN_PASSWORD


def build_database_url() -> str:
    # DATABASE_URL ha la precedenza (utile per SQLite in locale)
    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit

    url = URL.create(
        "postgresql+psycopg2",
        username=os.getenv("DB_USER", "postgres"),
        password=os.getenv("DB_PASSWORD") or None,
        host=os.getenv("DB_HOST", "localhost"),
        port=int(os.getenv("DB_PORT", "5432")),
        database=os.getenv("DB_NAME", "dental_app"),
    )
    return url.render_as_string(hide_password=False)


def load_settings() -> Settings:
    load_dotenv()

    return Settings(
        database_url=build_database_url(),
        uploads_dir=Path(os.getenv("UPLOADS_DIR", str(DEFAULT_UPLOADS_DIR))),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        cors_origins=_env_list("CORS_ORIGINS", "*"),
        sql_echo=_env_bool("SQL_ECHO"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        netgsm_username=os.getenv("NETGSM_USERNAME") or None,
        netgsm_password=os.getenv("NETGSM_PASSWORD") or None,
        netgsm_msgheader=os.getenv("NETGSM_MSGHEADER", "KARADENZDiS"),
        netgsm_api_url=os.getenv("NETGSM_API_URL", NETGSM_API_URL),
        sms_signature=os.getenv("SMS_SIGNATURE", "KARADENIZ DIS"),
        sms_timeout=float(os.getenv("SMS_TIMEOUT", "10")),
        admin_username=os.getenv("ADMIN_USERNAME", "admin"),
        admin_password=os.getenv("ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD),
    )
