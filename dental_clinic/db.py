from __future__ import annotations

import enum
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .errors import Conflict, DataLayerError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base ORM per tutti i modelli."""

    def to_dict(self) -> dict[str, Any]:
        # Solo colonne: le relazioni non vengono mai caricate qui
        out: dict[str, Any] = {}
        for attr in inspect(self).mapper.column_attrs:
            value = getattr(self, attr.key)
            if isinstance(value, enum.Enum):
                value = value.value
            out[attr.key] = value
        return out


class Database:
    """
    Handle di persistenza: engine + factory di sessioni.
    Creato all'avvio dell'app, chiuso con dispose() allo shutdown.
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        connect_args: dict[str, Any] = {}
        if url.startswith("sqlite"):
            connect_args["check_same_thread"] = False

        self.engine = create_engine(url, echo=echo, pool_pre_ping=True, connect_args=connect_args)
        self._sessionmaker = sessionmaker(
            bind=self.engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
        )

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Context manager per gestire correttamente la sessione:
        - commit se tutto ok
        - rollback su eccezioni
        - close sempre
        Gli errori SQLAlchemy diventano Conflict / DataLayerError.
        """
        session: Session = self._sessionmaker()
        try:
            yield session
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            logger.warning("Vincolo di integrità violato: %s", exc.orig)
            raise Conflict("Operazione in conflitto con dati esistenti.") from exc
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Errore database")
            raise DataLayerError("Errore del server.") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
