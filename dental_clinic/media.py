from __future__ import annotations

import logging
import os
import random
import shutil
import time
from pathlib import Path
from typing import BinaryIO, Iterable, Protocol

from .errors import InvalidRequest

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads"
MAX_UPLOAD_BYTES = 5 * 1024 * 1024  # 5 MiB


class Upload(Protocol):
    """Quello che serve di un file caricato (compatibile con UploadFile)."""

    filename: str | None
    content_type: str | None
    file: BinaryIO


def has_file(upload: Upload | None) -> bool:
    return upload is not None and bool(upload.filename)


def _size_of(stream: BinaryIO) -> int:
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


class MediaStore:
    """
    Archivio immagini su filesystem:
    - una sola directory piatta servita come /uploads
    - nomi file <millis>-<random>-<nome originale>
    """

    def __init__(self, root: Path, public_prefix: str = PUBLIC_PREFIX, max_bytes: int = MAX_UPLOAD_BYTES) -> None:
        self.root = Path(root)
        self.public_prefix = public_prefix.rstrip("/")
        self.max_bytes = max_bytes
        self.root.mkdir(parents=True, exist_ok=True)

    def validate(self, upload: Upload) -> None:
        content_type = upload.content_type or ""
        if not content_type.startswith("image/"):
            raise InvalidRequest(f"Sono ammessi solo file immagine ('{upload.filename}' è {content_type or 'sconosciuto'}).")
        if _size_of(upload.file) > self.max_bytes:
            raise InvalidRequest(f"Il file '{upload.filename}' supera il limite di 5 MB.")

    def _new_name(self, original: str | None) -> str:
        base = Path(original or "file").name.replace(" ", "_") or "file"
        return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}-{base}"

    def store(self, upload: Upload) -> str:
        """Valida e salva il file, ritorna il path pubblico da salvare nel record."""
        self.validate(upload)

        name = self._new_name(upload.filename)
        target = self.root / name
        with target.open("wb") as out:
            shutil.copyfileobj(upload.file, out)

        logger.info("Immagine salvata: %s", name)
        return f"{self.public_prefix}/{name}"

    def store_many(self, uploads: Iterable[Upload]) -> list[str]:
        uploads = list(uploads)
        # prima tutte le verifiche, poi le scritture
        for upload in uploads:
            self.validate(upload)

        stored: list[str] = []
        try:
            for upload in uploads:
                stored.append(self.store(upload))
        except OSError:
            self.remove_many(stored)
            raise
        return stored

    def path_for(self, public_path: str) -> Path | None:
        if not public_path or not public_path.startswith(self.public_prefix + "/"):
            return None
        # solo il basename: nessun attraversamento di directory
        return self.root / Path(public_path).name

    def remove(self, public_path: str | None) -> bool:
        """Cancella il file se presente. Idempotente: un file assente non è un errore."""
        if not public_path:
            return False

        target = self.path_for(public_path)
        if target is None:
            logger.warning("Path fuori da %s ignorato: %s", self.public_prefix, public_path)
            return False

        try:
            target.unlink()
        except FileNotFoundError:
            return False
        except OSError:
            logger.exception("Impossibile cancellare %s", target)
            return False

        logger.info("Immagine rimossa: %s", target.name)
        return True

    def remove_many(self, public_paths: Iterable[str | None]) -> None:
        for path in public_paths:
            self.remove(path)
