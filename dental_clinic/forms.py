from __future__ import annotations

import datetime as dt
import json

from fastapi import Request
from starlette.datastructures import FormData, UploadFile

from .errors import InvalidRequest

_TRUE = {"1", "true", "on", "yes"}
_FALSE = {"0", "false", "off", "no"}


class FormPayload:
    """
    Lettura dei campi di un form multipart.
    Come nel frontend, lo stesso nome può portare file e testo
    (es. 'image' = nuovo file oppure path già salvato).
    """

    def __init__(self, form: FormData) -> None:
        self._form = form

    def _texts(self, name: str) -> list[str]:
        return [v for v in self._form.getlist(name) if isinstance(v, str)]

    def raw(self, name: str) -> str | None:
        """None se il campo manca, altrimenti il testo (anche vuoto)."""
        values = self._texts(name)
        return values[0].strip() if values else None

    def text(self, name: str, required: bool = False) -> str | None:
        value = self.raw(name)
        if not value:
            if required:
                raise InvalidRequest(f"Il campo '{name}' è obbligatorio.")
            return None
        return value

    def integer(self, name: str, default: int | None = None, required: bool = False) -> int | None:
        value = self.text(name, required=required)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise InvalidRequest(f"Il campo '{name}' deve essere un numero intero.") from exc

    def number(self, name: str) -> float | None:
        value = self.text(name)
        if value is None:
            return None
        try:
            return float(value)
        except ValueError as exc:
            raise InvalidRequest(f"Il campo '{name}' deve essere un numero.") from exc

    def boolean(self, name: str, default: bool = False) -> bool:
        value = self.text(name)
        if value is None:
            return default
        if value.lower() in _TRUE:
            return True
        if value.lower() in _FALSE:
            return False
        raise InvalidRequest(f"Il campo '{name}' deve essere true o false.")

    def date(self, name: str, required: bool = False) -> dt.date | None:
        value = self.text(name, required=required)
        if value is None:
            return None
        try:
            return dt.date.fromisoformat(value)
        except ValueError as exc:
            raise InvalidRequest(f"Il campo '{name}' deve essere una data (YYYY-MM-DD).") from exc

    def string_list(self, name: str) -> list[str] | None:
        """Lista di testi: un array JSON in un solo campo oppure il campo ripetuto."""
        values = self._texts(name)
        if not values:
            return None
        if len(values) == 1 and values[0].strip().startswith("["):
            try:
                parsed = json.loads(values[0])
            except json.JSONDecodeError as exc:
                raise InvalidRequest(f"Il campo '{name}' deve essere un array JSON.") from exc
            if not isinstance(parsed, list) or not all(isinstance(p, str) for p in parsed):
                raise InvalidRequest(f"Il campo '{name}' deve essere un array di stringhe.")
            return parsed
        return [v.strip() for v in values if v.strip()]

    def file(self, name: str) -> UploadFile | None:
        files = self.files(name)
        return files[0] if files else None

    def files(self, name: str) -> list[UploadFile]:
        return [v for v in self._form.getlist(name) if isinstance(v, UploadFile) and v.filename]


async def form_payload(request: Request) -> FormPayload:
    """Dipendenza FastAPI: il form viene letto qui, l'endpoint resta sincrono."""
    return FormPayload(await request.form())
