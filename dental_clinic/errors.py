from __future__ import annotations


class ClinicError(Exception):
    """Errore applicativo con codice HTTP associato."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequest(ClinicError):
    status_code = 400


class NotFound(ClinicError):
    status_code = 404


class Conflict(ClinicError):
    status_code = 409


class DataLayerError(ClinicError):
    status_code = 500
