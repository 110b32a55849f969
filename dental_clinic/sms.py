"""
Invio SMS tramite Netgsm (REST v2).

Il gateway non solleva mai eccezioni verso chi lo usa: ogni errore
(credenziali mancanti, rete, numero malformato, codice di errore del
provider) viene loggato e restituito come False.
"""
from __future__ import annotations

import logging
import re
from typing import Protocol

import requests

from .config import NETGSM_API_URL, Settings

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\s()\-]")


def normalize_phone(phone: str) -> str:
    """
    Formato locale atteso dal provider (es. 5321234567):
    - rimuove spazi, parentesi e trattini
    - rimuove uno 0 iniziale (prefisso di linea)
    - rimuove il prefisso internazionale +90 / 90
    """
    formatted = _SEPARATORS.sub("", phone or "")
    if formatted.startswith("0"):
        formatted = formatted[1:]
    if formatted.startswith("+90"):
        formatted = formatted[3:]
    elif formatted.startswith("90"):
        formatted = formatted[2:]

    if not formatted.isdigit():
        raise ValueError(f"Numero di telefono non valido: {phone!r}")
    return formatted


class SmsGateway(Protocol):
    def send(self, phone: str, message: str, header: str | None = None) -> bool: ...


class NetgsmGateway:
    def __init__(
        self,
        username: str | None,
        password: str | None,
        msgheader: str,
        api_url: str = NETGSM_API_URL,
        encoding: str = "TR",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.username = username
        self.password = password
        self.msgheader = msgheader
        self.api_url = api_url
        self.encoding = encoding
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "NetgsmGateway":
        return cls(
            username=settings.netgsm_username,
            password=settings.netgsm_password,
            msgheader=settings.netgsm_msgheader,
            api_url=settings.netgsm_api_url,
            timeout=settings.sms_timeout,
        )

    def send(self, phone: str, message: str, header: str | None = None) -> bool:
        if not self.username or not self.password:
            logger.warning("SMS non inviato: credenziali Netgsm non configurate")
            return False

        try:
            number = normalize_phone(phone)
        except ValueError as exc:
            logger.warning("SMS non inviato: %s", exc)
            return False

        payload = {
            "msgheader": header or self.msgheader,
            "encoding": self.encoding,
            "messages": [{"msg": message, "no": number}],
        }

        try:
            r = self.session.post(
                self.api_url,
                json=payload,
                auth=(self.username, self.password),
                timeout=self.timeout,
            )
            r.raise_for_status()
            body = r.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Invio SMS a %s fallito: %s", number, exc)
            return False

        code = str(body.get("code", "")) if isinstance(body, dict) else ""
        if code != "00":
            logger.error("Netgsm ha rifiutato l'SMS a %s: code=%s %s", number, code, body)
            return False

        logger.info("SMS inviato a %s (jobid=%s)", number, body.get("jobid"))
        return True
