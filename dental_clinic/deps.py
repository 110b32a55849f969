from __future__ import annotations

from fastapi import Request

from .config import Settings
from .db import Database
from .media import MediaStore
from .sms import SmsGateway


# Gli oggetti vengono creati da create_app() e vivono su app.state
def get_database(request: Request) -> Database:
    return request.app.state.database


def get_media(request: Request) -> MediaStore:
    return request.app.state.media


def get_sms(request: Request) -> SmsGateway:
    return request.app.state.sms


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
