from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field


# Schemi Auth

class AdminLoginIn(BaseModel):
    username: str
    password: str


# Schemi Domain (body JSON)

class VideoIn(BaseModel):
    title: str = Field(..., min_length=1)
    video_id: str | None = None
    url: str | None = None
    description: str | None = None
    long_description: str | None = None


class PriceIn(BaseModel):
    category: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    min_price: float
    max_price: float
    description: str | None = None


class TimelineIn(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    date: dt.date
    order_index: int | None = 0


class FaqIn(BaseModel):
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    category: str | None = None
    order_index: int | None = 0


class AppointmentCreateIn(BaseModel):
    # gli spazi vengono tolti prima dei controlli di lunghezza
    model_config = ConfigDict(str_strip_whitespace=True)

    doctor_id: int
    date: dt.date
    time_slot: str = Field(..., min_length=1, max_length=10)
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1, max_length=20)


class AppointmentStatusIn(BaseModel):
    # validato dal servizio: un valore sconosciuto deve dare 400 con messaggio chiaro
    status: str | None = None
