from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends

from .. import booking
from ..config import Settings
from ..db import Database
from ..deps import get_database, get_settings, get_sms
from ..schemas import AppointmentCreateIn, AppointmentStatusIn
from ..sms import SmsGateway

router = APIRouter(prefix="/api/appointments", tags=["Appuntamenti"])


@router.get("")
def api_appointments(db: Database = Depends(get_database)) -> list[dict]:
    return booking.list_appointments(db)


@router.get("/doctor/{doctor_id}/date/{day}")
def api_booked_slots(doctor_id: int, day: dt.date, db: Database = Depends(get_database)) -> dict:
    return {"bookedSlots": booking.booked_slots(db, doctor_id, day)}


@router.get("/{appointment_id}")
def api_appointment(appointment_id: int, db: Database = Depends(get_database)) -> dict:
    return booking.get_appointment(db, appointment_id)


@router.post("")
def api_book_appointment(
    payload: AppointmentCreateIn,
    db: Database = Depends(get_database),
    sms: SmsGateway = Depends(get_sms),
    settings: Settings = Depends(get_settings),
) -> dict:
    return booking.book_appointment(
        db,
        sms,
        doctor_id=payload.doctor_id,
        day=payload.date,
        time_slot=payload.time_slot,
        name=payload.name,
        phone=payload.phone,
        signature=settings.sms_signature,
    )


@router.patch("/{appointment_id}")
def api_update_status(
    appointment_id: int,
    payload: AppointmentStatusIn,
    db: Database = Depends(get_database),
) -> dict:
    return booking.update_status(db, appointment_id, payload.status)


@router.delete("/{appointment_id}")
def api_delete_appointment(appointment_id: int, db: Database = Depends(get_database)) -> dict:
    return booking.delete_appointment(db, appointment_id)
