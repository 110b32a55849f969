from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass

from sqlalchemy import and_, select

from .db import Database
from .errors import Conflict, InvalidRequest, NotFound
from .models import Appointment, AppointmentStatus, Clinic, Doctor
from .sms import SmsGateway

logger = logging.getLogger(__name__)


# =========================
# Helper / DTO
# =========================
@dataclass(frozen=True)
class BookingNotice:
    """Dati letti insieme al medico, usati per la risposta e per gli SMS."""

    appointment_id: int
    patient_name: str
    patient_phone: str
    day: dt.date
    time_slot: str
    doctor_name: str
    clinic_name: str
    clinic_phone: str | None


def parse_status(value: str | None) -> AppointmentStatus:
    try:
        return AppointmentStatus((value or "").strip().lower())
    except ValueError as exc:
        allowed = ", ".join(s.value for s in AppointmentStatus)
        raise InvalidRequest(f"Stato appuntamento non valido (ammessi: {allowed}).") from exc


def _appointment_query():
    return (
        select(Appointment, Doctor.name.label("doctor_name"), Clinic.name.label("clinic_name"))
        .outerjoin(Doctor, Doctor.id == Appointment.doctor_id)
        .outerjoin(Clinic, Clinic.id == Appointment.clinic_id)
    )


def _flat(row) -> dict:
    data = row.Appointment.to_dict()
    data["doctor_name"] = row.doctor_name
    data["clinic_name"] = row.clinic_name
    return data


# =========================
# Query
# =========================
def list_appointments(db: Database) -> list[dict]:
    with db.session() as s:
        q = _appointment_query().order_by(Appointment.date.asc(), Appointment.time_slot.asc())
        return [_flat(r) for r in s.execute(q).all()]


def get_appointment(db: Database, appointment_id: int) -> dict:
    with db.session() as s:
        row = s.execute(_appointment_query().where(Appointment.id == appointment_id)).first()
        if row is None:
            raise NotFound("Appuntamento non trovato.")
        return _flat(row)


def booked_slots(db: Database, doctor_id: int, day: dt.date) -> list[str]:
    """Slot già occupati (stato diverso da cancelled) per medico e giorno."""
    with db.session() as s:
        q = (
            select(Appointment.time_slot)
            .where(
                and_(
                    Appointment.doctor_id == doctor_id,
                    Appointment.date == day,
                    Appointment.status != AppointmentStatus.CANCELLED,
                )
            )
            .order_by(Appointment.time_slot.asc())
        )
        return list(s.scalars(q))


# =========================
# Prenotazione (use case core)
# =========================
def book_appointment(
    db: Database,
    sms: SmsGateway,
    *,
    doctor_id: int,
    day: dt.date,
    time_slot: str,
    name: str,
    phone: str,
    signature: str = "KARADENIZ DIS",
) -> dict:
    """
    Use case: prenotare un appuntamento.
    - legge medico + clinica (la clinica viene copiata sull'appuntamento)
    - inserisce con stato confirmed
    - invia gli SMS dopo il commit: un errore di invio non annulla la prenotazione
    """
    with db.session() as s:
        doctor = s.execute(
            select(Doctor.id, Doctor.clinic_id, Doctor.name, Clinic.name.label("clinic_name"),
                   Clinic.phone.label("clinic_phone"))
            .join(Clinic, Clinic.id == Doctor.clinic_id)
            .where(Doctor.id == doctor_id)
        ).first()
        if doctor is None:
            raise InvalidRequest("Medico non trovato.")

        busy = s.execute(
            select(Appointment.id).where(
                and_(
                    Appointment.doctor_id == doctor_id,
                    Appointment.date == day,
                    Appointment.time_slot == time_slot,
                    Appointment.status != AppointmentStatus.CANCELLED,
                )
            ).limit(1)
        ).first()
        if busy:
            raise Conflict("Lo slot selezionato è già prenotato.")

    try:
        with db.session() as s:
            app = Appointment(
                doctor_id=doctor_id,
                clinic_id=doctor.clinic_id,
                date=day,
                time_slot=time_slot,
                name=name,
                phone=phone,
                status=AppointmentStatus.CONFIRMED,
            )
            s.add(app)
            s.flush()
            result = app.to_dict()
    except Conflict as exc:
        # due richieste concorrenti sullo stesso slot: vince l'indice univoco
        raise Conflict("Lo slot selezionato è già prenotato.") from exc

    result.update(doctor_name=doctor.name, clinic_name=doctor.clinic_name, clinic_phone=doctor.clinic_phone)
    logger.info("Appuntamento %s creato: medico=%s giorno=%s slot=%s", result["id"], doctor_id, day, time_slot)

    notice = BookingNotice(
        appointment_id=result["id"],
        patient_name=name,
        patient_phone=phone,
        day=day,
        time_slot=time_slot,
        doctor_name=doctor.name,
        clinic_name=doctor.clinic_name,
        clinic_phone=doctor.clinic_phone,
    )
    result["smsStatus"] = "success" if notify_booking(sms, notice, signature=signature) else "failed"
    return result


def update_status(db: Database, appointment_id: int, status: str | None) -> dict:
    new_status = parse_status(status)
    try:
        with db.session() as s:
            app = s.get(Appointment, appointment_id)
            if app is None:
                raise NotFound("Appuntamento non trovato.")
            app.status = new_status
            s.flush()
            result = app.to_dict()
    except Conflict as exc:
        raise Conflict("Lo slot di questo appuntamento è stato nel frattempo prenotato da un altro paziente.") from exc

    logger.info("Appuntamento %s -> %s", appointment_id, new_status.value)
    return result


def delete_appointment(db: Database, appointment_id: int) -> dict:
    with db.session() as s:
        app = s.get(Appointment, appointment_id)
        if app is None:
            raise NotFound("Appuntamento non trovato.")
        s.delete(app)
    return {"success": True, "message": "Appuntamento eliminato."}


# =========================
# Notifiche SMS
# =========================
def format_day(day: dt.date) -> str:
    return day.strftime("%d.%m.%Y")


def patient_message(notice: BookingNotice, signature: str) -> str:
    return (
        f"Sayin {notice.patient_name}, {format_day(notice.day)} tarihinde saat {notice.time_slot}'da "
        f"{notice.clinic_name} klinigimizde Dr. {notice.doctor_name} ile randevunuz olusturulmustur. "
        f"Randevunuzdan 15 dk once klinikte olmanizi rica ederiz. {signature}"
    )


def clinic_message(notice: BookingNotice, signature: str) -> str:
    return (
        f"Yeni Randevu: {notice.patient_name} adli hasta, {format_day(notice.day)} tarihinde saat "
        f"{notice.time_slot} icin Dr. {notice.doctor_name}'e randevu almistir. "
        f"Telefon: {notice.patient_phone}. {signature}"
    )


def notify_booking(sms: SmsGateway, notice: BookingNotice, signature: str = "KARADENIZ DIS") -> bool:
    """SMS al paziente e, se la clinica ha un telefono, alla clinica. True solo se tutti gli invii riescono."""
    ok = sms.send(notice.patient_phone, patient_message(notice, signature))
    if notice.clinic_phone:
        ok = sms.send(notice.clinic_phone, clinic_message(notice, signature)) and ok

    if not ok:
        logger.warning("Notifica SMS non riuscita per l'appuntamento %s", notice.appointment_id)
    return ok
