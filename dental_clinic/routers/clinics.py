from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from .. import services
from ..db import Database
from ..deps import get_database, get_media
from ..forms import FormPayload, form_payload
from ..media import MediaStore

router = APIRouter(prefix="/api", tags=["Cliniche"])


# Cliniche

@router.get("/clinics")
def api_clinics(db: Database = Depends(get_database)) -> list[dict]:
    return services.list_clinics(db)


@router.post("/clinics")
def api_create_clinic(
    form: FormPayload = Depends(form_payload),
    db: Database = Depends(get_database),
    media: MediaStore = Depends(get_media),
) -> dict:
    return services.create_clinic(
        db,
        media,
        name=form.text("name", required=True),
        phone=form.text("phone"),
        image=form.file("image"),
    )


@router.put("/clinics/{clinic_id}")
def api_update_clinic(
    clinic_id: int,
    form: FormPayload = Depends(form_payload),
    db: Database = Depends(get_database),
    media: MediaStore = Depends(get_media),
) -> dict:
    return services.update_clinic(
        db,
        media,
        clinic_id,
        name=form.text("name", required=True),
        phone=form.text("phone"),
        image_path=form.raw("image"),
        image=form.file("image"),
    )


@router.delete("/clinics/{clinic_id}")
def api_delete_clinic(
    clinic_id: int,
    db: Database = Depends(get_database),
    media: MediaStore = Depends(get_media),
) -> dict:
    return services.delete_clinic(db, media, clinic_id)


# Medici

@router.get("/doctors")
def api_doctors(
    clinic_id: int | None = Query(None, alias="clinicId"),
    db: Database = Depends(get_database),
) -> list[dict]:
    return services.list_doctors(db, clinic_id=clinic_id)


@router.post("/doctors")
def api_create_doctor(
    form: FormPayload = Depends(form_payload),
    db: Database = Depends(get_database),
    media: MediaStore = Depends(get_media),
) -> dict:
    return services.create_doctor(
        db,
        media,
        name=form.text("name", required=True),
        clinic_id=form.integer("clinic_id", required=True),
        image=form.file("image"),
    )


@router.put("/doctors/{doctor_id}")
def api_update_doctor(
    doctor_id: int,
    form: FormPayload = Depends(form_payload),
    db: Database = Depends(get_database),
    media: MediaStore = Depends(get_media),
) -> dict:
    return services.update_doctor(
        db,
        media,
        doctor_id,
        name=form.text("name", required=True),
        clinic_id=form.integer("clinic_id", required=True),
        image_path=form.raw("image"),
        image=form.file("image"),
    )


@router.delete("/doctors/{doctor_id}")
def api_delete_doctor(
    doctor_id: int,
    db: Database = Depends(get_database),
    media: MediaStore = Depends(get_media),
) -> dict:
    return services.delete_doctor(db, media, doctor_id)
