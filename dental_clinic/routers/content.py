from __future__ import annotations

from fastapi import APIRouter, Depends, status

from .. import services
from ..db import Database
from ..deps import get_database, get_media
from ..forms import FormPayload, form_payload
from ..media import MediaStore
from ..schemas import VideoIn

router = APIRouter(prefix="/api", tags=["Contenuti"])


# Recensioni

@router.get("/feedbacks")
def api_feedbacks(db: Database = Depends(get_database)) -> list[dict]:
    return services.list_feedbacks(db)


@router.post("/feedbacks")
def api_create_feedback(
    form: FormPayload = Depends(form_payload),
    db: Database = Depends(get_database),
    media: MediaStore = Depends(get_media),
) -> dict:
    return services.create_feedback(
        db,
        media,
        name=form.text("name", required=True),
        comment=form.text("comment", required=True),
        rating=form.integer("rating"),
        image=form.file("image"),
    )


@router.put("/feedbacks/{feedback_id}")
def api_update_feedback(
    feedback_id: int,
    form: FormPayload = Depends(form_payload),
    db: Database = Depends(get_database),
    media: MediaStore = Depends(get_media),
) -> dict:
    return services.update_feedback(
        db,
        media,
        feedback_id,
        name=form.text("name", required=True),
        comment=form.text("comment", required=True),
        rating=form.integer("rating"),
        image_path=form.raw("image"),
        image=form.file("image"),
    )


@router.delete("/feedbacks/{feedback_id}")
def api_delete_feedback(
    feedback_id: int,
    db: Database = Depends(get_database),
    media: MediaStore = Depends(get_media),
) -> dict:
    return services.delete_feedback(db, media, feedback_id)


# Trattamenti

def _treatment_fields(form: FormPayload) -> dict:
    return {
        "title": form.text("title", required=True),
        "slug": form.text("slug", required=True),
        "short_description": form.text("short_description"),
        "description": form.text("description"),
        "content": form.text("content"),
        "meta_title": form.text("meta_title"),
        "meta_description": form.text("meta_description"),
        "featured": form.boolean("featured"),
        "order_index": form.integer("order_index", default=0),
    }


@router.get("/treatments")
def api_treatments(db: Database = Depends(get_database)) -> list[dict]:
    return services.list_treatments(db)


@router.get("/treatments/{slug}")
def api_treatment_by_slug(slug: str, db: Database = Depends(get_database)) -> dict:
    return services.get_treatment_by_slug(db, slug)


@router.post("/treatments")
def api_create_treatment(
    form: FormPayload = Depends(form_payload),
    db: Database = Depends(get_database),
    media: MediaStore = Depends(get_media),
) -> dict:
    return services.create_treatment(db, media, image=form.file("image"), **_treatment_fields(form))


@router.put("/treatments/{treatment_id}")
def api_update_treatment(
    treatment_id: int,
    form: FormPayload = Depends(form_payload),
    db: Database = Depends(get_database),
    media: MediaStore = Depends(get_media),
) -> dict:
    return services.update_treatment(
        db,
        media,
        treatment_id,
        image_path=form.raw("image"),
        image=form.file("image"),
        **_treatment_fields(form),
    )


@router.delete("/treatments/{treatment_id}")
def api_delete_treatment(
    treatment_id: int,
    db: Database = Depends(get_database),
    media: MediaStore = Depends(get_media),
) -> dict:
    return services.delete_treatment(db, media, treatment_id)


# Video (JSON)

@router.get("/videos")
def api_videos(db: Database = Depends(get_database)) -> list[dict]:
    return services.list_videos(db)


@router.post("/videos")
def api_create_video(payload: VideoIn, db: Database = Depends(get_database)) -> dict:
    return services.create_video(db, **payload.model_dump())


@router.put("/videos/{video_pk}")
def api_update_video(video_pk: int, payload: VideoIn, db: Database = Depends(get_database)) -> dict:
    return services.update_video(db, video_pk, **payload.model_dump())


@router.delete("/videos/{video_pk}")
def api_delete_video(video_pk: int, db: Database = Depends(get_database)) -> dict:
    return services.delete_video(db, video_pk)


# Sedi (galleria multipla)

def _branch_fields(form: FormPayload) -> dict:
    return {
        "name": form.text("name", required=True),
        "address": form.text("address"),
        "phone": form.text("phone"),
        "email": form.text("email"),
        "lat": form.number("lat"),
        "lng": form.number("lng"),
    }


@router.get("/branches")
def api_branches(db: Database = Depends(get_database)) -> list[dict]:
    return services.list_branches(db)


@router.post("/branches", status_code=status.HTTP_201_CREATED)
def api_create_branch(
    form: FormPayload = Depends(form_payload),
    db: Database = Depends(get_database),
    media: MediaStore = Depends(get_media),
) -> dict:
    return services.create_branch(db, media, files=form.files("gallery"), **_branch_fields(form))


@router.put("/branches/{branch_id}")
def api_update_branch(
    branch_id: int,
    form: FormPayload = Depends(form_payload),
    db: Database = Depends(get_database),
    media: MediaStore = Depends(get_media),
) -> dict:
    return services.update_branch(
        db,
        media,
        branch_id,
        files=form.files("gallery"),
        image_path=form.raw("image"),
        gallery=form.string_list("gallery"),
        **_branch_fields(form),
    )


@router.delete("/branches/{branch_id}")
def api_delete_branch(
    branch_id: int,
    db: Database = Depends(get_database),
    media: MediaStore = Depends(get_media),
) -> dict:
    return services.delete_branch(db, media, branch_id)


# Partner

@router.get("/partners")
def api_partners(db: Database = Depends(get_database)) -> list[dict]:
    return services.list_partners(db)


@router.post("/partners", status_code=status.HTTP_201_CREATED)
def api_create_partner(
    form: FormPayload = Depends(form_payload),
    db: Database = Depends(get_database),
    media: MediaStore = Depends(get_media),
) -> dict:
    return services.create_partner(
        db,
        media,
        name=form.text("name", required=True),
        description=form.text("description"),
        logo=form.file("logo"),
    )


@router.put("/partners/{partner_id}")
def api_update_partner(
    partner_id: int,
    form: FormPayload = Depends(form_payload),
    db: Database = Depends(get_database),
    media: MediaStore = Depends(get_media),
) -> dict:
    return services.update_partner(
        db,
        media,
        partner_id,
        name=form.text("name", required=True),
        description=form.text("description"),
        logo_path=form.raw("logo"),
        logo=form.file("logo"),
    )


@router.delete("/partners/{partner_id}")
def api_delete_partner(
    partner_id: int,
    db: Database = Depends(get_database),
    media: MediaStore = Depends(get_media),
) -> dict:
    return services.delete_partner(db, media, partner_id)
