from __future__ import annotations

import datetime as dt
import json
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Sequence, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from .db import Base, Database
from .errors import Conflict, InvalidRequest, NotFound
from .media import MediaStore, Upload, has_file
from .models import (
    Appointment,
    Branch,
    Clinic,
    Doctor,
    Faq,
    Feedback,
    Partner,
    Price,
    TimelineItem,
    Treatment,
    Video,
)

M = TypeVar("M", bound=Base)

MAX_GALLERY_FILES = 10


# =========================
# Helper
# =========================
def _get_or_404(s: Session, model: type[M], obj_id: int, message: str) -> M:
    obj = s.get(model, obj_id)
    if obj is None:
        raise NotFound(message)
    return obj


@contextmanager
def _discard_on_error(media: MediaStore, paths: Iterable[str | None]) -> Iterator[None]:
    """Se la scrittura su DB fallisce, i file appena salvati non devono restare orfani."""
    try:
        yield
    except Exception:
        media.remove_many(paths)
        raise


def _next_image(current: str | None, stored: str | None, passthrough: str | None) -> str | None:
    # nuovo file > path passato dal client ("" = rimuovi) > valore attuale
    if stored:
        return stored
    if passthrough is None:
        return current
    return passthrough or None


def _discard_replaced(media: MediaStore, previous: Iterable[str | None], kept: Iterable[str | None]) -> None:
    kept_set = {p for p in kept if p}
    media.remove_many(p for p in previous if p and p not in kept_set)


def _deleted(message: str) -> dict[str, Any]:
    return {"success": True, "message": message}


# =========================
# Cliniche
# =========================
def list_clinics(db: Database) -> list[dict]:
    with db.session() as s:
        return [c.to_dict() for c in s.scalars(select(Clinic).order_by(Clinic.id))]


def create_clinic(db: Database, media: MediaStore, *, name: str, phone: str | None = None,
                  image: Upload | None = None) -> dict:
    stored = media.store(image) if has_file(image) else None
    with _discard_on_error(media, [stored]):
        with db.session() as s:
            clinic = Clinic(name=name, phone=phone, image=stored)
            s.add(clinic)
            s.flush()
            return clinic.to_dict()


def update_clinic(db: Database, media: MediaStore, clinic_id: int, *, name: str, phone: str | None = None,
                  image_path: str | None = None, image: Upload | None = None) -> dict:
    stored = media.store(image) if has_file(image) else None
    with _discard_on_error(media, [stored]):
        with db.session() as s:
            clinic = _get_or_404(s, Clinic, clinic_id, "Clinica non trovata.")
            previous = clinic.image
            clinic.name = name
            clinic.phone = phone
            clinic.image = _next_image(previous, stored, image_path)
            s.flush()
            result = clinic.to_dict()

    _discard_replaced(media, [previous], [result["image"]])
    return result


def delete_clinic(db: Database, media: MediaStore, clinic_id: int) -> dict:
    with db.session() as s:
        clinic = _get_or_404(s, Clinic, clinic_id, "Clinica non trovata.")
        if s.execute(select(Doctor.id).where(Doctor.clinic_id == clinic_id).limit(1)).first():
            raise Conflict("La clinica ha ancora medici associati.")
        image = clinic.image
        s.delete(clinic)

    media.remove(image)
    return _deleted("Clinica eliminata.")


# =========================
# Medici
# =========================
def _require_clinic(s: Session, clinic_id: int) -> None:
    if s.get(Clinic, clinic_id) is None:
        raise InvalidRequest("Clinica non trovata.")


def list_doctors(db: Database, clinic_id: int | None = None) -> list[dict]:
    q = select(Doctor).order_by(Doctor.id)
    if clinic_id is not None:
        q = q.where(Doctor.clinic_id == clinic_id)
    with db.session() as s:
        return [d.to_dict() for d in s.scalars(q)]


def create_doctor(db: Database, media: MediaStore, *, name: str, clinic_id: int,
                  image: Upload | None = None) -> dict:
    stored = media.store(image) if has_file(image) else None
    with _discard_on_error(media, [stored]):
        with db.session() as s:
            _require_clinic(s, clinic_id)
            doctor = Doctor(name=name, clinic_id=clinic_id, image=stored)
            s.add(doctor)
            s.flush()
            return doctor.to_dict()


def update_doctor(db: Database, media: MediaStore, doctor_id: int, *, name: str, clinic_id: int,
                  image_path: str | None = None, image: Upload | None = None) -> dict:
    stored = media.store(image) if has_file(image) else None
    with _discard_on_error(media, [stored]):
        with db.session() as s:
            doctor = _get_or_404(s, Doctor, doctor_id, "Medico non trovato.")
            _require_clinic(s, clinic_id)
            previous = doctor.image
            doctor.name = name
            doctor.clinic_id = clinic_id
            doctor.image = _next_image(previous, stored, image_path)
            s.flush()
            result = doctor.to_dict()

    _discard_replaced(media, [previous], [result["image"]])
    return result


def delete_doctor(db: Database, media: MediaStore, doctor_id: int) -> dict:
    with db.session() as s:
        doctor = _get_or_404(s, Doctor, doctor_id, "Medico non trovato.")
        if s.execute(select(Appointment.id).where(Appointment.doctor_id == doctor_id).limit(1)).first():
            raise Conflict("Il medico ha appuntamenti registrati.")
        image = doctor.image
        s.delete(doctor)

    media.remove(image)
    return _deleted("Medico eliminato.")


# =========================
# Recensioni
# =========================
def _check_rating(rating: int | None) -> None:
    if rating is not None and not 1 <= rating <= 5:
        raise InvalidRequest("Il voto deve essere compreso tra 1 e 5.")


def list_feedbacks(db: Database) -> list[dict]:
    with db.session() as s:
        return [f.to_dict() for f in s.scalars(select(Feedback).order_by(Feedback.id))]


def create_feedback(db: Database, media: MediaStore, *, name: str, comment: str, rating: int | None = None,
                    image: Upload | None = None) -> dict:
    _check_rating(rating)
    stored = media.store(image) if has_file(image) else None
    with _discard_on_error(media, [stored]):
        with db.session() as s:
            feedback = Feedback(name=name, comment=comment, rating=rating, image=stored)
            s.add(feedback)
            s.flush()
            return feedback.to_dict()


def update_feedback(db: Database, media: MediaStore, feedback_id: int, *, name: str, comment: str,
                    rating: int | None = None, image_path: str | None = None,
                    image: Upload | None = None) -> dict:
    _check_rating(rating)
    stored = media.store(image) if has_file(image) else None
    with _discard_on_error(media, [stored]):
        with db.session() as s:
            feedback = _get_or_404(s, Feedback, feedback_id, "Recensione non trovata.")
            previous = feedback.image
            feedback.name = name
            feedback.comment = comment
            feedback.rating = rating
            feedback.image = _next_image(previous, stored, image_path)
            s.flush()
            result = feedback.to_dict()

    _discard_replaced(media, [previous], [result["image"]])
    return result


def delete_feedback(db: Database, media: MediaStore, feedback_id: int) -> dict:
    with db.session() as s:
        feedback = _get_or_404(s, Feedback, feedback_id, "Recensione non trovata.")
        image = feedback.image
        s.delete(feedback)

    media.remove(image)
    return _deleted("Recensione eliminata.")


# =========================
# Trattamenti
# =========================
def _parse_content(content: Any) -> Any:
    """Il contenuto arriva dal form come stringa JSON (documento dell'editor)."""
    if content is None or content == "":
        return None
    if not isinstance(content, str):
        return content
    try:
        return json.loads(content)
    except json.JSONDecodeError as exc:
        raise InvalidRequest("Il campo 'content' deve contenere JSON valido.") from exc


def _slug_taken(s: Session, slug: str, exclude_id: int | None = None) -> bool:
    q = select(Treatment.id).where(Treatment.slug == slug)
    if exclude_id is not None:
        q = q.where(Treatment.id != exclude_id)
    return s.execute(q.limit(1)).first() is not None


def list_treatments(db: Database) -> list[dict]:
    with db.session() as s:
        q = select(Treatment).order_by(Treatment.order_index, Treatment.id)
        return [t.to_dict() for t in s.scalars(q)]


def get_treatment_by_slug(db: Database, slug: str) -> dict:
    with db.session() as s:
        treatment = s.execute(select(Treatment).where(Treatment.slug == slug)).scalar_one_or_none()
        if treatment is None:
            raise NotFound("Trattamento non trovato.")
        return treatment.to_dict()


def create_treatment(db: Database, media: MediaStore, *, title: str, slug: str,
                     short_description: str | None = None, description: str | None = None,
                     content: Any = None, meta_title: str | None = None, meta_description: str | None = None,
                     featured: bool = False, order_index: int = 0, image: Upload | None = None) -> dict:
    parsed = _parse_content(content)

    # controllo slug prima di salvare qualsiasi file
    with db.session() as s:
        if _slug_taken(s, slug):
            raise InvalidRequest("Questo slug è già utilizzato. Scegline uno diverso.")

    stored = media.store(image) if has_file(image) else None
    with _discard_on_error(media, [stored]):
        with db.session() as s:
            treatment = Treatment(
                title=title,
                slug=slug,
                short_description=short_description,
                description=description,
                content=parsed,
                image=stored,
                meta_title=meta_title,
                meta_description=meta_description,
                featured=featured,
                order_index=order_index,
            )
            s.add(treatment)
            s.flush()
            return treatment.to_dict()


def update_treatment(db: Database, media: MediaStore, treatment_id: int, *, title: str, slug: str,
                     short_description: str | None = None, description: str | None = None,
                     content: Any = None, meta_title: str | None = None, meta_description: str | None = None,
                     featured: bool = False, order_index: int = 0, image_path: str | None = None,
                     image: Upload | None = None) -> dict:
    parsed = _parse_content(content)

    with db.session() as s:
        _get_or_404(s, Treatment, treatment_id, "Trattamento non trovato.")
        if _slug_taken(s, slug, exclude_id=treatment_id):
            raise InvalidRequest("Questo slug è già utilizzato. Scegline uno diverso.")

    stored = media.store(image) if has_file(image) else None
    with _discard_on_error(media, [stored]):
        with db.session() as s:
            treatment = _get_or_404(s, Treatment, treatment_id, "Trattamento non trovato.")
            previous = treatment.image
            treatment.title = title
            treatment.slug = slug
            treatment.short_description = short_description
            treatment.description = description
            treatment.content = parsed
            treatment.meta_title = meta_title
            treatment.meta_description = meta_description
            treatment.featured = featured
            treatment.order_index = order_index
            treatment.image = _next_image(previous, stored, image_path)
            s.flush()
            result = treatment.to_dict()

    _discard_replaced(media, [previous], [result["image"]])
    return result


def delete_treatment(db: Database, media: MediaStore, treatment_id: int) -> dict:
    with db.session() as s:
        treatment = _get_or_404(s, Treatment, treatment_id, "Trattamento non trovato.")
        image = treatment.image
        s.delete(treatment)

    media.remove(image)
    return _deleted("Trattamento eliminato.")


# =========================
# Video
# =========================
def list_videos(db: Database) -> list[dict]:
    with db.session() as s:
        return [v.to_dict() for v in s.scalars(select(Video).order_by(Video.id))]


def create_video(db: Database, *, title: str, video_id: str | None = None, url: str | None = None,
                 description: str | None = None, long_description: str | None = None) -> dict:
    with db.session() as s:
        video = Video(
            title=title,
            video_id=video_id,
            url=url,
            description=description,
            long_description=long_description,
        )
        s.add(video)
        s.flush()
        return video.to_dict()


def update_video(db: Database, video_pk: int, *, title: str, video_id: str | None = None,
                 url: str | None = None, description: str | None = None,
                 long_description: str | None = None) -> dict:
    with db.session() as s:
        video = _get_or_404(s, Video, video_pk, "Video non trovato.")
        video.title = title
        video.video_id = video_id
        video.url = url
        video.description = description
        video.long_description = long_description
        s.flush()
        return video.to_dict()


def delete_video(db: Database, video_pk: int) -> dict:
    with db.session() as s:
        s.delete(_get_or_404(s, Video, video_pk, "Video non trovato."))
    return _deleted("Video eliminato.")


# =========================
# Sedi (con galleria)
# =========================
def _check_gallery_files(files: Sequence[Upload]) -> None:
    if len(files) > MAX_GALLERY_FILES:
        raise InvalidRequest(f"Si possono caricare al massimo {MAX_GALLERY_FILES} immagini.")


def list_branches(db: Database) -> list[dict]:
    with db.session() as s:
        return [b.to_dict() for b in s.scalars(select(Branch).order_by(Branch.id))]


def create_branch(db: Database, media: MediaStore, *, name: str, address: str | None = None,
                  phone: str | None = None, email: str | None = None, lat: float | None = None,
                  lng: float | None = None, files: Sequence[Upload] = ()) -> dict:
    """Il primo file è l'immagine principale, gli altri vanno in galleria."""
    files = [f for f in files if has_file(f)]
    _check_gallery_files(files)
    stored = media.store_many(files)

    with _discard_on_error(media, stored):
        with db.session() as s:
            branch = Branch(
                name=name,
                address=address,
                phone=phone,
                email=email,
                lat=lat,
                lng=lng,
                image=stored[0] if stored else None,
                gallery=stored[1:],
            )
            s.add(branch)
            s.flush()
            return branch.to_dict()


def update_branch(db: Database, media: MediaStore, branch_id: int, *, name: str, address: str | None = None,
                  phone: str | None = None, email: str | None = None, lat: float | None = None,
                  lng: float | None = None, files: Sequence[Upload] = (), image_path: str | None = None,
                  gallery: list[str] | None = None) -> dict:
    """
    Galleria:
    - più di un file caricato: i nuovi (dal secondo in poi) si aggiungono in coda
    - altrimenti, se il client manda 'gallery', la galleria viene sostituita
    - altrimenti resta quella salvata
    """
    files = [f for f in files if has_file(f)]
    _check_gallery_files(files)

    with db.session() as s:
        _get_or_404(s, Branch, branch_id, "Sede non trovata.")

    stored = media.store_many(files)
    with _discard_on_error(media, stored):
        with db.session() as s:
            branch = _get_or_404(s, Branch, branch_id, "Sede non trovata.")
            previous_image = branch.image
            previous_gallery = list(branch.gallery or [])

            if len(stored) > 1:
                new_gallery = previous_gallery + stored[1:]
            elif gallery is not None:
                new_gallery = [p for p in gallery if p]
            else:
                new_gallery = previous_gallery

            branch.name = name
            branch.address = address
            branch.phone = phone
            branch.email = email
            branch.lat = lat
            branch.lng = lng
            branch.image = _next_image(previous_image, stored[0] if stored else None, image_path)
            branch.gallery = new_gallery
            s.flush()
            result = branch.to_dict()

    _discard_replaced(media, [previous_image, *previous_gallery], [result["image"], *result["gallery"]])
    return result


def delete_branch(db: Database, media: MediaStore, branch_id: int) -> dict:
    with db.session() as s:
        branch = _get_or_404(s, Branch, branch_id, "Sede non trovata.")
        files = [branch.image, *(branch.gallery or [])]
        s.delete(branch)

    media.remove_many(files)
    return _deleted("Sede eliminata.")


# =========================
# Partner
# =========================
def list_partners(db: Database) -> list[dict]:
    with db.session() as s:
        return [p.to_dict() for p in s.scalars(select(Partner).order_by(Partner.id.desc()))]


def create_partner(db: Database, media: MediaStore, *, name: str, description: str | None = None,
                   logo: Upload | None = None) -> dict:
    if not has_file(logo):
        raise InvalidRequest("Nome e logo sono obbligatori.")

    stored = media.store(logo)
    with _discard_on_error(media, [stored]):
        with db.session() as s:
            partner = Partner(name=name, logo=stored, description=description)
            s.add(partner)
            s.flush()
            return partner.to_dict()


def update_partner(db: Database, media: MediaStore, partner_id: int, *, name: str,
                   description: str | None = None, logo_path: str | None = None,
                   logo: Upload | None = None) -> dict:
    with db.session() as s:
        _get_or_404(s, Partner, partner_id, "Partner non trovato.")

    stored = media.store(logo) if has_file(logo) else None
    with _discard_on_error(media, [stored]):
        with db.session() as s:
            partner = _get_or_404(s, Partner, partner_id, "Partner non trovato.")
            previous = partner.logo
            new_logo = _next_image(previous, stored, logo_path)
            if not new_logo:
                raise InvalidRequest("Il logo è obbligatorio.")
            partner.name = name
            partner.description = description
            partner.logo = new_logo
            s.flush()
            result = partner.to_dict()

    _discard_replaced(media, [previous], [result["logo"]])
    return result


def delete_partner(db: Database, media: MediaStore, partner_id: int) -> dict:
    with db.session() as s:
        partner = _get_or_404(s, Partner, partner_id, "Partner non trovato.")
        logo = partner.logo
        s.delete(partner)

    media.remove(logo)
    return _deleted("Partner eliminato.")


# =========================
# Listino prezzi
# =========================
def _check_price_range(min_price: float, max_price: float) -> None:
    if min_price < 0 or max_price < 0:
        raise InvalidRequest("I prezzi non possono essere negativi.")
    if min_price > max_price:
        raise InvalidRequest("Il prezzo minimo non può superare il prezzo massimo.")


def list_prices(db: Database) -> list[dict]:
    with db.session() as s:
        return [p.to_dict() for p in s.scalars(select(Price).order_by(Price.category, Price.name))]


def create_price(db: Database, *, category: str, name: str, min_price: float, max_price: float,
                 description: str | None = None) -> dict:
    _check_price_range(min_price, max_price)
    with db.session() as s:
        price = Price(category=category, name=name, min_price=min_price, max_price=max_price,
                      description=description)
        s.add(price)
        s.flush()
        return price.to_dict()


def update_price(db: Database, price_id: int, *, category: str, name: str, min_price: float,
                 max_price: float, description: str | None = None) -> dict:
    _check_price_range(min_price, max_price)
    with db.session() as s:
        price = _get_or_404(s, Price, price_id, "Prezzo non trovato.")
        price.category = category
        price.name = name
        price.min_price = min_price
        price.max_price = max_price
        price.description = description
        s.flush()
        return price.to_dict()


def delete_price(db: Database, price_id: int) -> dict:
    with db.session() as s:
        s.delete(_get_or_404(s, Price, price_id, "Prezzo non trovato."))
    return _deleted("Prezzo eliminato.")


# =========================
# Timeline
# =========================
def list_timeline(db: Database) -> list[dict]:
    with db.session() as s:
        q = select(TimelineItem).order_by(TimelineItem.order_index.asc(), TimelineItem.date.asc())
        return [t.to_dict() for t in s.scalars(q)]


def create_timeline_item(db: Database, *, title: str, description: str, date: dt.date,
                         order_index: int = 0) -> dict:
    with db.session() as s:
        item = TimelineItem(title=title, description=description, date=date, order_index=order_index)
        s.add(item)
        s.flush()
        return item.to_dict()


def update_timeline_item(db: Database, item_id: int, *, title: str, description: str, date: dt.date,
                         order_index: int = 0) -> dict:
    with db.session() as s:
        item = _get_or_404(s, TimelineItem, item_id, "Elemento della timeline non trovato.")
        item.title = title
        item.description = description
        item.date = date
        item.order_index = order_index
        s.flush()
        return item.to_dict()


def delete_timeline_item(db: Database, item_id: int) -> dict:
    with db.session() as s:
        s.delete(_get_or_404(s, TimelineItem, item_id, "Elemento della timeline non trovato."))
    return _deleted("Elemento della timeline eliminato.")


# =========================
# FAQ
# =========================
DEFAULT_FAQ_CATEGORY = "genel"


def list_faqs(db: Database, category: str | None = None) -> list[dict]:
    q = select(Faq)
    if category:
        q = q.where(Faq.category == category)
    q = q.order_by(Faq.order_index.asc(), Faq.created_at.desc(), Faq.id.desc())
    with db.session() as s:
        return [f.to_dict() for f in s.scalars(q)]


def create_faq(db: Database, *, question: str, answer: str, category: str | None = None,
               order_index: int = 0) -> dict:
    with db.session() as s:
        faq = Faq(question=question, answer=answer, category=category or DEFAULT_FAQ_CATEGORY,
                  order_index=order_index)
        s.add(faq)
        s.flush()
        return faq.to_dict()


def update_faq(db: Database, faq_id: int, *, question: str, answer: str, category: str | None = None,
               order_index: int = 0) -> dict:
    with db.session() as s:
        faq = _get_or_404(s, Faq, faq_id, "FAQ non trovata.")
        faq.question = question
        faq.answer = answer
        faq.category = category or DEFAULT_FAQ_CATEGORY
        faq.order_index = order_index
        s.flush()
        return faq.to_dict()


def delete_faq(db: Database, faq_id: int) -> dict:
    with db.session() as s:
        s.delete(_get_or_404(s, Faq, faq_id, "FAQ non trovata."))
    return _deleted("FAQ eliminata.")

