from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from .. import services
from ..db import Database
from ..deps import get_database
from ..schemas import FaqIn, PriceIn, TimelineIn

router = APIRouter(prefix="/api", tags=["Informazioni"])


# Listino prezzi

@router.get("/prices")
def api_prices(db: Database = Depends(get_database)) -> list[dict]:
    return services.list_prices(db)


@router.post("/prices")
def api_create_price(payload: PriceIn, db: Database = Depends(get_database)) -> dict:
    return services.create_price(db, **payload.model_dump())


@router.put("/prices/{price_id}")
def api_update_price(price_id: int, payload: PriceIn, db: Database = Depends(get_database)) -> dict:
    return services.update_price(db, price_id, **payload.model_dump())


@router.delete("/prices/{price_id}")
def api_delete_price(price_id: int, db: Database = Depends(get_database)) -> dict:
    return services.delete_price(db, price_id)


# Timeline

@router.get("/timeline")
def api_timeline(db: Database = Depends(get_database)) -> list[dict]:
    return services.list_timeline(db)


@router.post("/timeline", status_code=status.HTTP_201_CREATED)
def api_create_timeline_item(payload: TimelineIn, db: Database = Depends(get_database)) -> dict:
    return services.create_timeline_item(
        db,
        title=payload.title,
        description=payload.description,
        date=payload.date,
        order_index=payload.order_index or 0,
    )


@router.put("/timeline/{item_id}")
def api_update_timeline_item(item_id: int, payload: TimelineIn, db: Database = Depends(get_database)) -> dict:
    return services.update_timeline_item(
        db,
        item_id,
        title=payload.title,
        description=payload.description,
        date=payload.date,
        order_index=payload.order_index or 0,
    )


@router.delete("/timeline/{item_id}")
def api_delete_timeline_item(item_id: int, db: Database = Depends(get_database)) -> dict:
    return services.delete_timeline_item(db, item_id)


# FAQ

@router.get("/faqs")
def api_faqs(
    category: str | None = Query(None),
    db: Database = Depends(get_database),
) -> list[dict]:
    return services.list_faqs(db, category=category)


@router.post("/faqs", status_code=status.HTTP_201_CREATED)
def api_create_faq(payload: FaqIn, db: Database = Depends(get_database)) -> dict:
    return services.create_faq(
        db,
        question=payload.question,
        answer=payload.answer,
        category=payload.category,
        order_index=payload.order_index or 0,
    )


@router.put("/faqs/{faq_id}")
def api_update_faq(faq_id: int, payload: FaqIn, db: Database = Depends(get_database)) -> dict:
    return services.update_faq(
        db,
        faq_id,
        question=payload.question,
        answer=payload.answer,
        category=payload.category,
        order_index=payload.order_index or 0,
    )


@router.delete("/faqs/{faq_id}")
def api_delete_faq(faq_id: int, db: Database = Depends(get_database)) -> dict:
    return services.delete_faq(db, faq_id)
