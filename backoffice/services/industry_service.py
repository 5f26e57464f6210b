"""Industry master service."""

import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.core.exceptions import ConflictError
from backoffice.db.models import Industry

logger = logging.getLogger(__name__)

DEFAULT_INDUSTRIES = [
    "官公署",
    "建設業",
    "ハウスメーカー",
    "金融機関",
    "不動産業",
    "農協",
    "漁協",
    "農業",
    "漁業",
    "測量業",
    "土地家屋調査士",
    "司法書士",
    "その他",
]


def default_industries() -> list[dict]:
    return [{"id": None, "name": name, "sort_order": i} for i, name in enumerate(DEFAULT_INDUSTRIES)]


def list_industries(db: Session) -> list[dict]:
    """
    Industries ordered for the account form.

    Falls back to the built-in list when the master is empty or unreadable.
    """
    try:
        rows = db.query(Industry).order_by(Industry.sort_order, Industry.name).all()
    except SQLAlchemyError:
        logger.exception("Failed to load industries; using defaults")
        db.rollback()
        return default_industries()
    if not rows:
        return default_industries()
    return [{"id": r.id, "name": r.name, "sort_order": r.sort_order} for r in rows]


def create_industry(db: Session, name: str) -> Industry:
    name = name.strip()
    if db.query(Industry).filter(Industry.name == name).first():
        raise ConflictError("同じ業種が既に登録されています")
    max_order = db.query(func.max(Industry.sort_order)).scalar()
    industry = Industry(name=name, sort_order=(max_order + 1) if max_order is not None else 0)
    db.add(industry)
    db.commit()
    db.refresh(industry)
    return industry


def delete_industry(db: Session, industry_id: UUID) -> bool:
    industry = db.query(Industry).filter(Industry.id == industry_id).first()
    if not industry:
        return False
    db.delete(industry)
    db.commit()
    return True


def seed_defaults(db: Session) -> int:
    """Insert missing default industries. Returns the number added."""
    existing = {name for (name,) in db.query(Industry.name).all()}
    added = 0
    for order, name in enumerate(DEFAULT_INDUSTRIES):
        if name not in existing:
            db.add(Industry(name=name, sort_order=order))
            added += 1
    db.commit()
    return added
