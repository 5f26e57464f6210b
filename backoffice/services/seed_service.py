"""Idempotent seeding of master data (industries, event categories, entities, tags)."""

import logging

from sqlalchemy.orm import Session

from backoffice.db.enums import EventLabel
from backoffice.db.models import BusinessEntity, EventCategory, StakeholderTag
from backoffice.services import industry_service
from backoffice.services.calendar_service import DEFAULT_CATEGORY_COLORS

logger = logging.getLogger(__name__)

DEFAULT_BUSINESS_ENTITIES = [
    ("T", "土地家屋調査士事務所"),
    ("G", "行政書士事務所"),
]

DEFAULT_STAKEHOLDER_TAGS = [
    ("土地所有者", "#3b82f6"),
    ("隣接地所有者", "#10b981"),
    ("相続人", "#f59e0b"),
    ("代理人", "#8b5cf6"),
    ("官公署担当", "#ef4444"),
    ("その他", "#6b7280"),
]


def seed_event_categories(db: Session) -> int:
    existing = {name for (name,) in db.query(EventCategory.name).all()}
    added = 0
    for order, label in enumerate(EventLabel):
        if label.value in existing:
            continue
        color = DEFAULT_CATEGORY_COLORS[order % len(DEFAULT_CATEGORY_COLORS)]
        db.add(EventCategory(name=label.value, color=color, sort_order=order))
        added += 1
    db.commit()
    return added


def seed_business_entities(db: Session) -> int:
    existing = {code for (code,) in db.query(BusinessEntity.code).all()}
    added = 0
    for order, (code, name) in enumerate(DEFAULT_BUSINESS_ENTITIES):
        if code not in existing:
            db.add(BusinessEntity(code=code, name=name, sort_order=order))
            added += 1
    db.commit()
    return added


def seed_stakeholder_tags(db: Session) -> int:
    existing = {name for (name,) in db.query(StakeholderTag.name).all()}
    added = 0
    for order, (name, color) in enumerate(DEFAULT_STAKEHOLDER_TAGS):
        if name not in existing:
            db.add(StakeholderTag(name=name, color=color, sort_order=order))
            added += 1
    db.commit()
    return added


def seed_masters(db: Session) -> dict[str, int]:
    """Insert whatever defaults are missing. Returns the count added per master."""
    counts = {
        "industries": industry_service.seed_defaults(db),
        "event_categories": seed_event_categories(db),
        "business_entities": seed_business_entities(db),
        "stakeholder_tags": seed_stakeholder_tags(db),
    }
    logger.info("Master data seeded", extra=counts)
    return counts
