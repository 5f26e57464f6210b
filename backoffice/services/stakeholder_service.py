"""Stakeholder service - tag master and per-project stakeholders (関係者)."""

import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from backoffice.core.exceptions import ConflictError
from backoffice.db.models import Contact, ProjectStakeholder, StakeholderTag
from backoffice.schemas.stakeholder import (
    StakeholderCreate,
    StakeholderTagCreate,
    StakeholderTagUpdate,
    StakeholderUpdate,
)

logger = logging.getLogger(__name__)

DUPLICATE_STAKEHOLDER_MESSAGE = "同じ連絡先・タグの組み合わせが既に登録されています"


# =============================================================================
# Tags
# =============================================================================

def list_tags(db: Session) -> list[StakeholderTag]:
    return db.query(StakeholderTag).order_by(StakeholderTag.sort_order, StakeholderTag.name).all()


def get_tag(db: Session, tag_id: UUID) -> StakeholderTag | None:
    return db.query(StakeholderTag).filter(StakeholderTag.id == tag_id).first()


def _tag_name_taken(db: Session, name: str, exclude_id: UUID | None = None) -> bool:
    query = db.query(StakeholderTag.id).filter(StakeholderTag.name == name)
    if exclude_id is not None:
        query = query.filter(StakeholderTag.id != exclude_id)
    return query.first() is not None


def create_tag(db: Session, data: StakeholderTagCreate) -> StakeholderTag:
    name = data.name.strip()
    if _tag_name_taken(db, name):
        raise ConflictError("同じ名前のタグが既に存在します")
    max_order = db.query(func.max(StakeholderTag.sort_order)).scalar()
    tag = StakeholderTag(
        name=name,
        color=data.color,
        sort_order=(max_order + 1) if max_order is not None else 0,
    )
    db.add(tag)
    db.commit()
    db.refresh(tag)
    return tag


def update_tag(db: Session, tag: StakeholderTag, data: StakeholderTagUpdate) -> StakeholderTag:
    update_data = data.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in update_data:
        update_data["name"] = update_data["name"].strip()
        if _tag_name_taken(db, update_data["name"], exclude_id=tag.id):
            raise ConflictError("同じ名前のタグが既に存在します")
    for field, value in update_data.items():
        setattr(tag, field, value)
    db.commit()
    db.refresh(tag)
    return tag


def delete_tag(db: Session, tag: StakeholderTag) -> None:
    """Delete a tag; rejected while any stakeholder still uses it."""
    in_use = db.query(ProjectStakeholder.id).filter(ProjectStakeholder.tag_id == tag.id).first()
    if in_use:
        raise ConflictError("このタグは使用中のため削除できません")
    db.delete(tag)
    db.commit()


# =============================================================================
# Project stakeholders
# =============================================================================

def list_stakeholders(db: Session, project_id: UUID) -> list[ProjectStakeholder]:
    return db.query(ProjectStakeholder).options(
        joinedload(ProjectStakeholder.contact).joinedload(Contact.account),
        joinedload(ProjectStakeholder.tag),
    ).join(StakeholderTag, ProjectStakeholder.tag_id == StakeholderTag.id).filter(
        ProjectStakeholder.project_id == project_id,
    ).order_by(StakeholderTag.sort_order, ProjectStakeholder.created_at).all()


def get_stakeholder(db: Session, project_id: UUID, stakeholder_id: UUID) -> ProjectStakeholder | None:
    return db.query(ProjectStakeholder).filter(
        ProjectStakeholder.id == stakeholder_id,
        ProjectStakeholder.project_id == project_id,
    ).first()


def _exists(db: Session, project_id: UUID, contact_id: UUID, tag_id: UUID, exclude_id: UUID | None = None) -> bool:
    query = db.query(ProjectStakeholder.id).filter(
        ProjectStakeholder.project_id == project_id,
        ProjectStakeholder.contact_id == contact_id,
        ProjectStakeholder.tag_id == tag_id,
    )
    if exclude_id is not None:
        query = query.filter(ProjectStakeholder.id != exclude_id)
    return query.first() is not None


def add_stakeholder(db: Session, project_id: UUID, data: StakeholderCreate) -> ProjectStakeholder:
    contact = db.query(Contact).filter(
        Contact.id == data.contact_id, Contact.deleted_at.is_(None)
    ).first()
    if not contact:
        raise ValueError("連絡先が見つかりません")
    if not get_tag(db, data.tag_id):
        raise ValueError("タグが見つかりません")
    if _exists(db, project_id, data.contact_id, data.tag_id):
        raise ConflictError(DUPLICATE_STAKEHOLDER_MESSAGE)

    stakeholder = ProjectStakeholder(
        project_id=project_id,
        contact_id=data.contact_id,
        tag_id=data.tag_id,
        note=data.note,
    )
    db.add(stakeholder)
    db.commit()
    db.refresh(stakeholder)
    return stakeholder


def update_stakeholder(db: Session, stakeholder: ProjectStakeholder, data: StakeholderUpdate) -> ProjectStakeholder:
    update_data = data.model_dump(exclude_unset=True)
    tag_id = update_data.get("tag_id")
    if tag_id is not None and tag_id != stakeholder.tag_id:
        if not get_tag(db, tag_id):
            raise ValueError("タグが見つかりません")
        if _exists(db, stakeholder.project_id, stakeholder.contact_id, tag_id, exclude_id=stakeholder.id):
            raise ConflictError(DUPLICATE_STAKEHOLDER_MESSAGE)
        stakeholder.tag_id = tag_id
    if "note" in update_data:
        stakeholder.note = update_data["note"]
    db.commit()
    db.refresh(stakeholder)
    return stakeholder


def remove_stakeholder(db: Session, stakeholder: ProjectStakeholder) -> None:
    db.delete(stakeholder)
    db.commit()


def to_read(stakeholder: ProjectStakeholder) -> dict:
    """Flatten a stakeholder with its contact for the API."""
    contact = stakeholder.contact
    account = contact.account
    return {
        "id": stakeholder.id,
        "project_id": stakeholder.project_id,
        "contact_id": contact.id,
        "contact_name": contact.full_name,
        "account_id": account.id if account else None,
        "company_name": account.company_name if account else None,
        "phone": contact.phone
        or (contact.branch.phone if contact.branch else None)
        or (account.main_phone if account else None),
        "tag": stakeholder.tag,
        "note": stakeholder.note,
    }
