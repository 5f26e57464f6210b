"""Project service - business logic for projects (業務) and related-project links."""

import logging
import re
from datetime import date
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from backoffice.core.exceptions import ConflictError
from backoffice.db.enums import ACTIVE_PROJECT_STATUSES, ProjectCategory, ProjectStatus
from backoffice.db.models import Contact, Employee, Project, ProjectLink
from backoffice.schemas.project import (
    ProjectCreate,
    ProjectUpdate,
    validate_project_details,
)
from backoffice.utils.datetime_utils import local_today, utcnow
from backoffice.utils.pagination import PaginationParams, paginate_query

logger = logging.getLogger(__name__)

CODE_SEQUENCE_WIDTH = 6


# =============================================================================
# Codes
# =============================================================================

def next_project_code(db: Session, category: ProjectCategory, today: date | None = None) -> str:
    """
    Next project code for a category.

    Codes are {prefix}{yy}{nnnn}, e.g. A250001. Numbering continues from the
    highest existing code of the category (deleted projects included); the
    first code of a category uses the current year.
    """
    category = ProjectCategory(category)
    prefix = category.prefix
    # Hand-entered codes outside the {prefix}nnnnnn shape do not take part in numbering
    pattern = re.compile(rf"{re.escape(prefix)}\d{{{CODE_SEQUENCE_WIDTH}}}")
    codes = db.query(Project.code).filter(
        Project.code.like(f"{prefix}%"),
        func.length(Project.code) == len(prefix) + CODE_SEQUENCE_WIDTH,
    ).all()
    numbers = [int(code[len(prefix):]) for (code,) in codes if pattern.fullmatch(code)]

    if not numbers:
        yy = (today or local_today()).year % 100
        return f"{prefix}{yy:02d}0001"
    number = max(numbers)
    return f"{prefix}{number + 1:0{CODE_SEQUENCE_WIDTH}d}"


def code_exists(db: Session, code: str) -> bool:
    return db.query(Project.id).filter(Project.code == code).first() is not None


# =============================================================================
# Queries
# =============================================================================

def get_project(db: Session, project_id: UUID) -> Project | None:
    return db.query(Project).options(
        joinedload(Project.contact).joinedload(Contact.account),
        joinedload(Project.manager),
    ).filter(
        Project.id == project_id,
        Project.deleted_at.is_(None),
    ).first()


def list_projects(
    db: Session,
    pagination: PaginationParams,
    q: str | None = None,
    category: ProjectCategory | None = None,
    status: ProjectStatus | None = None,
    active_only: bool = False,
    manager_id: UUID | None = None,
    is_urgent: bool | None = None,
) -> tuple[list[Project], int]:
    query = db.query(Project).options(
        joinedload(Project.contact).joinedload(Contact.account),
        joinedload(Project.manager),
    ).filter(Project.deleted_at.is_(None))

    if q:
        pattern = f"%{q.strip()}%"
        query = query.filter(
            or_(
                Project.code.ilike(pattern),
                Project.name.ilike(pattern),
                Project.location.ilike(pattern),
            )
        )
    if category:
        query = query.filter(Project.category == category.value)
    if status:
        query = query.filter(Project.status == status.value)
    if active_only:
        query = query.filter(Project.status.in_([s.value for s in ACTIVE_PROJECT_STATUSES]))
    if manager_id:
        query = query.filter(Project.manager_id == manager_id)
    if is_urgent is not None:
        query = query.filter(Project.is_urgent.is_(is_urgent))

    query = query.order_by(Project.code.desc())
    return paginate_query(query, pagination)


def customer_name(contact: Contact | None) -> str | None:
    """Company name for corporate contacts, person name for individuals."""
    if contact is None:
        return None
    if contact.account is not None:
        return contact.account.company_name
    return contact.full_name


# =============================================================================
# Mutations
# =============================================================================

def _check_references(db: Session, contact_id: UUID | None, manager_id: UUID | None) -> None:
    if contact_id is not None:
        exists = db.query(Contact.id).filter(
            Contact.id == contact_id, Contact.deleted_at.is_(None)
        ).first()
        if not exists:
            raise ValueError("顧客が見つかりません")
    if manager_id is not None:
        exists = db.query(Employee.id).filter(
            Employee.id == manager_id, Employee.deleted_at.is_(None)
        ).first()
        if not exists:
            raise ValueError("担当者が見つかりません")


def create_project(db: Session, data: ProjectCreate) -> Project:
    """Create a project; generates the next code when none is given."""
    _check_references(db, data.contact_id, data.manager_id)

    code = (data.code or "").strip().upper() or next_project_code(db, data.category)
    if code_exists(db, code):
        raise ConflictError(f"業務コード {code} は既に使用されています")

    values = data.model_dump(exclude={"code", "category", "status"})
    project = Project(
        code=code,
        category=data.category.value,
        status=data.status.value,
        **values,
    )
    db.add(project)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Project code collision", extra={"code": code})
        raise ConflictError(f"業務コード {code} は既に使用されています")
    db.refresh(project)
    logger.info("Project created", extra={"project_id": str(project.id), "code": code})
    return project


def update_project(db: Session, project: Project, data: ProjectUpdate) -> Project:
    """
    Update project fields.

    Uses exclude_unset=True so only explicitly provided fields are updated.
    Details are re-validated against the resulting category.
    """
    update_data = data.model_dump(exclude_unset=True)

    clearable_fields = {
        "contact_id", "manager_id", "start_date", "end_date",
        "location", "location_detail", "notes",
    }

    _check_references(db, update_data.get("contact_id"), update_data.get("manager_id"))

    category = update_data.get("category") or ProjectCategory(project.category)
    if "details" in update_data or "category" in update_data:
        details = update_data.get("details")
        if details is None:
            details = project.details or {}
        update_data["details"] = validate_project_details(category, details)

    start = update_data.get("start_date", project.start_date)
    end = update_data.get("end_date", project.end_date)
    if start and end and end < start:
        raise ValueError("終了日は開始日以降の日付を指定してください")

    for field, value in update_data.items():
        if value is None and field not in clearable_fields:
            continue
        if field in ("category", "status") and value is not None:
            value = value.value
        setattr(project, field, value)

    db.commit()
    db.refresh(project)
    return project


def delete_project(db: Session, project: Project) -> None:
    project.deleted_at = utcnow()
    db.commit()
    logger.info("Project soft-deleted", extra={"project_id": str(project.id)})


# =============================================================================
# Related projects
# =============================================================================

def list_related_projects(db: Session, project_id: UUID) -> list[Project]:
    return db.query(Project).join(
        ProjectLink, ProjectLink.related_project_id == Project.id
    ).filter(
        ProjectLink.project_id == project_id,
        Project.deleted_at.is_(None),
    ).order_by(Project.code).all()


def link_projects(db: Session, project: Project, related_id: UUID) -> Project:
    """Link two projects in both directions."""
    if project.id == related_id:
        raise ValueError("同じ業務は関連付けできません")
    related = get_project(db, related_id)
    if not related:
        raise ValueError("関連業務が見つかりません")

    exists = db.query(ProjectLink.id).filter(
        ProjectLink.project_id == project.id,
        ProjectLink.related_project_id == related_id,
    ).first()
    if exists:
        raise ConflictError("既に関連付けされています")

    db.add(ProjectLink(project_id=project.id, related_project_id=related_id))
    reverse = db.query(ProjectLink.id).filter(
        ProjectLink.project_id == related_id,
        ProjectLink.related_project_id == project.id,
    ).first()
    if not reverse:
        db.add(ProjectLink(project_id=related_id, related_project_id=project.id))
    db.commit()
    return related


def unlink_projects(db: Session, project_id: UUID, related_id: UUID) -> bool:
    deleted = db.query(ProjectLink).filter(
        or_(
            (ProjectLink.project_id == project_id) & (ProjectLink.related_project_id == related_id),
            (ProjectLink.project_id == related_id) & (ProjectLink.related_project_id == project_id),
        )
    ).delete(synchronize_session=False)
    db.commit()
    return deleted > 0


def list_link_candidates(db: Session, project: Project, q: str | None = None, limit: int = 20) -> list[Project]:
    """Projects that can still be linked (not itself, not already linked)."""
    linked = select(ProjectLink.related_project_id).where(ProjectLink.project_id == project.id)
    query = db.query(Project).filter(
        Project.deleted_at.is_(None),
        Project.id != project.id,
        Project.id.not_in(linked),
    )
    if q:
        pattern = f"%{q.strip()}%"
        query = query.filter(or_(Project.code.ilike(pattern), Project.name.ilike(pattern)))
    return query.order_by(Project.code.desc()).limit(limit).all()
