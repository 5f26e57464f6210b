"""Stakeholders router - tag master and per-project stakeholders."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backoffice.core.deps import get_current_session, get_db, require_csrf_header, require_roles
from backoffice.db.enums import ROLES_CAN_MANAGE_MASTERS
from backoffice.routers.projects import project_or_404
from backoffice.schemas.auth import EmployeeSession
from backoffice.schemas.stakeholder import (
    StakeholderCreate,
    StakeholderRead,
    StakeholderTagCreate,
    StakeholderTagRead,
    StakeholderTagUpdate,
    StakeholderUpdate,
)
from backoffice.services import stakeholder_service

router = APIRouter()


# =============================================================================
# Tags
# =============================================================================

@router.get("/stakeholder-tags", response_model=list[StakeholderTagRead])
def list_tags(
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return stakeholder_service.list_tags(db)


@router.post(
    "/stakeholder-tags",
    response_model=StakeholderTagRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_tag(
    data: StakeholderTagCreate,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    return stakeholder_service.create_tag(db, data)


@router.patch(
    "/stakeholder-tags/{tag_id}",
    response_model=StakeholderTagRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_tag(
    tag_id: UUID,
    data: StakeholderTagUpdate,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    tag = stakeholder_service.get_tag(db, tag_id)
    if not tag:
        raise HTTPException(status_code=404, detail="タグが見つかりません")
    return stakeholder_service.update_tag(db, tag, data)


@router.delete("/stakeholder-tags/{tag_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_tag(
    tag_id: UUID,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    tag = stakeholder_service.get_tag(db, tag_id)
    if not tag:
        raise HTTPException(status_code=404, detail="タグが見つかりません")
    stakeholder_service.delete_tag(db, tag)


# =============================================================================
# Project stakeholders
# =============================================================================

@router.get("/projects/{project_id}/stakeholders", response_model=list[StakeholderRead])
def list_stakeholders(
    project_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = project_or_404(db, project_id)
    return [stakeholder_service.to_read(s) for s in stakeholder_service.list_stakeholders(db, project.id)]


@router.post(
    "/projects/{project_id}/stakeholders",
    response_model=StakeholderRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def add_stakeholder(
    project_id: UUID,
    data: StakeholderCreate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = project_or_404(db, project_id)
    try:
        stakeholder = stakeholder_service.add_stakeholder(db, project.id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return stakeholder_service.to_read(stakeholder)


@router.patch(
    "/projects/{project_id}/stakeholders/{stakeholder_id}",
    response_model=StakeholderRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_stakeholder(
    project_id: UUID,
    stakeholder_id: UUID,
    data: StakeholderUpdate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = project_or_404(db, project_id)
    stakeholder = stakeholder_service.get_stakeholder(db, project.id, stakeholder_id)
    if not stakeholder:
        raise HTTPException(status_code=404, detail="関係者が見つかりません")
    try:
        stakeholder = stakeholder_service.update_stakeholder(db, stakeholder, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return stakeholder_service.to_read(stakeholder)


@router.delete(
    "/projects/{project_id}/stakeholders/{stakeholder_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def remove_stakeholder(
    project_id: UUID,
    stakeholder_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = project_or_404(db, project_id)
    stakeholder = stakeholder_service.get_stakeholder(db, project.id, stakeholder_id)
    if not stakeholder:
        raise HTTPException(status_code=404, detail="関係者が見つかりません")
    stakeholder_service.remove_stakeholder(db, stakeholder)
