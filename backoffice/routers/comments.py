"""Comments router - project comments and read acknowledgements."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backoffice.core.deps import get_current_session, get_db, require_csrf_header
from backoffice.db.models import Comment
from backoffice.routers.projects import project_or_404
from backoffice.schemas.auth import EmployeeSession
from backoffice.schemas.comment import CommentCreate, CommentRead
from backoffice.services import comment_service

router = APIRouter(prefix="/projects/{project_id}/comments")


def _comment_or_404(db: Session, project_id: UUID, comment_id: UUID) -> Comment:
    project = project_or_404(db, project_id)
    comment = comment_service.get_comment(db, project.id, comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail="コメントが見つかりません")
    return comment


@router.get("", response_model=list[CommentRead])
def list_comments(
    project_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = project_or_404(db, project_id)
    return [comment_service.to_read(c) for c in comment_service.list_comments(db, project.id)]


@router.post("", response_model=CommentRead, status_code=201, dependencies=[Depends(require_csrf_header)])
def create_comment(
    project_id: UUID,
    data: CommentCreate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = project_or_404(db, project_id)
    comment = comment_service.create_comment(db, project.id, session.employee_id, data.content)
    return comment_service.to_read(comment)


@router.delete("/{comment_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_comment(
    project_id: UUID,
    comment_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    comment = _comment_or_404(db, project_id, comment_id)
    try:
        comment_service.delete_comment(db, comment, session)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.post("/{comment_id}/acknowledge", status_code=204, dependencies=[Depends(require_csrf_header)])
def acknowledge(
    project_id: UUID,
    comment_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    comment_service.acknowledge(db, _comment_or_404(db, project_id, comment_id), session.employee_id)


@router.delete("/{comment_id}/acknowledge", status_code=204, dependencies=[Depends(require_csrf_header)])
def unacknowledge(
    project_id: UUID,
    comment_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    comment_service.unacknowledge(db, _comment_or_404(db, project_id, comment_id), session.employee_id)
