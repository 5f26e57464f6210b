"""Comment service - project comments and read acknowledgements."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from backoffice.db.enums import EmployeeRole
from backoffice.db.models import Comment, CommentAcknowledgement
from backoffice.schemas.auth import EmployeeSession

logger = logging.getLogger(__name__)


def list_comments(db: Session, project_id: UUID) -> list[Comment]:
    """Comments of a project, newest first."""
    return db.query(Comment).options(
        joinedload(Comment.author),
        joinedload(Comment.acknowledgements).joinedload(CommentAcknowledgement.employee),
    ).filter(
        Comment.project_id == project_id,
    ).order_by(Comment.created_at.desc()).all()


def get_comment(db: Session, project_id: UUID, comment_id: UUID) -> Comment | None:
    return db.query(Comment).filter(
        Comment.id == comment_id,
        Comment.project_id == project_id,
    ).first()


def create_comment(db: Session, project_id: UUID, author_id: UUID, content: str) -> Comment:
    comment = Comment(project_id=project_id, author_id=author_id, content=content)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment


def delete_comment(db: Session, comment: Comment, session: EmployeeSession) -> None:
    """Only the author or an admin may delete."""
    if comment.author_id != session.employee_id and session.role != EmployeeRole.ADMIN:
        raise PermissionError("このコメントを削除する権限がありません")
    db.delete(comment)
    db.commit()


def acknowledge(db: Session, comment: Comment, employee_id: UUID) -> None:
    """Mark a comment as read by an employee. Repeating is a no-op."""
    exists = db.query(CommentAcknowledgement.id).filter(
        CommentAcknowledgement.comment_id == comment.id,
        CommentAcknowledgement.employee_id == employee_id,
    ).first()
    if exists:
        return
    db.add(CommentAcknowledgement(comment_id=comment.id, employee_id=employee_id))
    db.commit()


def unacknowledge(db: Session, comment: Comment, employee_id: UUID) -> None:
    db.query(CommentAcknowledgement).filter(
        CommentAcknowledgement.comment_id == comment.id,
        CommentAcknowledgement.employee_id == employee_id,
    ).delete(synchronize_session=False)
    db.commit()


def to_read(comment: Comment) -> dict:
    return {
        "id": comment.id,
        "project_id": comment.project_id,
        "author_id": comment.author_id,
        "author_name": comment.author.name if comment.author else None,
        "content": comment.content,
        "created_at": comment.created_at,
        "acknowledged_by": [
            {"id": ack.employee.id, "name": ack.employee.name}
            for ack in comment.acknowledgements
            if ack.employee is not None
        ],
    }
