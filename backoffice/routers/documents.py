"""Documents router - Word templates and document generation."""

from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile
from sqlalchemy.orm import Session

from backoffice.core.deps import get_current_session, get_db, require_csrf_header, require_roles
from backoffice.db.enums import ROLES_CAN_MANAGE_MASTERS
from backoffice.db.models import DocumentTemplate
from backoffice.routers.projects import attachment_header
from backoffice.schemas.auth import EmployeeSession
from backoffice.schemas.document import (
    DocumentGenerate,
    DocumentTemplateRead,
    DocumentTemplateReorder,
    DocumentTemplateUpdate,
)
from backoffice.services import document_service, employee_service

router = APIRouter()


def _template_or_404(db: Session, template_id: UUID) -> DocumentTemplate:
    template = document_service.get_template(db, template_id)
    if not template:
        raise HTTPException(status_code=404, detail="テンプレートが見つかりません")
    return template


@router.get("/templates", response_model=list[DocumentTemplateRead])
def list_templates(
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return document_service.list_templates(db)


@router.post(
    "/templates",
    response_model=DocumentTemplateRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
async def upload_template(
    file: UploadFile = File(...),
    name: str | None = Form(None),
    description: str | None = Form(None),
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    content = await file.read()
    try:
        return document_service.upload_template(
            db,
            filename=file.filename or "",
            content=content,
            name=name,
            description=description,
            uploaded_by=session.employee_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "/templates/reorder",
    response_model=list[DocumentTemplateRead],
    dependencies=[Depends(require_csrf_header)],
)
def reorder_templates(
    data: DocumentTemplateReorder,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    try:
        return document_service.reorder_templates(db, data.ids)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch(
    "/templates/{template_id}",
    response_model=DocumentTemplateRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_template(
    template_id: UUID,
    data: DocumentTemplateUpdate,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    return document_service.update_template(db, _template_or_404(db, template_id), data)


@router.delete("/templates/{template_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_template(
    template_id: UUID,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    document_service.delete_template(db, _template_or_404(db, template_id))


@router.post("/templates/{template_id}/generate", dependencies=[Depends(require_csrf_header)])
def generate_document(
    template_id: UUID,
    data: DocumentGenerate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Fill the template for a recipient and return the .docx."""
    template = _template_or_404(db, template_id)
    sender = employee_service.get_employee(db, data.sender_id or session.employee_id)
    if not sender:
        raise HTTPException(status_code=400, detail="差出人が見つかりません")
    try:
        content, filename = document_service.generate_document(
            db,
            template,
            recipient_type=data.recipient_type,
            recipient_id=data.recipient_id,
            sender=sender,
            document_date=data.document_date,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return Response(
        content=content,
        media_type=document_service.DOCX_CONTENT_TYPE,
        headers={"Content-Disposition": attachment_header(filename)},
    )
