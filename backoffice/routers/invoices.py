"""Invoices router - business entities, invoices, payment flags and PDFs.

Mixed paths: /business-entities, /projects/{id}/invoices, /invoices.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.core.deps import get_current_session, get_db, require_csrf_header, require_roles
from backoffice.db.enums import ROLES_CAN_MANAGE_MASTERS
from backoffice.db.models import Invoice
from backoffice.routers.projects import project_or_404
from backoffice.schemas.auth import EmployeeSession
from backoffice.schemas.invoice import (
    BusinessEntityCreate,
    BusinessEntityRead,
    BusinessEntityUpdate,
    InvoiceCreate,
    InvoiceListResponse,
    InvoiceRead,
    InvoiceUpdate,
    PaymentDateUpdate,
    PaymentToggle,
    SignedUrlResponse,
)
from backoffice.services import invoice_service

router = APIRouter()


def _invoice_or_404(db: Session, invoice_id: UUID) -> Invoice:
    invoice = invoice_service.get_invoice(db, invoice_id)
    if not invoice or invoice.project.deleted_at is not None:
        raise HTTPException(status_code=404, detail="請求書が見つかりません")
    return invoice


# =============================================================================
# Business entities
# =============================================================================

@router.get("/business-entities", response_model=list[BusinessEntityRead])
def list_business_entities(
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return invoice_service.list_business_entities(db)


@router.post(
    "/business-entities",
    response_model=BusinessEntityRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_business_entity(
    data: BusinessEntityCreate,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    return invoice_service.create_business_entity(db, data)


@router.patch(
    "/business-entities/{entity_id}",
    response_model=BusinessEntityRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_business_entity(
    entity_id: UUID,
    data: BusinessEntityUpdate,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    entity = invoice_service.get_business_entity(db, entity_id)
    if not entity:
        raise HTTPException(status_code=404, detail="事業者が見つかりません")
    return invoice_service.update_business_entity(db, entity, data)


@router.delete("/business-entities/{entity_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_business_entity(
    entity_id: UUID,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    entity = invoice_service.get_business_entity(db, entity_id)
    if not entity:
        raise HTTPException(status_code=404, detail="事業者が見つかりません")
    invoice_service.delete_business_entity(db, entity)


# =============================================================================
# Project invoices
# =============================================================================

@router.get("/projects/{project_id}/invoices", response_model=list[InvoiceRead])
def list_project_invoices(
    project_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = project_or_404(db, project_id)
    return [invoice_service.to_read(i) for i in invoice_service.list_project_invoices(db, project.id)]


@router.post(
    "/projects/{project_id}/invoices",
    response_model=InvoiceRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_invoice(
    project_id: UUID,
    data: InvoiceCreate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = project_or_404(db, project_id)
    try:
        invoice = invoice_service.create_invoice(db, project, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return invoice_service.to_read(invoice)


# =============================================================================
# Invoices
# =============================================================================

@router.get("/invoices", response_model=InvoiceListResponse)
def list_invoices(
    business_entity_id: UUID | None = None,
    is_accounting_registered: bool | None = None,
    is_payment_received: bool | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    invoices, summary = invoice_service.list_invoices(
        db,
        business_entity_id=business_entity_id,
        is_accounting_registered=is_accounting_registered,
        is_payment_received=is_payment_received,
        date_from=date_from,
        date_to=date_to,
    )
    return InvoiceListResponse(
        items=[invoice_service.to_read(i) for i in invoices],
        summary=summary,
    )


@router.get("/invoices/{invoice_id}", response_model=InvoiceRead)
def get_invoice(
    invoice_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return invoice_service.to_read(_invoice_or_404(db, invoice_id))


@router.patch("/invoices/{invoice_id}", response_model=InvoiceRead, dependencies=[Depends(require_csrf_header)])
def update_invoice(
    invoice_id: UUID,
    data: InvoiceUpdate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    invoice = _invoice_or_404(db, invoice_id)
    try:
        invoice = invoice_service.update_invoice(db, invoice, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return invoice_service.to_read(invoice)


@router.delete("/invoices/{invoice_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_invoice(
    invoice_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    invoice_service.delete_invoice(db, _invoice_or_404(db, invoice_id))


@router.post(
    "/invoices/{invoice_id}/toggle-accounting",
    response_model=InvoiceRead,
    dependencies=[Depends(require_csrf_header)],
)
def toggle_accounting(
    invoice_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    invoice = invoice_service.toggle_accounting_registered(db, _invoice_or_404(db, invoice_id))
    return invoice_service.to_read(invoice)


@router.post(
    "/invoices/{invoice_id}/toggle-payment",
    response_model=InvoiceRead,
    dependencies=[Depends(require_csrf_header)],
)
def toggle_payment(
    invoice_id: UUID,
    data: PaymentToggle | None = None,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Mark paid (on the given date or today) or unpaid."""
    invoice = invoice_service.toggle_payment_received(
        db, _invoice_or_404(db, invoice_id), data.payment_date if data else None
    )
    return invoice_service.to_read(invoice)


@router.put(
    "/invoices/{invoice_id}/payment-date",
    response_model=InvoiceRead,
    dependencies=[Depends(require_csrf_header)],
)
def set_payment_date(
    invoice_id: UUID,
    data: PaymentDateUpdate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    invoice = invoice_service.set_payment_date(db, _invoice_or_404(db, invoice_id), data.payment_received_date)
    return invoice_service.to_read(invoice)


@router.post(
    "/invoices/{invoice_id}/pdf",
    response_model=InvoiceRead,
    dependencies=[Depends(require_csrf_header)],
)
async def upload_pdf(
    invoice_id: UUID,
    file: UploadFile = File(...),
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    invoice = _invoice_or_404(db, invoice_id)
    content = await file.read()
    try:
        invoice = invoice_service.upload_pdf(db, invoice, file.filename or "", content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return invoice_service.to_read(invoice)


@router.get("/invoices/{invoice_id}/pdf-url", response_model=SignedUrlResponse)
def pdf_url(
    invoice_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    invoice = _invoice_or_404(db, invoice_id)
    try:
        url = invoice_service.pdf_download_url(invoice)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return SignedUrlResponse(url=url, expires_in=settings.SIGNED_URL_EXPIRES_SECONDS)
