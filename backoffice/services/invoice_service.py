"""Invoice service - business entities, invoices, payment flags and PDFs."""

import logging
import math
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from backoffice.core.config import settings
from backoffice.core.exceptions import ConflictError, StorageError
from backoffice.db.models import BusinessEntity, Contact, Employee, Invoice, Project
from backoffice.schemas.invoice import (
    BusinessEntityCreate,
    BusinessEntityUpdate,
    InvoiceCreate,
    InvoiceUpdate,
)
from backoffice.services import storage_service
from backoffice.utils.datetime_utils import local_today, utcnow

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
PDF_MAGIC = b"%PDF"


# =============================================================================
# Business entities
# =============================================================================

def list_business_entities(db: Session) -> list[BusinessEntity]:
    return db.query(BusinessEntity).order_by(BusinessEntity.sort_order, BusinessEntity.code).all()


def get_business_entity(db: Session, entity_id: UUID) -> BusinessEntity | None:
    return db.query(BusinessEntity).filter(BusinessEntity.id == entity_id).first()


def create_business_entity(db: Session, data: BusinessEntityCreate) -> BusinessEntity:
    code = data.code.upper()
    if db.query(BusinessEntity.id).filter(BusinessEntity.code == code).first():
        raise ConflictError(f"事業者コード {code} は既に使用されています")
    max_order = db.query(func.max(BusinessEntity.sort_order)).scalar()
    entity = BusinessEntity(
        code=code,
        name=data.name.strip(),
        sort_order=(max_order + 1) if max_order is not None else 0,
    )
    db.add(entity)
    db.commit()
    db.refresh(entity)
    return entity


def update_business_entity(db: Session, entity: BusinessEntity, data: BusinessEntityUpdate) -> BusinessEntity:
    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(entity, field, value)
    db.commit()
    db.refresh(entity)
    return entity


def delete_business_entity(db: Session, entity: BusinessEntity) -> None:
    """Delete an entity; rejected while any invoice (even deleted) refers to it."""
    if db.query(Invoice.id).filter(Invoice.business_entity_id == entity.id).first():
        raise ConflictError("請求書で使用されている事業者は削除できません")
    db.delete(entity)
    db.commit()


# =============================================================================
# Numbering and totals
# =============================================================================

def calculate_total(fee_tax_excluded: int, expenses: int, tax_rate: float | None = None) -> int:
    """floor(fee x (1 + rate)) + expenses, without float rounding error."""
    rate = Decimal(str(settings.CONSUMPTION_TAX_RATE if tax_rate is None else tax_rate))
    return math.floor(Decimal(fee_tax_excluded) * (1 + rate)) + expenses


def next_sequence_number(db: Session, business_entity_id: UUID, project_id: UUID) -> int:
    """Soft-deleted invoices still hold their sequence numbers."""
    current = db.query(func.max(Invoice.sequence_number)).filter(
        Invoice.business_entity_id == business_entity_id,
        Invoice.project_id == project_id,
    ).scalar()
    return (current or 0) + 1


def format_invoice_number(entity_code: str, project_code: str, sequence_number: int) -> str:
    return f"{entity_code}-{project_code}-{sequence_number:02d}"


# =============================================================================
# Queries
# =============================================================================

def _invoice_query(db: Session):
    return db.query(Invoice).options(
        joinedload(Invoice.project),
        joinedload(Invoice.business_entity),
        joinedload(Invoice.recipient).joinedload(Contact.account),
        joinedload(Invoice.person_in_charge),
    ).filter(Invoice.deleted_at.is_(None))


def get_invoice(db: Session, invoice_id: UUID) -> Invoice | None:
    return _invoice_query(db).filter(Invoice.id == invoice_id).first()


def list_project_invoices(db: Session, project_id: UUID) -> list[Invoice]:
    return _invoice_query(db).filter(
        Invoice.project_id == project_id,
    ).order_by(Invoice.invoice_date.desc(), Invoice.sequence_number.desc()).all()


def list_invoices(
    db: Session,
    business_entity_id: UUID | None = None,
    is_accounting_registered: bool | None = None,
    is_payment_received: bool | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> tuple[list[Invoice], dict]:
    """All invoices of non-deleted projects with a summary of the filtered set."""
    query = _invoice_query(db).join(Project, Invoice.project_id == Project.id).filter(
        Project.deleted_at.is_(None),
    )
    if business_entity_id:
        query = query.filter(Invoice.business_entity_id == business_entity_id)
    if is_accounting_registered is not None:
        query = query.filter(Invoice.is_accounting_registered.is_(is_accounting_registered))
    if is_payment_received is not None:
        query = query.filter(Invoice.is_payment_received.is_(is_payment_received))
    if date_from:
        query = query.filter(Invoice.invoice_date >= date_from)
    if date_to:
        query = query.filter(Invoice.invoice_date <= date_to)

    invoices = query.order_by(Invoice.invoice_date.desc(), Invoice.invoice_number.desc()).all()
    summary = {
        "count": len(invoices),
        "total_amount": sum(i.total_amount for i in invoices),
        "unpaid_amount": sum(i.total_amount for i in invoices if not i.is_payment_received),
    }
    return invoices, summary


# =============================================================================
# Mutations
# =============================================================================

def _check_people(db: Session, contact_id: UUID | None, employee_id: UUID | None) -> None:
    if contact_id is not None:
        exists = db.query(Contact.id).filter(
            Contact.id == contact_id, Contact.deleted_at.is_(None)
        ).first()
        if not exists:
            raise ValueError("請求先が見つかりません")
    if employee_id is not None:
        exists = db.query(Employee.id).filter(
            Employee.id == employee_id, Employee.deleted_at.is_(None)
        ).first()
        if not exists:
            raise ValueError("担当者が見つかりません")


def create_invoice(db: Session, project: Project, data: InvoiceCreate) -> Invoice:
    entity = get_business_entity(db, data.business_entity_id)
    if not entity:
        raise ValueError("事業者が見つかりません")
    _check_people(db, data.recipient_contact_id, data.person_in_charge_id)

    sequence_number = next_sequence_number(db, entity.id, project.id)
    invoice = Invoice(
        project_id=project.id,
        business_entity_id=entity.id,
        sequence_number=sequence_number,
        invoice_number=format_invoice_number(entity.code, project.code, sequence_number),
        invoice_date=data.invoice_date,
        recipient_contact_id=data.recipient_contact_id,
        person_in_charge_id=data.person_in_charge_id,
        fee_tax_excluded=data.fee_tax_excluded,
        expenses=data.expenses,
        total_amount=calculate_total(data.fee_tax_excluded, data.expenses),
        notes=data.notes,
    )
    db.add(invoice)
    db.commit()
    logger.info(
        "Invoice created",
        extra={"invoice_id": str(invoice.id), "project_id": str(project.id)},
    )
    return get_invoice(db, invoice.id)


def update_invoice(db: Session, invoice: Invoice, data: InvoiceUpdate) -> Invoice:
    """
    Update invoice fields.

    Uses exclude_unset=True so only explicitly provided fields are updated.
    The total is recomputed whenever the fee or expenses change.
    """
    update_data = data.model_dump(exclude_unset=True)
    clearable_fields = {"recipient_contact_id", "person_in_charge_id", "notes"}

    _check_people(db, update_data.get("recipient_contact_id"), update_data.get("person_in_charge_id"))

    for field, value in update_data.items():
        if value is None and field not in clearable_fields:
            continue
        setattr(invoice, field, value)

    if "fee_tax_excluded" in update_data or "expenses" in update_data:
        invoice.total_amount = calculate_total(invoice.fee_tax_excluded, invoice.expenses)

    db.commit()
    return get_invoice(db, invoice.id)


def delete_invoice(db: Session, invoice: Invoice) -> None:
    invoice.deleted_at = utcnow()
    db.commit()
    logger.info("Invoice soft-deleted", extra={"invoice_id": str(invoice.id)})


def toggle_accounting_registered(db: Session, invoice: Invoice) -> Invoice:
    invoice.is_accounting_registered = not invoice.is_accounting_registered
    db.commit()
    return get_invoice(db, invoice.id)


def toggle_payment_received(db: Session, invoice: Invoice, payment_date: date | None = None) -> Invoice:
    """Turning it on records the given date (or today); turning it off clears it."""
    if invoice.is_payment_received:
        invoice.is_payment_received = False
        invoice.payment_received_date = None
    else:
        invoice.is_payment_received = True
        invoice.payment_received_date = payment_date or local_today()
    db.commit()
    return get_invoice(db, invoice.id)


def set_payment_date(db: Session, invoice: Invoice, payment_date: date | None) -> Invoice:
    invoice.payment_received_date = payment_date
    invoice.is_payment_received = payment_date is not None
    db.commit()
    return get_invoice(db, invoice.id)


# =============================================================================
# PDF
# =============================================================================

def upload_pdf(db: Session, invoice: Invoice, filename: str, content: bytes) -> Invoice:
    """Store a PDF and replace the previous one."""
    if not filename.lower().endswith(".pdf") or not content.startswith(PDF_MAGIC):
        raise ValueError("PDFファイルのみアップロードできます")
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise ValueError("ファイルサイズが上限を超えています")

    timestamp = int(utcnow().timestamp() * 1000)
    storage_key = f"invoices/{invoice.id}_{timestamp}.pdf"
    storage_service.store_file(storage_key, content, PDF_CONTENT_TYPE)

    previous = invoice.pdf_path
    invoice.pdf_path = storage_key
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        storage_service.delete_file(storage_key)
        raise

    if previous and previous != storage_key:
        try:
            storage_service.delete_file(previous)
        except StorageError:
            logger.warning("Failed to remove previous invoice PDF", extra={"invoice_id": str(invoice.id)})
    return get_invoice(db, invoice.id)


def pdf_download_url(invoice: Invoice) -> str:
    if not invoice.pdf_path:
        raise ValueError("PDFが登録されていません")
    return storage_service.generate_signed_url(invoice.pdf_path, f"{invoice.invoice_number}.pdf")


def to_read(invoice: Invoice) -> dict:
    recipient = invoice.recipient
    return {
        "id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "project": {"id": invoice.project.id, "code": invoice.project.code, "name": invoice.project.name},
        "business_entity": invoice.business_entity,
        "sequence_number": invoice.sequence_number,
        "invoice_date": invoice.invoice_date,
        "recipient": (
            {
                "contact_id": recipient.id,
                "name": recipient.full_name,
                "company_name": recipient.account.company_name if recipient.account else None,
            }
            if recipient else None
        ),
        "person_in_charge": (
            {"id": invoice.person_in_charge.id, "name": invoice.person_in_charge.name}
            if invoice.person_in_charge else None
        ),
        "fee_tax_excluded": invoice.fee_tax_excluded,
        "expenses": invoice.expenses,
        "total_amount": invoice.total_amount,
        "has_pdf": bool(invoice.pdf_path),
        "notes": invoice.notes,
        "is_accounting_registered": invoice.is_accounting_registered,
        "is_payment_received": invoice.is_payment_received,
        "payment_received_date": invoice.payment_received_date,
        "created_at": invoice.created_at,
    }
