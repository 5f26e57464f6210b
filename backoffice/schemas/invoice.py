"""Pydantic schemas for business entities and invoices."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from backoffice.schemas.employee import EmployeeOption


class BusinessEntityCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=10, pattern=r"^[A-Za-z0-9]+$")
    name: str = Field(..., min_length=1, max_length=100)


class BusinessEntityUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    sort_order: int | None = Field(None, ge=0)


class BusinessEntityRead(BaseModel):
    id: UUID
    code: str
    name: str
    sort_order: int

    model_config = {"from_attributes": True}


class InvoiceCreate(BaseModel):
    """Invoice number, sequence and total are computed by the server."""
    business_entity_id: UUID
    invoice_date: date
    recipient_contact_id: UUID | None = None
    person_in_charge_id: UUID | None = None
    fee_tax_excluded: int = Field(0, ge=0)
    expenses: int = Field(0, ge=0)
    notes: str | None = Field(None, max_length=2000)


class InvoiceUpdate(BaseModel):
    invoice_date: date | None = None
    recipient_contact_id: UUID | None = None
    person_in_charge_id: UUID | None = None
    fee_tax_excluded: int | None = Field(None, ge=0)
    expenses: int | None = Field(None, ge=0)
    notes: str | None = Field(None, max_length=2000)


class PaymentToggle(BaseModel):
    payment_date: date | None = None


class PaymentDateUpdate(BaseModel):
    payment_received_date: date | None = None


class InvoiceRecipient(BaseModel):
    contact_id: UUID
    name: str
    company_name: str | None = None


class InvoiceProject(BaseModel):
    id: UUID
    code: str
    name: str


class InvoiceRead(BaseModel):
    id: UUID
    invoice_number: str
    project: InvoiceProject
    business_entity: BusinessEntityRead
    sequence_number: int
    invoice_date: date
    recipient: InvoiceRecipient | None = None
    person_in_charge: EmployeeOption | None = None
    fee_tax_excluded: int
    expenses: int
    total_amount: int
    has_pdf: bool
    notes: str | None
    is_accounting_registered: bool
    is_payment_received: bool
    payment_received_date: date | None
    created_at: datetime


class InvoiceSummary(BaseModel):
    count: int
    total_amount: int
    unpaid_amount: int


class InvoiceListResponse(BaseModel):
    items: list[InvoiceRead]
    summary: InvoiceSummary


class SignedUrlResponse(BaseModel):
    url: str
    expires_in: int
