"""Tests for business entities, invoice numbering, payments and PDFs."""
from datetime import date

import pytest
from httpx import AsyncClient
from sqlalchemy.orm import Session

from backoffice.core.exceptions import ConflictError
from backoffice.db.enums import ProjectCategory
from backoffice.schemas.invoice import BusinessEntityCreate, InvoiceCreate, InvoiceUpdate
from backoffice.schemas.project import ProjectCreate
from backoffice.services import invoice_service, project_service

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\n%%EOF\n"


def _project(db: Session, code: str = "A250001"):
    return project_service.create_project(
        db, ProjectCreate(category=ProjectCategory.SURVEY, name="測量", code=code)
    )


def _entity(db: Session, code: str = "K"):
    return invoice_service.create_business_entity(db, BusinessEntityCreate(code=code, name="本社"))


def _invoice(db: Session, project, entity, **overrides):
    values = {
        "business_entity_id": entity.id,
        "invoice_date": date(2025, 5, 31),
        "fee_tax_excluded": 100000,
    }
    values.update(overrides)
    return invoice_service.create_invoice(db, project, InvoiceCreate(**values))


# =============================================================================
# Totals and numbering
# =============================================================================

@pytest.mark.parametrize(
    "fee,expenses,expected",
    [
        (100000, 0, 110000),
        (123457, 5000, 140802),
        (1, 0, 1),
        (0, 3000, 3000),
    ],
)
def test_calculate_total_floors_tax(fee, expenses, expected):
    assert invoice_service.calculate_total(fee, expenses) == expected


def test_calculate_total_with_explicit_rate():
    assert invoice_service.calculate_total(1000, 0, tax_rate=0.08) == 1080


def test_invoice_numbers_are_sequential_per_entity_and_project(db: Session):
    project = _project(db)
    main = _entity(db, "k")
    branch = _entity(db, "T")
    assert main.code == "K"

    first = _invoice(db, project, main)
    second = _invoice(db, project, main)
    other = _invoice(db, project, branch)

    assert first.invoice_number == "K-A250001-01"
    assert second.invoice_number == "K-A250001-02"
    assert other.invoice_number == "T-A250001-01"
    assert first.total_amount == 110000


def test_deleted_invoices_keep_their_numbers(db: Session):
    project = _project(db)
    entity = _entity(db)
    first = _invoice(db, project, entity)
    invoice_service.delete_invoice(db, first)

    assert invoice_service.get_invoice(db, first.id) is None
    assert _invoice(db, project, entity).invoice_number == "K-A250001-02"


def test_entity_codes_are_unique_and_protected(db: Session):
    entity = _entity(db)
    with pytest.raises(ConflictError):
        _entity(db, "k")

    invoice = _invoice(db, _project(db), entity)
    invoice_service.delete_invoice(db, invoice)
    with pytest.raises(ConflictError):
        invoice_service.delete_business_entity(db, entity)


def test_update_recomputes_total(db: Session):
    invoice = _invoice(db, _project(db), _entity(db), notes="初回")
    invoice = invoice_service.update_invoice(
        db, invoice, InvoiceUpdate(expenses=2000, notes=None, invoice_date=None)
    )
    assert invoice.total_amount == 112000
    assert invoice.notes is None
    assert invoice.invoice_date == date(2025, 5, 31)


def test_unknown_entity_is_rejected(db: Session):
    import uuid

    with pytest.raises(ValueError):
        invoice_service.create_invoice(
            db, _project(db), InvoiceCreate(business_entity_id=uuid.uuid4(), invoice_date=date(2025, 5, 1))
        )


# =============================================================================
# Listing and payment
# =============================================================================

def test_list_invoices_summary_and_filters(db: Session):
    entity = _entity(db)
    first = _project(db, "A250001")
    second = _project(db, "A250002")

    paid = _invoice(db, first, entity, invoice_date=date(2025, 4, 30))
    _invoice(db, first, entity, invoice_date=date(2025, 5, 31), fee_tax_excluded=50000)
    _invoice(db, second, entity, invoice_date=date(2025, 6, 30))
    invoice_service.toggle_payment_received(db, paid, date(2025, 5, 20))

    invoices, summary = invoice_service.list_invoices(db)
    assert summary == {"count": 3, "total_amount": 275000, "unpaid_amount": 165000}
    assert [i.invoice_date for i in invoices][0] == date(2025, 6, 30)

    _, summary = invoice_service.list_invoices(db, date_from=date(2025, 5, 1), date_to=date(2025, 5, 31))
    assert summary["count"] == 1

    invoices, _ = invoice_service.list_invoices(db, is_payment_received=True)
    assert [i.id for i in invoices] == [paid.id]

    project_service.delete_project(db, second)
    _, summary = invoice_service.list_invoices(db)
    assert summary["count"] == 2


def test_payment_toggle_and_date(db: Session):
    invoice = _invoice(db, _project(db), _entity(db))

    invoice = invoice_service.toggle_payment_received(db, invoice, date(2025, 6, 10))
    assert invoice.is_payment_received is True
    assert invoice.payment_received_date == date(2025, 6, 10)

    invoice = invoice_service.toggle_payment_received(db, invoice)
    assert invoice.is_payment_received is False
    assert invoice.payment_received_date is None

    invoice = invoice_service.set_payment_date(db, invoice, date(2025, 6, 15))
    assert invoice.is_payment_received is True

    invoice = invoice_service.toggle_accounting_registered(db, invoice)
    assert invoice.is_accounting_registered is True


# =============================================================================
# PDF
# =============================================================================

def test_upload_pdf_replaces_previous_file(db: Session, local_storage):
    invoice = _invoice(db, _project(db), _entity(db))

    with pytest.raises(ValueError):
        invoice_service.upload_pdf(db, invoice, "invoice.pdf", b"not a pdf")
    with pytest.raises(ValueError):
        invoice_service.upload_pdf(db, invoice, "invoice.txt", PDF_BYTES)
    with pytest.raises(ValueError):
        invoice_service.pdf_download_url(invoice)

    invoice = invoice_service.upload_pdf(db, invoice, "invoice.pdf", PDF_BYTES)
    first_key = invoice.pdf_path
    assert (local_storage / first_key).read_bytes() == PDF_BYTES

    invoice = invoice_service.upload_pdf(db, invoice, "INVOICE.PDF", PDF_BYTES)
    if invoice.pdf_path != first_key:
        assert not (local_storage / first_key).exists()
    assert (local_storage / invoice.pdf_path).exists()
    assert invoice_service.pdf_download_url(invoice) == f"/files/{invoice.pdf_path}"


# =============================================================================
# API
# =============================================================================

@pytest.mark.asyncio
async def test_invoice_api_flow(authed_client: AsyncClient):
    entity = (await authed_client.post("/business-entities", json={"code": "K", "name": "本社"})).json()
    response = await authed_client.post("/business-entities", json={"code": "K", "name": "重複"})
    assert response.status_code == 409

    project = (await authed_client.post(
        "/projects", json={"category": "A_Survey", "name": "測量", "code": "A250001"}
    )).json()

    response = await authed_client.post(
        f"/projects/{project['id']}/invoices",
        json={
            "business_entity_id": entity["id"],
            "invoice_date": "2025-05-31",
            "fee_tax_excluded": 123457,
            "expenses": 5000,
        },
    )
    assert response.status_code == 201
    invoice = response.json()
    assert invoice["invoice_number"] == "K-A250001-01"
    assert invoice["total_amount"] == 140802
    assert invoice["has_pdf"] is False

    response = await authed_client.post(
        f"/invoices/{invoice['id']}/toggle-payment", json={"payment_date": "2025-06-30"}
    )
    assert response.json()["payment_received_date"] == "2025-06-30"

    response = await authed_client.put(
        f"/invoices/{invoice['id']}/payment-date", json={"payment_received_date": None}
    )
    assert response.json()["is_payment_received"] is False

    response = await authed_client.get("/invoices", params={"business_entity_id": entity["id"]})
    assert response.json()["summary"] == {"count": 1, "total_amount": 140802, "unpaid_amount": 140802}

    response = await authed_client.get(f"/invoices/{invoice['id']}/pdf-url")
    assert response.status_code == 404

    response = await authed_client.post(
        f"/invoices/{invoice['id']}/pdf",
        files={"file": ("invoice.pdf", PDF_BYTES, "application/pdf")},
    )
    assert response.status_code == 200
    assert response.json()["has_pdf"] is True

    response = await authed_client.get(f"/invoices/{invoice['id']}/pdf-url")
    url = response.json()["url"]
    assert url.startswith("/files/invoices/")

    response = await authed_client.get(url)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content == PDF_BYTES

    response = await authed_client.delete(f"/invoices/{invoice['id']}")
    assert response.status_code == 204
    response = await authed_client.get(f"/invoices/{invoice['id']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_invoice_api_rejects_non_pdf(authed_client: AsyncClient):
    entity = (await authed_client.post("/business-entities", json={"code": "K", "name": "本社"})).json()
    project = (await authed_client.post("/projects", json={"category": "A_Survey", "name": "測量"})).json()
    invoice = (await authed_client.post(
        f"/projects/{project['id']}/invoices",
        json={"business_entity_id": entity["id"], "invoice_date": "2025-05-31"},
    )).json()

    response = await authed_client.post(
        f"/invoices/{invoice['id']}/pdf",
        files={"file": ("invoice.pdf", b"MZ\x90\x00", "application/pdf")},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_staff_cannot_manage_business_entities(staff_client: AsyncClient):
    response = await staff_client.post("/business-entities", json={"code": "K", "name": "本社"})
    assert response.status_code == 403
