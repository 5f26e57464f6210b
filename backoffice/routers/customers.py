"""Customers router - accounts, branches, contacts, individuals and industries."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from backoffice.core.deps import get_current_session, get_db, require_csrf_header, require_roles
from backoffice.db.enums import ROLES_CAN_MANAGE_MASTERS
from backoffice.db.models import Account, Contact
from backoffice.schemas.auth import EmployeeSession
from backoffice.schemas.customer import (
    AccountCreate,
    AccountCreateResult,
    AccountListItem,
    AccountListResponse,
    AccountQuickCreate,
    AccountRead,
    AccountUpdate,
    BranchRead,
    ContactCreate,
    ContactListResponse,
    ContactRead,
    ContactUpdate,
    CustomerData,
    IndustryCreate,
    IndustryRead,
)
from backoffice.services import account_service, contact_service, industry_service
from backoffice.utils.address import format_full_address
from backoffice.utils.pagination import PaginationParams, get_pagination

router = APIRouter()


# =============================================================================
# Helpers
# =============================================================================

def contact_read(contact: Contact) -> ContactRead:
    read = ContactRead.model_validate(contact, from_attributes=True)
    read.full_address = format_full_address(contact)
    return read


def account_read(db: Session, account: Account) -> AccountRead:
    return AccountRead(
        **{
            field: getattr(account, field)
            for field in AccountRead.model_fields
            if field not in ("full_address", "branches", "contacts")
        },
        full_address=format_full_address(account),
        branches=[
            BranchRead.model_validate(b, from_attributes=True)
            for b in account_service.get_active_branches(db, account.id)
        ],
        contacts=[contact_read(c) for c in contact_service.get_account_contacts(db, account.id)],
    )


def _account_or_404(db: Session, account_id: UUID) -> Account:
    account = account_service.get_account(db, account_id)
    if not account:
        raise HTTPException(status_code=404, detail="顧客が見つかりません")
    return account


def _contact_or_404(db: Session, contact_id: UUID) -> Contact:
    contact = contact_service.get_contact(db, contact_id)
    if not contact:
        raise HTTPException(status_code=404, detail="連絡先が見つかりません")
    return contact


# =============================================================================
# Accounts
# =============================================================================

@router.get("/accounts", response_model=AccountListResponse)
def list_accounts(
    q: str | None = Query(None, description="Search company name and kana"),
    industry: str | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    accounts, total = account_service.list_accounts(db, pagination, q=q, industry=industry)
    stats = account_service.get_contact_stats(db, [a.id for a in accounts])
    items = []
    for account in accounts:
        primary_name, count = stats.get(account.id, (None, 0))
        items.append(
            AccountListItem(
                id=account.id,
                company_name=account.company_name,
                company_name_kana=account.company_name_kana,
                industry=account.industry,
                main_phone=account.main_phone,
                prefecture=account.prefecture,
                city=account.city,
                primary_contact_name=primary_name,
                contact_count=count,
                created_at=account.created_at,
            )
        )
    return AccountListResponse(
        items=items,
        **pagination.page_meta(total),
    )


@router.post(
    "/accounts",
    response_model=AccountCreateResult,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_account(
    data: AccountCreate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        account, primary = account_service.create_account(db, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return AccountCreateResult(account_id=account.id, primary_contact_id=primary.id if primary else None)


@router.post(
    "/accounts/quick",
    response_model=AccountCreateResult,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def quick_create_account(
    data: AccountQuickCreate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Minimal account (and optional contact) from the project form."""
    account, primary = account_service.quick_create_account(db, data)
    return AccountCreateResult(account_id=account.id, primary_contact_id=primary.id if primary else None)


@router.get("/accounts/{account_id}", response_model=AccountRead)
def get_account(
    account_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return account_read(db, _account_or_404(db, account_id))


@router.patch("/accounts/{account_id}", response_model=AccountRead, dependencies=[Depends(require_csrf_header)])
def update_account(
    account_id: UUID,
    data: AccountUpdate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    account = _account_or_404(db, account_id)
    try:
        account = account_service.update_account(db, account, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return account_read(db, account)


@router.delete("/accounts/{account_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_account(
    account_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    account_service.delete_account(db, _account_or_404(db, account_id))


@router.post(
    "/accounts/{account_id}/contacts",
    response_model=ContactRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def add_account_contact(
    account_id: UUID,
    data: ContactCreate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    account = _account_or_404(db, account_id)
    try:
        contact = contact_service.create_contact(db, data, account_id=account.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return contact_read(contact)


# =============================================================================
# Contacts and individuals
# =============================================================================

@router.get("/individuals", response_model=ContactListResponse)
def list_individuals(
    q: str | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    contacts, total = contact_service.list_individuals(db, pagination, q=q)
    return ContactListResponse(
        items=[contact_read(c) for c in contacts],
        **pagination.page_meta(total),
    )


@router.post(
    "/individuals",
    response_model=ContactRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_individual(
    data: ContactCreate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        contact = contact_service.create_contact(db, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return contact_read(contact)


@router.get("/contacts/{contact_id}", response_model=ContactRead)
def get_contact(
    contact_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return contact_read(_contact_or_404(db, contact_id))


@router.patch("/contacts/{contact_id}", response_model=ContactRead, dependencies=[Depends(require_csrf_header)])
def update_contact(
    contact_id: UUID,
    data: ContactUpdate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    contact = _contact_or_404(db, contact_id)
    try:
        contact = contact_service.update_contact(db, contact, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return contact_read(contact)


@router.delete("/contacts/{contact_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_contact(
    contact_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    contact_service.delete_contact(db, _contact_or_404(db, contact_id))


@router.get("/customers/options", response_model=CustomerData)
def customer_options(
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Accounts with contacts plus individuals, for the project form picker."""
    accounts, individuals = contact_service.get_customer_data(db)
    return CustomerData(
        accounts=[
            {
                "id": account.id,
                "company_name": account.company_name,
                "contacts": [
                    {
                        "id": c.id,
                        "full_name": c.full_name,
                        "department": c.department,
                        "position": c.position,
                        "is_primary": c.is_primary,
                    }
                    for c in contacts
                ],
            }
            for account, contacts in accounts
        ],
        individuals=[{"id": c.id, "full_name": c.full_name} for c in individuals],
    )


# =============================================================================
# Industries
# =============================================================================

@router.get("/industries", response_model=list[IndustryRead])
def list_industries(
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return industry_service.list_industries(db)


@router.post(
    "/industries",
    response_model=IndustryRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_industry(
    data: IndustryCreate,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    return industry_service.create_industry(db, data.name)


@router.delete("/industries/{industry_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_industry(
    industry_id: UUID,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    if not industry_service.delete_industry(db, industry_id):
        raise HTTPException(status_code=404, detail="業種が見つかりません")
