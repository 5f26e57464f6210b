"""Account service - corporate customers with their branches and contacts."""

import logging
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from backoffice.db.models import Account, Branch, Contact
from backoffice.schemas.customer import (
    AccountCreate,
    AccountQuickCreate,
    AccountUpdate,
    BranchInput,
    ContactInput,
)
from backoffice.services import contact_service
from backoffice.utils.datetime_utils import utcnow
from backoffice.utils.pagination import PaginationParams, paginate_query

logger = logging.getLogger(__name__)

ACCOUNT_FIELDS = (
    "company_name",
    "company_name_kana",
    "corporate_number",
    "main_phone",
    "fax",
    "postal_code",
    "prefecture",
    "city",
    "street",
    "building",
    "industry",
    "notes",
)
BRANCH_FIELDS = ("name", "phone", "fax", "postal_code", "prefecture", "city", "street", "building")


def _active_branches_by_key(branches: list[Branch], inputs: list[BranchInput]) -> dict[str, UUID]:
    """Map client-side branch keys to persisted branch ids."""
    mapping: dict[str, UUID] = {}
    for branch, data in zip(branches, inputs):
        if data.key:
            mapping[data.key] = branch.id
    return mapping


def _resolve_branch_id(data: ContactInput, key_map: dict[str, UUID], valid_ids: set[UUID]) -> UUID | None:
    if data.branch_key and data.branch_key in key_map:
        return key_map[data.branch_key]
    if data.branch_id and data.branch_id in valid_ids:
        return data.branch_id
    return None


def _contact_values(data: ContactInput) -> dict:
    return data.model_dump(exclude={"id", "branch_key", "branch_id", "is_primary"})


# =============================================================================
# Create
# =============================================================================

def create_account(db: Session, data: AccountCreate) -> tuple[Account, Contact | None]:
    """
    Create an account with its branches and contacts in one transaction.

    Blank branch names and blank contact names are skipped.
    Returns (account, primary_contact).
    """
    account = Account(**data.model_dump(include=set(ACCOUNT_FIELDS)))
    db.add(account)
    db.flush()

    branch_inputs = [b for b in data.branches if b.name.strip()]
    branches: list[Branch] = []
    for b in branch_inputs:
        branch = Branch(account_id=account.id, **b.model_dump(include=set(BRANCH_FIELDS)))
        branch.name = branch.name.strip()
        db.add(branch)
        branches.append(branch)
    db.flush()

    key_map = _active_branches_by_key(branches, branch_inputs)
    valid_ids = {b.id for b in branches}

    contacts: list[Contact] = []
    for c in data.contacts:
        if not c.last_name:
            continue
        contact = Contact(
            account_id=account.id,
            branch_id=_resolve_branch_id(c, key_map, valid_ids),
            is_primary=c.is_primary,
            **_contact_values(c),
        )
        db.add(contact)
        contacts.append(contact)
    db.flush()

    primary = contact_service.enforce_single_primary(contacts)
    db.commit()
    db.refresh(account)
    logger.info("Account created", extra={"account_id": str(account.id), "contacts": len(contacts)})
    return account, primary


def quick_create_account(db: Session, data: AccountQuickCreate) -> tuple[Account, Contact | None]:
    """Account from the project form. The optional contact becomes primary."""
    contacts = []
    if data.contact and data.contact.last_name:
        contacts.append(ContactInput(**data.contact.model_dump(), is_primary=True))
    return create_account(
        db,
        AccountCreate(
            company_name=data.company_name,
            company_name_kana=data.company_name_kana,
            contacts=contacts,
        ),
    )


# =============================================================================
# Read
# =============================================================================

def get_account(db: Session, account_id: UUID) -> Account | None:
    return db.query(Account).filter(
        Account.id == account_id,
        Account.deleted_at.is_(None),
    ).first()


def get_active_branches(db: Session, account_id: UUID) -> list[Branch]:
    return db.query(Branch).filter(
        Branch.account_id == account_id,
        Branch.deleted_at.is_(None),
    ).order_by(Branch.created_at).all()


def list_accounts(
    db: Session,
    pagination: PaginationParams,
    q: str | None = None,
    industry: str | None = None,
) -> tuple[list[Account], int]:
    query = db.query(Account).filter(Account.deleted_at.is_(None))
    if q:
        pattern = f"%{q.strip()}%"
        query = query.filter(
            or_(
                Account.company_name.ilike(pattern),
                Account.company_name_kana.ilike(pattern),
            )
        )
    if industry:
        query = query.filter(Account.industry == industry)
    query = query.order_by(Account.company_name_kana.is_(None), Account.company_name_kana, Account.company_name)
    return paginate_query(query, pagination)


def get_contact_stats(db: Session, account_ids: list[UUID]) -> dict[UUID, tuple[str | None, int]]:
    """Primary contact name and active contact count per account (one query)."""
    if not account_ids:
        return {}
    rows = db.query(Contact).filter(
        Contact.account_id.in_(account_ids),
        Contact.deleted_at.is_(None),
    ).all()
    stats: dict[UUID, tuple[str | None, int]] = {}
    for contact in rows:
        name, count = stats.get(contact.account_id, (None, 0))
        if contact.is_primary:
            name = contact.full_name
        stats[contact.account_id] = (name, count + 1)
    return stats


# =============================================================================
# Update
# =============================================================================

def _sync_branches(db: Session, account: Account, inputs: list[BranchInput]) -> dict[str, UUID]:
    existing = {b.id: b for b in get_active_branches(db, account.id)}
    kept: set[UUID] = set()
    key_map: dict[str, UUID] = {}

    for data in inputs:
        name = data.name.strip()
        if not name:
            continue
        values = data.model_dump(include=set(BRANCH_FIELDS))
        values["name"] = name
        branch = existing.get(data.id) if data.id else None
        if branch is None:
            branch = Branch(account_id=account.id, **values)
            db.add(branch)
            db.flush()
        else:
            for field, value in values.items():
                setattr(branch, field, value)
        kept.add(branch.id)
        if data.key:
            key_map[data.key] = branch.id

    now = utcnow()
    for branch_id, branch in existing.items():
        if branch_id not in kept:
            branch.deleted_at = now
            # Contacts keep their record but lose the branch reference
            db.query(Contact).filter(Contact.branch_id == branch_id).update(
                {Contact.branch_id: None}, synchronize_session="fetch"
            )
    db.flush()
    return key_map


def _sync_contacts(
    db: Session,
    account: Account,
    inputs: list[ContactInput],
    key_map: dict[str, UUID],
) -> None:
    existing = {c.id: c for c in contact_service.get_account_contacts(db, account.id)}
    valid_branch_ids = {b.id for b in get_active_branches(db, account.id)}
    ordered: list[Contact] = []

    for data in inputs:
        if not data.last_name:
            continue
        contact = existing.get(data.id) if data.id else None
        values = _contact_values(data)
        if contact is None:
            contact = Contact(account_id=account.id, **values)
            db.add(contact)
        else:
            for field, value in values.items():
                setattr(contact, field, value)
        contact.branch_id = _resolve_branch_id(data, key_map, valid_branch_ids)
        contact.is_primary = data.is_primary
        ordered.append(contact)

    kept_ids = {c.id for c in ordered if c.id is not None}
    now = utcnow()
    for contact_id, contact in existing.items():
        if contact_id not in kept_ids:
            contact.deleted_at = now
            contact.is_primary = False

    db.flush()
    contact_service.enforce_single_primary(ordered)


def update_account(db: Session, account: Account, data: AccountUpdate) -> Account:
    """
    Update account fields and, when given, synchronise branches and contacts.

    Everything is committed together; a failure leaves the account unchanged.
    """
    update_data = data.model_dump(exclude_unset=True, exclude={"contacts", "branches"})

    # Fields that can be cleared (set to None)
    clearable_fields = set(ACCOUNT_FIELDS) - {"company_name"}

    for field, value in update_data.items():
        if value is None and field not in clearable_fields:
            continue
        setattr(account, field, value)

    key_map: dict[str, UUID] = {}
    if data.branches is not None:
        key_map = _sync_branches(db, account, data.branches)
    if data.contacts is not None:
        _sync_contacts(db, account, data.contacts, key_map)

    db.commit()
    db.refresh(account)
    return account


# =============================================================================
# Delete
# =============================================================================

def delete_account(db: Session, account: Account) -> None:
    """Soft-delete the account together with its branches and contacts."""
    now = utcnow()
    account.deleted_at = now
    db.query(Branch).filter(
        Branch.account_id == account.id,
        Branch.deleted_at.is_(None),
    ).update({Branch.deleted_at: now}, synchronize_session="fetch")
    db.query(Contact).filter(
        Contact.account_id == account.id,
        Contact.deleted_at.is_(None),
    ).update({Contact.deleted_at: now}, synchronize_session="fetch")
    db.commit()
    logger.info("Account soft-deleted", extra={"account_id": str(account.id)})
