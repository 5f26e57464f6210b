"""Contact service - corporate contacts, individual customers and picker data."""

import logging
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from backoffice.db.models import Account, Branch, Contact
from backoffice.schemas.customer import ContactCreate, ContactUpdate
from backoffice.utils.datetime_utils import utcnow
from backoffice.utils.pagination import PaginationParams, paginate_query

logger = logging.getLogger(__name__)


# =============================================================================
# Primary contact invariant
# =============================================================================

def enforce_single_primary(contacts: list[Contact]) -> Contact | None:
    """
    Keep exactly one primary among an account's active contacts.

    The first contact flagged is_primary wins; when none is flagged the first
    contact in the given order is promoted. Returns the primary (or None).
    """
    active = [c for c in contacts if c.deleted_at is None]
    primary = next((c for c in active if c.is_primary), None)
    if primary is None and active:
        primary = active[0]
    for contact in active:
        contact.is_primary = contact is primary
    return primary


def _reset_primary(db: Session, account_id: UUID, keep_id: UUID | None = None) -> None:
    """Re-apply the invariant for an account, preferring keep_id as primary."""
    contacts = db.query(Contact).filter(
        Contact.account_id == account_id,
        Contact.deleted_at.is_(None),
    ).order_by(Contact.is_primary.desc(), Contact.created_at).all()
    if keep_id is not None:
        contacts.sort(key=lambda c: c.id != keep_id)
    enforce_single_primary(contacts)


# =============================================================================
# Queries
# =============================================================================

def get_contact(db: Session, contact_id: UUID) -> Contact | None:
    return db.query(Contact).filter(
        Contact.id == contact_id,
        Contact.deleted_at.is_(None),
    ).first()


def get_account_contacts(db: Session, account_id: UUID) -> list[Contact]:
    """Active contacts of an account: primary first, then by family name."""
    return db.query(Contact).filter(
        Contact.account_id == account_id,
        Contact.deleted_at.is_(None),
    ).order_by(Contact.is_primary.desc(), Contact.last_name, Contact.created_at).all()


def list_individuals(
    db: Session,
    pagination: PaginationParams,
    q: str | None = None,
) -> tuple[list[Contact], int]:
    """Contacts without an account (個人顧客)."""
    query = db.query(Contact).filter(
        Contact.account_id.is_(None),
        Contact.deleted_at.is_(None),
    )
    if q:
        pattern = f"%{q.strip()}%"
        query = query.filter(
            or_(
                Contact.last_name.ilike(pattern),
                Contact.first_name.ilike(pattern),
                Contact.last_name_kana.ilike(pattern),
                Contact.first_name_kana.ilike(pattern),
                Contact.phone.ilike(pattern),
                Contact.email.ilike(pattern),
            )
        )
    query = query.order_by(Contact.last_name_kana, Contact.last_name, Contact.first_name)
    return paginate_query(query, pagination)


def get_customer_data(db: Session) -> tuple[list[tuple[Account, list[Contact]]], list[Contact]]:
    """
    Accounts with their active contacts, plus individuals, for pickers.

    Two queries total regardless of account count.
    """
    accounts = db.query(Account).filter(
        Account.deleted_at.is_(None),
    ).order_by(Account.company_name).all()
    contacts = db.query(Contact).filter(
        Contact.deleted_at.is_(None),
    ).order_by(Contact.is_primary.desc(), Contact.last_name).all()

    by_account: dict[UUID, list[Contact]] = {}
    individuals: list[Contact] = []
    for contact in contacts:
        if contact.account_id is None:
            individuals.append(contact)
        else:
            by_account.setdefault(contact.account_id, []).append(contact)

    return [(a, by_account.get(a.id, [])) for a in accounts], individuals


# =============================================================================
# Mutations
# =============================================================================

def _check_branch(db: Session, account_id: UUID | None, branch_id: UUID | None) -> None:
    if branch_id is None:
        return
    branch = db.query(Branch).filter(
        Branch.id == branch_id,
        Branch.deleted_at.is_(None),
    ).first()
    if not branch or branch.account_id != account_id:
        raise ValueError("支店が見つかりません")


def create_contact(db: Session, data: ContactCreate, account_id: UUID | None = None) -> Contact:
    """
    Create a contact. Without account_id this is an individual customer.
    """
    if not data.last_name:
        raise ValueError("氏名を入力してください")
    if account_id is None and data.branch_id is not None:
        raise ValueError("個人顧客には支店を設定できません")
    _check_branch(db, account_id, data.branch_id)

    contact = Contact(account_id=account_id, **data.model_dump())
    if account_id is None:
        contact.is_primary = False
    db.add(contact)
    db.flush()
    if account_id is not None:
        _reset_primary(db, account_id, keep_id=contact.id if data.is_primary else None)
    db.commit()
    db.refresh(contact)
    return contact


def update_contact(db: Session, contact: Contact, data: ContactUpdate) -> Contact:
    """
    Update contact fields.

    Uses exclude_unset=True so only explicitly provided fields are updated.
    None values ARE applied to clear optional fields.
    """
    update_data = data.model_dump(exclude_unset=True)
    non_clearable = {"last_name", "is_primary"}

    if "branch_id" in update_data:
        _check_branch(db, contact.account_id, update_data["branch_id"])

    for field, value in update_data.items():
        if value is None and field in non_clearable:
            continue
        setattr(contact, field, value)

    if contact.account_id is None:
        contact.is_primary = False
    else:
        db.flush()
        keep_id = contact.id if update_data.get("is_primary") else None
        _reset_primary(db, contact.account_id, keep_id=keep_id)

    db.commit()
    db.refresh(contact)
    return contact


def delete_contact(db: Session, contact: Contact) -> None:
    """Soft-delete a contact; another contact is promoted if it was primary."""
    contact.deleted_at = utcnow()
    contact.is_primary = False
    db.flush()
    if contact.account_id is not None:
        _reset_primary(db, contact.account_id)
    db.commit()
    logger.info("Contact soft-deleted", extra={"contact_id": str(contact.id)})
