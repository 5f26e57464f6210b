"""Tests for accounts, branches, contacts and individual customers."""
import pytest
from httpx import AsyncClient
from sqlalchemy.orm import Session

from backoffice.db.models import Branch, Contact
from backoffice.schemas.customer import (
    AccountCreate,
    AccountUpdate,
    BranchInput,
    ContactCreate,
    ContactInput,
    ContactUpdate,
)
from backoffice.services import account_service, contact_service, industry_service


def _primary_ids(db: Session, account_id) -> list:
    return [
        c.id for c in db.query(Contact).filter(
            Contact.account_id == account_id,
            Contact.deleted_at.is_(None),
            Contact.is_primary.is_(True),
        )
    ]


# =============================================================================
# Service: accounts
# =============================================================================

def test_create_account_promotes_first_contact_when_none_flagged(db: Session):
    account, primary = account_service.create_account(
        db,
        AccountCreate(
            company_name="株式会社テスト",
            contacts=[
                ContactInput(last_name="山田", first_name="太郎"),
                ContactInput(last_name="佐藤"),
                ContactInput(last_name=""),  # blank rows are skipped
            ],
        ),
    )
    assert primary is not None
    assert primary.last_name == "山田"
    assert _primary_ids(db, account.id) == [primary.id]
    assert len(contact_service.get_account_contacts(db, account.id)) == 2


def test_create_account_keeps_only_first_flagged_primary(db: Session):
    account, primary = account_service.create_account(
        db,
        AccountCreate(
            company_name="株式会社テスト",
            contacts=[
                ContactInput(last_name="山田"),
                ContactInput(last_name="佐藤", is_primary=True),
                ContactInput(last_name="鈴木", is_primary=True),
            ],
        ),
    )
    assert primary.last_name == "佐藤"
    assert _primary_ids(db, account.id) == [primary.id]


def test_create_account_resolves_branch_keys(db: Session):
    account, _ = account_service.create_account(
        db,
        AccountCreate(
            company_name="株式会社テスト",
            branches=[BranchInput(key="tmp-1", name="大阪支店"), BranchInput(name="  ")],
            contacts=[ContactInput(last_name="山田", branch_key="tmp-1")],
        ),
    )
    branches = account_service.get_active_branches(db, account.id)
    assert [b.name for b in branches] == ["大阪支店"]
    contact = contact_service.get_account_contacts(db, account.id)[0]
    assert contact.branch_id == branches[0].id


def test_update_account_syncs_contacts_and_branches(db: Session):
    account, primary = account_service.create_account(
        db,
        AccountCreate(
            company_name="株式会社テスト",
            branches=[BranchInput(name="大阪支店")],
            contacts=[ContactInput(last_name="山田"), ContactInput(last_name="佐藤")],
        ),
    )
    branch = account_service.get_active_branches(db, account.id)[0]
    yamada, sato = sorted(
        contact_service.get_account_contacts(db, account.id),
        key=lambda c: c.last_name != "山田",
    )
    assert primary.id == yamada.id

    account_service.update_account(
        db,
        account,
        AccountUpdate(
            company_name="株式会社テスト改",
            branches=[],
            contacts=[
                ContactInput(id=sato.id, last_name="佐藤", is_primary=True, branch_id=branch.id),
                ContactInput(last_name="新規"),
            ],
        ),
    )

    assert account.company_name == "株式会社テスト改"
    db.refresh(yamada)
    assert yamada.deleted_at is not None
    assert account_service.get_active_branches(db, account.id) == []
    active = contact_service.get_account_contacts(db, account.id)
    assert {c.last_name for c in active} == {"佐藤", "新規"}
    assert _primary_ids(db, account.id) == [sato.id]
    # The branch was removed, so the reference is dropped
    db.refresh(sato)
    assert sato.branch_id is None


def test_update_account_clears_optional_fields_but_not_name(db: Session):
    account, _ = account_service.create_account(
        db, AccountCreate(company_name="株式会社テスト", main_phone="03-1111-2222")
    )
    account_service.update_account(db, account, AccountUpdate(main_phone=None, company_name=None))
    assert account.main_phone is None
    assert account.company_name == "株式会社テスト"


def test_delete_account_soft_deletes_children(db: Session):
    account, _ = account_service.create_account(
        db,
        AccountCreate(
            company_name="株式会社テスト",
            branches=[BranchInput(name="本店")],
            contacts=[ContactInput(last_name="山田")],
        ),
    )
    account_service.delete_account(db, account)

    assert account_service.get_account(db, account.id) is None
    assert db.query(Branch).filter(Branch.deleted_at.is_(None)).count() == 0
    assert db.query(Contact).filter(Contact.deleted_at.is_(None)).count() == 0


# =============================================================================
# Service: contacts
# =============================================================================

def test_add_primary_contact_moves_the_flag(db: Session):
    account, first = account_service.create_account(
        db, AccountCreate(company_name="株式会社テスト", contacts=[ContactInput(last_name="山田")])
    )
    second = contact_service.create_contact(
        db, ContactCreate(last_name="佐藤", is_primary=True), account_id=account.id
    )
    assert _primary_ids(db, account.id) == [second.id]
    db.refresh(first)
    assert first.is_primary is False


def test_deleting_primary_promotes_another(db: Session):
    account, primary = account_service.create_account(
        db,
        AccountCreate(
            company_name="株式会社テスト",
            contacts=[ContactInput(last_name="山田"), ContactInput(last_name="佐藤")],
        ),
    )
    contact_service.delete_contact(db, primary)
    remaining = _primary_ids(db, account.id)
    assert len(remaining) == 1
    assert remaining[0] != primary.id


def test_unflagging_primary_keeps_one(db: Session):
    account, primary = account_service.create_account(
        db, AccountCreate(company_name="株式会社テスト", contacts=[ContactInput(last_name="山田")])
    )
    contact_service.update_contact(db, primary, ContactUpdate(is_primary=False))
    assert _primary_ids(db, account.id) == [primary.id]


def test_individual_cannot_be_primary_or_have_branch(db: Session):
    contact = contact_service.create_contact(db, ContactCreate(last_name="田中", is_primary=True))
    assert contact.account_id is None
    assert contact.is_primary is False

    account, _ = account_service.create_account(
        db, AccountCreate(company_name="株式会社テスト", branches=[BranchInput(name="本店")])
    )
    branch = account_service.get_active_branches(db, account.id)[0]
    with pytest.raises(ValueError):
        contact_service.create_contact(db, ContactCreate(last_name="田中", branch_id=branch.id))


def test_list_individuals_excludes_account_contacts(db: Session):
    account_service.create_account(
        db, AccountCreate(company_name="株式会社テスト", contacts=[ContactInput(last_name="山田")])
    )
    contact_service.create_contact(db, ContactCreate(last_name="田中", phone="090-1234-5678"))

    from backoffice.utils.pagination import PaginationParams

    items, total = contact_service.list_individuals(db, PaginationParams(), q="090")
    assert total == 1
    assert items[0].last_name == "田中"


def test_industries_fall_back_to_defaults(db: Session):
    defaults = industry_service.list_industries(db)
    assert defaults
    assert industry_service.seed_defaults(db) == len(defaults)
    assert industry_service.seed_defaults(db) == 0


# =============================================================================
# API
# =============================================================================

@pytest.mark.asyncio
async def test_account_api_roundtrip(authed_client: AsyncClient):
    response = await authed_client.post(
        "/accounts",
        json={
            "company_name": "株式会社テスト",
            "postal_code": "１００－０００５",
            "prefecture": "東京都",
            "city": "千代田区",
            "contacts": [{"last_name": "山田", "first_name": "太郎"}],
        },
    )
    assert response.status_code == 201
    account_id = response.json()["account_id"]
    assert response.json()["primary_contact_id"]

    response = await authed_client.get(f"/accounts/{account_id}")
    assert response.status_code == 200
    data = response.json()
    assert data["postal_code"] == "100-0005"
    assert data["full_address"] == "〒100-0005 東京都 千代田区"
    assert data["contacts"][0]["full_name"] == "山田 太郎"
    assert data["contacts"][0]["is_primary"] is True

    response = await authed_client.get("/accounts", params={"q": "テスト"})
    assert response.json()["total"] == 1
    assert response.json()["items"][0]["primary_contact_name"] == "山田 太郎"

    response = await authed_client.delete(f"/accounts/{account_id}")
    assert response.status_code == 204
    response = await authed_client.get(f"/accounts/{account_id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_quick_create_account(authed_client: AsyncClient):
    response = await authed_client.post(
        "/accounts/quick",
        json={"company_name": "有限会社クイック", "contact": {"last_name": "佐藤"}},
    )
    assert response.status_code == 201
    assert response.json()["primary_contact_id"]


@pytest.mark.asyncio
async def test_invalid_postal_code_is_rejected(authed_client: AsyncClient):
    response = await authed_client.post("/individuals", json={"last_name": "田中", "postal_code": "123"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_customer_options(authed_client: AsyncClient):
    await authed_client.post(
        "/accounts", json={"company_name": "株式会社テスト", "contacts": [{"last_name": "山田"}]}
    )
    await authed_client.post("/individuals", json={"last_name": "田中"})

    response = await authed_client.get("/customers/options")
    assert response.status_code == 200
    data = response.json()
    assert data["accounts"][0]["contacts"][0]["full_name"] == "山田"
    assert data["individuals"][0]["full_name"] == "田中"


@pytest.mark.asyncio
async def test_mutations_require_csrf_header(authed_client: AsyncClient):
    response = await authed_client.post(
        "/individuals",
        json={"last_name": "田中"},
        headers={"X-Requested-With": ""},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_staff_cannot_manage_industries(staff_client: AsyncClient):
    response = await staff_client.post("/industries", json={"name": "建設業"})
    assert response.status_code == 403
    response = await staff_client.get("/industries")
    assert response.status_code == 200
