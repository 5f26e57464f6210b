"""Pydantic schemas for accounts, branches, contacts and industries."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from backoffice.schemas.common import AddressFields
from backoffice.utils.normalization import (
    blank_to_none,
    normalize_corporate_number,
    normalize_email,
    normalize_phone,
    normalize_postal_code,
)


# =============================================================================
# Input
# =============================================================================

class BranchInput(AddressFields):
    """
    Branch row in the account form.

    `key` is a client-side temporary id that contacts may reference before the
    branch exists. `id` identifies an existing branch on update.
    """
    id: UUID | None = None
    key: str | None = None
    name: str = ""
    phone: str | None = None
    fax: str | None = None

    @field_validator("phone", "fax")
    @classmethod
    def clean_phone(cls, v: str | None) -> str | None:
        return normalize_phone(v)


class ContactFields(AddressFields):
    last_name: str = Field("", max_length=100)
    first_name: str | None = Field(None, max_length=100)
    last_name_kana: str | None = Field(None, max_length=100)
    first_name_kana: str | None = Field(None, max_length=100)
    birth_date: date | None = None
    email: str | None = Field(None, max_length=255)
    phone: str | None = None
    department: str | None = Field(None, max_length=100)
    position: str | None = Field(None, max_length=100)
    notes: str | None = None

    @field_validator("last_name")
    @classmethod
    def clean_last_name(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("first_name", "last_name_kana", "first_name_kana", "department", "position")
    @classmethod
    def clean_optional_text(cls, v: str | None) -> str | None:
        return blank_to_none(v)

    @field_validator("email")
    @classmethod
    def clean_email(cls, v: str | None) -> str | None:
        return normalize_email(v)

    @field_validator("phone")
    @classmethod
    def clean_phone(cls, v: str | None) -> str | None:
        return normalize_phone(v)


class ContactInput(ContactFields):
    """Contact row in the account form. Rows with a blank last name are ignored."""
    id: UUID | None = None
    branch_id: UUID | None = None
    branch_key: str | None = None
    is_primary: bool = False


class AccountFields(AddressFields):
    company_name: str = Field(..., min_length=1, max_length=255)
    company_name_kana: str | None = Field(None, max_length=255)
    corporate_number: str | None = None
    main_phone: str | None = None
    fax: str | None = None
    industry: str | None = Field(None, max_length=100)
    notes: str | None = None

    @field_validator("company_name")
    @classmethod
    def clean_company_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("会社名を入力してください")
        return v

    @field_validator("corporate_number")
    @classmethod
    def clean_corporate_number(cls, v: str | None) -> str | None:
        return normalize_corporate_number(v)

    @field_validator("main_phone", "fax")
    @classmethod
    def clean_phone(cls, v: str | None) -> str | None:
        return normalize_phone(v)


class AccountCreate(AccountFields):
    """Request to create an account together with its contacts and branches."""
    contacts: list[ContactInput] = Field(default_factory=list)
    branches: list[BranchInput] = Field(default_factory=list)


class AccountUpdate(BaseModel):
    """
    Partial account update.

    When `contacts` / `branches` are provided the lists are synchronised:
    rows with an id are updated, rows without are inserted, missing rows are
    soft-deleted.
    """
    company_name: str | None = Field(None, min_length=1, max_length=255)
    company_name_kana: str | None = None
    corporate_number: str | None = None
    main_phone: str | None = None
    fax: str | None = None
    postal_code: str | None = None
    prefecture: str | None = None
    city: str | None = None
    street: str | None = None
    building: str | None = None
    industry: str | None = None
    notes: str | None = None
    contacts: list[ContactInput] | None = None
    branches: list[BranchInput] | None = None

    @field_validator("postal_code")
    @classmethod
    def clean_postal(cls, v: str | None) -> str | None:
        return normalize_postal_code(v)

    @field_validator("corporate_number")
    @classmethod
    def clean_corporate(cls, v: str | None) -> str | None:
        return normalize_corporate_number(v)

    @field_validator("main_phone", "fax")
    @classmethod
    def clean_phones(cls, v: str | None) -> str | None:
        return normalize_phone(v)


class AccountQuickCreate(BaseModel):
    """Minimal account from the project form, optionally with one contact."""
    company_name: str = Field(..., min_length=1, max_length=255)
    company_name_kana: str | None = None
    contact: ContactFields | None = None


class ContactCreate(ContactFields):
    """Individual customer, or a contact added to an account via the route."""
    branch_id: UUID | None = None
    is_primary: bool = False


class ContactUpdate(BaseModel):
    last_name: str | None = Field(None, min_length=1, max_length=100)
    first_name: str | None = None
    last_name_kana: str | None = None
    first_name_kana: str | None = None
    birth_date: date | None = None
    email: str | None = None
    phone: str | None = None
    postal_code: str | None = None
    prefecture: str | None = None
    city: str | None = None
    street: str | None = None
    building: str | None = None
    department: str | None = None
    position: str | None = None
    branch_id: UUID | None = None
    is_primary: bool | None = None
    notes: str | None = None

    @field_validator("postal_code")
    @classmethod
    def clean_postal(cls, v: str | None) -> str | None:
        return normalize_postal_code(v)

    @field_validator("email")
    @classmethod
    def clean_emails(cls, v: str | None) -> str | None:
        return normalize_email(v)

    @field_validator("phone")
    @classmethod
    def clean_phones(cls, v: str | None) -> str | None:
        return normalize_phone(v)


# =============================================================================
# Output
# =============================================================================

class BranchRead(BaseModel):
    id: UUID
    account_id: UUID
    name: str
    phone: str | None
    fax: str | None
    postal_code: str | None
    prefecture: str | None
    city: str | None
    street: str | None
    building: str | None

    model_config = {"from_attributes": True}


class ContactRead(BaseModel):
    id: UUID
    account_id: UUID | None
    branch_id: UUID | None
    last_name: str
    first_name: str | None
    last_name_kana: str | None
    first_name_kana: str | None
    full_name: str
    full_name_kana: str
    birth_date: date | None
    email: str | None
    phone: str | None
    postal_code: str | None
    prefecture: str | None
    city: str | None
    street: str | None
    building: str | None
    full_address: str = ""
    department: str | None
    position: str | None
    is_primary: bool
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AccountRead(BaseModel):
    id: UUID
    company_name: str
    company_name_kana: str | None
    corporate_number: str | None
    main_phone: str | None
    fax: str | None
    postal_code: str | None
    prefecture: str | None
    city: str | None
    street: str | None
    building: str | None
    full_address: str = ""
    industry: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime
    branches: list[BranchRead] = []
    contacts: list[ContactRead] = []

    model_config = {"from_attributes": True}


class AccountListItem(BaseModel):
    id: UUID
    company_name: str
    company_name_kana: str | None
    industry: str | None
    main_phone: str | None
    prefecture: str | None
    city: str | None
    primary_contact_name: str | None = None
    contact_count: int = 0
    created_at: datetime


class AccountListResponse(BaseModel):
    items: list[AccountListItem]
    total: int
    page: int
    per_page: int
    pages: int


class ContactListResponse(BaseModel):
    items: list[ContactRead]
    total: int
    page: int
    per_page: int
    pages: int


class AccountCreateResult(BaseModel):
    account_id: UUID
    primary_contact_id: UUID | None


class CustomerContactOption(BaseModel):
    id: UUID
    full_name: str
    department: str | None = None
    position: str | None = None
    is_primary: bool = False


class CustomerAccountOption(BaseModel):
    id: UUID
    company_name: str
    contacts: list[CustomerContactOption]


class CustomerData(BaseModel):
    """Picker data for the project form."""
    accounts: list[CustomerAccountOption]
    individuals: list[CustomerContactOption]


class IndustryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class IndustryRead(BaseModel):
    id: UUID | None = None
    name: str
    sort_order: int
