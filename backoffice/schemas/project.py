"""Pydantic schemas for projects and their category-specific details."""

import re
from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from backoffice.db.enums import ProjectCategory, ProjectStatus
from backoffice.schemas.employee import EmployeeOption

MONTH_KEY_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


# =============================================================================
# Category details (stored in projects.details)
# =============================================================================

class _Details(BaseModel):
    model_config = {"extra": "forbid"}


class SurveyDetails(_Details):
    survey_type: str | None = None
    jv_name: str | None = None


class Coordinates(_Details):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class BoundaryWorkflow(_Details):
    """Progress checkboxes for 境界確定 work."""
    estimate: bool = False
    accepted: bool = False
    survey: bool = False
    staking: bool = False
    registration: bool = False
    billing: bool = False


class BoundaryDetails(_Details):
    purpose: str | None = None
    referrer: str | None = None
    coordinates: Coordinates | None = None
    workflow: BoundaryWorkflow | None = None


class Heir(_Details):
    name: str
    relationship: str | None = None


class RegistrationDetails(_Details):
    sub_type: str | None = None
    architect: str | None = None
    completion_date: date | None = None
    settlement_date: date | None = None
    mortgage_lender: str | None = None
    heirs: list[Heir] = Field(default_factory=list)


class InheritanceDetails(_Details):
    will_type: str | None = None
    will_date: date | None = None
    documents_kept: str | None = None
    contact_info: str | None = None


class CorporateDetails(_Details):
    purpose: str | None = None
    next_election_date: date | None = None


class DroneDetails(_Details):
    items: list[str] = Field(default_factory=list)
    cost_price: int | None = Field(None, ge=0)


class FarmlandDetails(_Details):
    application_type: str | None = None
    application_date: date | None = None
    permission_date: date | None = None
    article_type: str | None = None


DETAILS_MODELS: dict[ProjectCategory, type[_Details]] = {
    ProjectCategory.SURVEY: SurveyDetails,
    ProjectCategory.BOUNDARY: BoundaryDetails,
    ProjectCategory.REGISTRATION: RegistrationDetails,
    ProjectCategory.INHERITANCE: InheritanceDetails,
    ProjectCategory.CORPORATE: CorporateDetails,
    ProjectCategory.DRONE: DroneDetails,
    ProjectCategory.FARMLAND: FarmlandDetails,
}


def validate_project_details(category: ProjectCategory | str, details: dict | None) -> dict:
    """
    Validate the details blob for a category and return it JSON-ready.

    Raises ValueError listing the offending fields.
    """
    category = ProjectCategory(category)
    model = DETAILS_MODELS[category]
    try:
        parsed = model.model_validate(details or {})
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ValueError(f"詳細項目が不正です: {fields}")
    return parsed.model_dump(mode="json", exclude_none=True)


def validate_monthly_allocations(value: dict[str, Any] | None) -> dict[str, int]:
    if not value:
        return {}
    cleaned: dict[str, int] = {}
    for key, amount in value.items():
        if not MONTH_KEY_PATTERN.match(key):
            raise ValueError(f"月の形式が正しくありません: {key}")
        if amount is None or amount == "":
            continue
        try:
            amount = int(amount)
        except (TypeError, ValueError):
            raise ValueError(f"金額が不正です: {key}")
        if amount < 0:
            raise ValueError(f"金額は0以上で入力してください: {key}")
        cleaned[key] = amount
    return dict(sorted(cleaned.items()))


# =============================================================================
# Requests
# =============================================================================

class ProjectCreate(BaseModel):
    """Request to create a project. The code is generated when omitted."""
    code: str | None = Field(None, max_length=20)
    category: ProjectCategory
    name: str = Field(..., min_length=1, max_length=255)
    status: ProjectStatus = ProjectStatus.RECEIVED
    contact_id: UUID | None = None
    manager_id: UUID | None = None
    start_date: date | None = None
    end_date: date | None = None
    fee_tax_excluded: int = Field(0, ge=0)
    location: str | None = Field(None, max_length=255)
    location_detail: str | None = None
    notes: str | None = None
    is_urgent: bool = False
    is_on_hold: bool = False
    details: dict[str, Any] = Field(default_factory=dict)
    monthly_allocations: dict[str, Any] = Field(default_factory=dict)

    @field_validator("monthly_allocations")
    @classmethod
    def clean_allocations(cls, v: dict[str, Any]) -> dict[str, int]:
        return validate_monthly_allocations(v)

    @model_validator(mode="after")
    def check_consistency(self) -> "ProjectCreate":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("終了日は開始日以降の日付を指定してください")
        self.details = validate_project_details(self.category, self.details)
        return self


class ProjectUpdate(BaseModel):
    """Partial update. Details are re-validated against the (new) category."""
    category: ProjectCategory | None = None
    name: str | None = Field(None, min_length=1, max_length=255)
    status: ProjectStatus | None = None
    contact_id: UUID | None = None
    manager_id: UUID | None = None
    start_date: date | None = None
    end_date: date | None = None
    fee_tax_excluded: int | None = Field(None, ge=0)
    location: str | None = None
    location_detail: str | None = None
    notes: str | None = None
    is_urgent: bool | None = None
    is_on_hold: bool | None = None
    details: dict[str, Any] | None = None
    monthly_allocations: dict[str, Any] | None = None

    @field_validator("monthly_allocations")
    @classmethod
    def clean_allocations(cls, v: dict[str, Any] | None) -> dict[str, int] | None:
        if v is None:
            return None
        return validate_monthly_allocations(v)


class ProjectLinkCreate(BaseModel):
    related_project_id: UUID


# =============================================================================
# Responses
# =============================================================================

class ProjectCustomer(BaseModel):
    contact_id: UUID
    contact_name: str
    account_id: UUID | None = None
    company_name: str | None = None


class ProjectSummary(BaseModel):
    """Compact project used inside other payloads."""
    id: UUID
    code: str
    name: str
    category: ProjectCategory
    status: ProjectStatus
    location: str | None = None
    is_urgent: bool = False
    is_on_hold: bool = False

    model_config = {"from_attributes": True}


class ProjectRead(BaseModel):
    id: UUID
    code: str
    category: ProjectCategory
    category_label: str
    name: str
    status: ProjectStatus
    contact_id: UUID | None
    manager_id: UUID | None
    customer: ProjectCustomer | None = None
    manager: EmployeeOption | None = None
    start_date: date | None
    end_date: date | None
    fee_tax_excluded: int
    location: str | None
    location_detail: str | None
    notes: str | None
    is_urgent: bool
    is_on_hold: bool
    details: dict[str, Any]
    monthly_allocations: dict[str, int]
    allocated_total: int
    related_projects: list[ProjectSummary] = []
    created_at: datetime
    updated_at: datetime


class ProjectListItem(BaseModel):
    id: UUID
    code: str
    category: ProjectCategory
    name: str
    status: ProjectStatus
    customer_name: str | None = None
    manager_name: str | None = None
    start_date: date | None
    end_date: date | None
    fee_tax_excluded: int
    location: str | None
    is_urgent: bool
    is_on_hold: bool


class ProjectListResponse(BaseModel):
    items: list[ProjectListItem]
    total: int
    page: int
    per_page: int
    pages: int


class NextCodeResponse(BaseModel):
    category: ProjectCategory
    code: str


class CsvImportError(BaseModel):
    row: int
    message: str


class CsvImportResult(BaseModel):
    success: bool
    imported: int
    errors: list[CsvImportError]


class CategoryOption(BaseModel):
    value: ProjectCategory
    label: str
    prefix: str
