"""Projects router - projects (業務), codes, CSV import/export and related projects."""

from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.core.deps import get_current_session, get_db, require_csrf_header
from backoffice.db.enums import ProjectCategory, ProjectStatus
from backoffice.db.models import Project
from backoffice.schemas.auth import EmployeeSession
from backoffice.schemas.project import (
    CategoryOption,
    CsvImportResult,
    NextCodeResponse,
    ProjectCreate,
    ProjectLinkCreate,
    ProjectListItem,
    ProjectListResponse,
    ProjectRead,
    ProjectSummary,
    ProjectUpdate,
)
from backoffice.services import project_csv_service, project_service
from backoffice.utils.pagination import PaginationParams, get_pagination

router = APIRouter()


def project_or_404(db: Session, project_id: UUID) -> Project:
    project = project_service.get_project(db, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="業務が見つかりません")
    return project


def attachment_header(filename: str) -> str:
    """Content-Disposition value that survives non-ASCII filenames."""
    return f"attachment; filename*=UTF-8''{quote(filename)}"


def project_read(db: Session, project: Project) -> ProjectRead:
    contact = project.contact
    customer = None
    if contact is not None:
        customer = {
            "contact_id": contact.id,
            "contact_name": contact.full_name,
            "account_id": contact.account_id,
            "company_name": contact.account.company_name if contact.account else None,
        }
    return ProjectRead(
        id=project.id,
        code=project.code,
        category=project.category,
        category_label=ProjectCategory(project.category).label,
        name=project.name,
        status=project.status,
        contact_id=project.contact_id,
        manager_id=project.manager_id,
        customer=customer,
        manager={"id": project.manager.id, "name": project.manager.name} if project.manager else None,
        start_date=project.start_date,
        end_date=project.end_date,
        fee_tax_excluded=project.fee_tax_excluded,
        location=project.location,
        location_detail=project.location_detail,
        notes=project.notes,
        is_urgent=project.is_urgent,
        is_on_hold=project.is_on_hold,
        details=project.details or {},
        monthly_allocations=project.monthly_allocations or {},
        allocated_total=project.allocated_total,
        related_projects=[
            ProjectSummary.model_validate(p) for p in project_service.list_related_projects(db, project.id)
        ],
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


# =============================================================================
# Lookups
# =============================================================================

@router.get("/categories", response_model=list[CategoryOption])
def list_categories(session: EmployeeSession = Depends(get_current_session)):
    return [CategoryOption(value=c, label=c.label, prefix=c.prefix) for c in ProjectCategory]


@router.get("/next-code", response_model=NextCodeResponse)
def next_code(
    category: ProjectCategory,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        code = project_service.next_project_code(db, category)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return NextCodeResponse(category=category, code=code)


# =============================================================================
# CSV
# =============================================================================

@router.get("/export")
def export_csv(
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """All projects as an Excel-compatible CSV (UTF-8 with BOM)."""
    content = project_csv_service.export_projects_csv(db)
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": attachment_header(project_csv_service.export_filename())},
    )


@router.post("/import", response_model=CsvImportResult, dependencies=[Depends(require_csrf_header)])
async def import_csv(
    file: UploadFile = File(...),
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="ファイルサイズが上限を超えています")
    return project_csv_service.import_projects_csv(db, content)


# =============================================================================
# CRUD
# =============================================================================

@router.get("", response_model=ProjectListResponse)
def list_projects(
    q: str | None = Query(None, description="Search code, name and location"),
    category: ProjectCategory | None = None,
    status: ProjectStatus | None = None,
    active_only: bool = False,
    manager_id: UUID | None = None,
    is_urgent: bool | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    projects, total = project_service.list_projects(
        db,
        pagination,
        q=q,
        category=category,
        status=status,
        active_only=active_only,
        manager_id=manager_id,
        is_urgent=is_urgent,
    )
    items = [
        ProjectListItem(
            id=p.id,
            code=p.code,
            category=p.category,
            name=p.name,
            status=p.status,
            customer_name=project_service.customer_name(p.contact),
            manager_name=p.manager.name if p.manager else None,
            start_date=p.start_date,
            end_date=p.end_date,
            fee_tax_excluded=p.fee_tax_excluded,
            location=p.location,
            is_urgent=p.is_urgent,
            is_on_hold=p.is_on_hold,
        )
        for p in projects
    ]
    return ProjectListResponse(
        items=items,
        **pagination.page_meta(total),
    )


@router.post("", response_model=ProjectRead, status_code=201, dependencies=[Depends(require_csrf_header)])
def create_project(
    data: ProjectCreate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        project = project_service.create_project(db, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return project_read(db, project_or_404(db, project.id))


@router.get("/{project_id}", response_model=ProjectRead)
def get_project(
    project_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return project_read(db, project_or_404(db, project_id))


@router.patch("/{project_id}", response_model=ProjectRead, dependencies=[Depends(require_csrf_header)])
def update_project(
    project_id: UUID,
    data: ProjectUpdate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = project_or_404(db, project_id)
    try:
        project_service.update_project(db, project, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return project_read(db, project_or_404(db, project_id))


@router.delete("/{project_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_project(
    project_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project_service.delete_project(db, project_or_404(db, project_id))


# =============================================================================
# Related projects
# =============================================================================

@router.get("/{project_id}/links", response_model=list[ProjectSummary])
def list_links(
    project_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = project_or_404(db, project_id)
    return project_service.list_related_projects(db, project.id)


@router.get("/{project_id}/link-candidates", response_model=list[ProjectSummary])
def list_link_candidates(
    project_id: UUID,
    q: str | None = None,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = project_or_404(db, project_id)
    return project_service.list_link_candidates(db, project, q=q)


@router.post(
    "/{project_id}/links",
    response_model=ProjectSummary,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def add_link(
    project_id: UUID,
    data: ProjectLinkCreate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = project_or_404(db, project_id)
    try:
        return project_service.link_projects(db, project, data.related_project_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/{project_id}/links/{related_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def remove_link(
    project_id: UUID,
    related_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = project_or_404(db, project_id)
    if not project_service.unlink_projects(db, project.id, related_id):
        raise HTTPException(status_code=404, detail="関連付けが見つかりません")
