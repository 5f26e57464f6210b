"""Postal code router - address to postal code estimation."""

from fastapi import APIRouter, Depends

from backoffice.core.deps import get_current_session, require_csrf_header
from backoffice.schemas.auth import EmployeeSession
from backoffice.schemas.postal_code import PostalCodeRequest, PostalCodeResult
from backoffice.services import postal_code_service

router = APIRouter()


@router.post("/estimate", response_model=PostalCodeResult, dependencies=[Depends(require_csrf_header)])
async def estimate(
    data: PostalCodeRequest,
    session: EmployeeSession = Depends(get_current_session),
):
    return await postal_code_service.estimate_postal_code(
        data.prefecture, data.city, data.street, data.company_name
    )
