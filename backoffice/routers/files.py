"""Local storage downloads (only mounted when STORAGE_BACKEND=local)."""

import mimetypes

from fastapi import APIRouter, Depends, Response

from backoffice.core.deps import get_current_session
from backoffice.schemas.auth import EmployeeSession
from backoffice.services import storage_service

router = APIRouter()


@router.get("/{storage_key:path}")
def download_file(
    storage_key: str,
    session: EmployeeSession = Depends(get_current_session),
):
    content = storage_service.read_file(storage_key)
    media_type = mimetypes.guess_type(storage_key)[0] or "application/octet-stream"
    return Response(content=content, media_type=media_type)
