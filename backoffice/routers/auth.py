"""Auth router - password login, logout and current employee."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.core.deps import COOKIE_NAME, get_current_session, get_db, require_csrf_header
from backoffice.core.rate_limit import auth_rate_limit, limiter
from backoffice.schemas.auth import EmployeeSession, LoginRequest, MeResponse
from backoffice.services import auth_service

router = APIRouter()


@router.post("/login", response_model=MeResponse, dependencies=[Depends(require_csrf_header)])
@limiter.limit(auth_rate_limit)
def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: Session = Depends(get_db),
):
    """Verify email/password and set the session cookie."""
    try:
        employee, token = auth_service.login(db, body.email, body.password)
    except auth_service.AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))

    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        max_age=settings.JWT_EXPIRES_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )
    return MeResponse(
        employee_id=employee.id,
        email=employee.email,
        name=employee.name,
        role=employee.role,
    )


@router.post("/logout", dependencies=[Depends(require_csrf_header)])
def logout(response: Response):
    """Clear the session cookie."""
    response.delete_cookie(COOKIE_NAME, path="/")
    return {"status": "logged_out"}


@router.get("/me", response_model=MeResponse)
def get_me(session: EmployeeSession = Depends(get_current_session)):
    return MeResponse(
        employee_id=session.employee_id,
        email=session.email,
        name=session.name,
        role=session.role,
    )
