"""Admin dashboard login - the scheduling editors sit behind this cookie"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from ..admin_auth import check_admin_password, clear_admin_session, issue_admin_session, require_admin
from ..rate_limiter import create_rate_limiter
from ..schemas import AdminLoginRequest, AdminSessionResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

login_rate_limit = create_rate_limiter(limit=5, window_seconds=300, key_prefix="admin_login")


@router.post("/login", response_model=AdminSessionResponse)
async def admin_login(
    data: AdminLoginRequest,
    response: Response,
    _: None = Depends(login_rate_limit),
):
    if not check_admin_password(data.password):
        logger.warning("⚠️ Failed admin login attempt")
        raise HTTPException(status_code=401, detail="Invalid password")

    issue_admin_session(response)
    logger.info("🔐 Admin session issued")
    return AdminSessionResponse(authenticated=True)


@router.post("/logout", response_model=AdminSessionResponse)
async def admin_logout(response: Response):
    clear_admin_session(response)
    return AdminSessionResponse(authenticated=False)


@router.get("/session", response_model=AdminSessionResponse)
async def admin_session(_: dict = Depends(require_admin)):
    return AdminSessionResponse(authenticated=True)
