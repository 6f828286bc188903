"""Login endpoint issuing the bearer tokens every other route expects."""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from helpdesk.api.dependencies.auth import create_access_token
from helpdesk.api.dependencies.db import get_session
from helpdesk.api.routers.job_helpers import to_http_error
from helpdesk.api.schemas.auth import LoginRequest, LoginResponse, UserRead
from helpdesk.core.config import get_settings
from helpdesk.core.errors import HelpdeskError
from helpdesk.services import user_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/login",
    summary="Exchange email and password for an access token",
    response_model=LoginResponse,
    responses={
        400: {"description": "Email or password missing"},
        401: {"description": "Invalid credentials"},
    },
)
async def login(payload: LoginRequest, db: Session = Depends(get_session)) -> LoginResponse:
    if not payload.email.strip() or not payload.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email and password are required",
        )

    try:
        user = user_service.authenticate(db, payload.email, payload.password)
    except HelpdeskError as e:
        raise to_http_error(e) from e

    if user is None:
        logger.info(f"Rejected login for {payload.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    settings = get_settings()
    token = create_access_token(
        user.id,
        user.role,
        expires_in=timedelta(minutes=settings.access_token_expire_minutes),
    )
    logger.info(f"User {user.email} logged in")
    return LoginResponse(access_token=token, user=UserRead.model_validate(user))
