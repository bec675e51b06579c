"""HTTP route definitions for the account service."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import get_settings
from ..domain.errors import StorageError
from ..domain.results import AuthResult, InternalError, Redirect, Success, Unauthorized, Unprocessable
from ..domain.service import AuthService
from ..sessions import Session, SessionManager

logger = logging.getLogger(__name__)

router = APIRouter()

REDIRECT_HEADER = "xhttp-redirect"
INTERNAL_ERROR_MESSAGE = "Internal server error occurred"


class ErrorResponse(BaseModel):
    """Single error message returned with 401 and 500 responses."""

    error: str


class ValidationErrorResponse(BaseModel):
    """Ordered field violations returned with 422 responses."""

    errors: list[str]


class UserIdResponse(BaseModel):
    user_id: Any


class ProfileResponse(BaseModel):
    profile: dict[str, Any]


settings = get_settings()


def get_service(request: Request) -> AuthService:
    """Resolve the `AuthService` stored on the FastAPI application state."""
    service: AuthService = request.app.state.auth_service
    return service


class SessionUnavailable(Exception):
    """The session store could not be read; carries the 500 body to send."""

    def __init__(self, body: dict[str, Any]) -> None:
        super().__init__(body.get("error"))
        self.body = body


def get_session(request: Request) -> Session:
    """Load the caller's session from the session cookie, creating an empty one if needed."""
    manager: SessionManager = request.app.state.session_manager
    try:
        return manager.load(request.cookies.get(settings.session_cookie_name))
    except StorageError as exc:
        logger.exception("session lookup failed")
        raise SessionUnavailable(ErrorResponse(error=INTERNAL_ERROR_MESSAGE).model_dump()) from exc


def get_logout_session(request: Request) -> Session:
    """Session dependency for logout, whose failures also report ``success: false``."""
    try:
        return get_session(request)
    except SessionUnavailable as exc:
        raise SessionUnavailable({"success": False, **exc.body}) from exc


def _session_unavailable(request: Request, exc: SessionUnavailable) -> JSONResponse:
    return JSONResponse(exc.body, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def add_exception_handlers(app: FastAPI) -> None:
    """Register the handlers the account routes rely on."""
    app.add_exception_handler(SessionUnavailable, _session_unavailable)


def _to_response(result: AuthResult, session: Session) -> Response:
    """Translate a service result into an HTTP response and sync the session cookie."""
    response: Response
    if isinstance(result, Redirect):
        # Lets full-page XHTTP submissions navigate client-side.
        response = Response(status_code=status.HTTP_200_OK, headers={REDIRECT_HEADER: result.location})
    elif isinstance(result, Success):
        body = {"success": True} if result.payload is None else jsonable_encoder(result.payload)
        response = JSONResponse(body, status_code=status.HTTP_200_OK)
    elif isinstance(result, Unprocessable):
        response = JSONResponse(
            ValidationErrorResponse(errors=result.errors).model_dump(),
            status_code=422,
        )
    elif isinstance(result, Unauthorized):
        if result.message is None:
            response = Response(status_code=status.HTTP_401_UNAUTHORIZED)
        else:
            response = JSONResponse(
                ErrorResponse(error=result.message).model_dump(),
                status_code=status.HTTP_401_UNAUTHORIZED,
            )
    elif isinstance(result, InternalError):
        response = JSONResponse(
            ErrorResponse(error=INTERNAL_ERROR_MESSAGE).model_dump(),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    else:  # pragma: no cover - exhaustive over AuthResult
        raise TypeError(f"unsupported result {result!r}")

    if session.is_new and session.is_authenticated:
        response.set_cookie(
            settings.session_cookie_name,
            session.token,
            max_age=settings.session_ttl_seconds,
            httponly=True,
            secure=settings.session_cookie_secure,
            samesite="lax",
        )
    return response


@router.post("/join")
def join(
    fields: dict[str, Any] | None = Body(default=None),
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_service),
) -> Response:
    """Create a manager or worker account and sign the caller in."""
    return _to_response(service.join(session, fields or {}), session)


@router.post("/login")
def login(
    fields: dict[str, Any] | None = Body(default=None),
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_service),
) -> Response:
    """Authenticate a returning user."""
    return _to_response(service.login(session, fields or {}), session)


@router.post("/logout")
def logout(
    session: Session = Depends(get_logout_session),
    service: AuthService = Depends(get_service),
) -> Response:
    """Destroy the caller's session; the cookie is only cleared when that succeeds."""
    result = service.logout(session)
    if isinstance(result, InternalError):
        return JSONResponse(
            {"success": False, "error": INTERNAL_ERROR_MESSAGE},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    response = _to_response(result, session)
    response.delete_cookie(settings.session_cookie_name)
    return response


@router.get("/user/id", responses={200: {"model": UserIdResponse}})
def current_user_id(
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_service),
) -> Response:
    return _to_response(service.current_user_id(session), session)


@router.get("/profile", responses={200: {"model": ProfileResponse}})
def get_profile(
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_service),
) -> Response:
    """Return the signed-in user's profile."""
    return _to_response(service.get_profile(session), session)


@router.put("/profile", responses={422: {"model": ValidationErrorResponse}})
def update_profile(
    fields: dict[str, Any] | None = Body(default=None),
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_service),
) -> Response:
    """Overwrite the signed-in user's profile fields."""
    return _to_response(service.update_profile(session, fields or {}), session)
